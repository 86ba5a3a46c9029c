from typing import Any, Dict, List, Optional


class Transcript:
    """Messages of the chat currently open in a client."""

    def __init__(self):
        self.chat_id: Optional[str] = None
        self.messages: List[Dict[str, Any]] = []

    def open(self, chat: Dict[str, Any]):
        self.chat_id = chat["id"]
        self.messages = list(chat.get("messages", []))

    def close(self):
        self.chat_id = None
        self.messages = []

    def receive(self, message: Dict[str, Any]) -> bool:
        """Append ``message`` if it belongs to the open chat; otherwise drop it."""
        if self.chat_id is None or message.get("chatId") != self.chat_id:
            return False
        self.messages.append(message)
        return True
