from typing import Any


class ApiError(Exception):
    """A non-2xx answer from the server."""

    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
