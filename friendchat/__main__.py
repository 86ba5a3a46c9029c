from friendchat.main import run

run()
