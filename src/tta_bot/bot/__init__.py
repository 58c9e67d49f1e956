"""
Telegram Chat Front End.

    - telegram.py: Async Bot API client (httpx)
    - poller.py: Long-polling loop feeding updates to the handler
    - handler.py: ChatHandler (commands and text conversion)
    - commands.py: Tagged chat command variants and parser
    - preferences.py: Per-chat voice/speed preferences
"""
