"""
tta-bot: Telegram Text-to-Audio Bot and HTTP Server.

Forwards user text to the OpenAI speech API and hands back MP3 audio,
either as an HTTP response (for the companion web UI) or as a Telegram
audio attachment. Generated files are staged in a temp directory and
removed shortly after delivery, with an hourly sweep as a backstop.

Example Usage:
    >>> from tta_bot.main import create_app
    >>> from tta_bot.core.config import load_settings
    >>>
    >>> app = create_app(load_settings("config/settings.yaml"))
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
