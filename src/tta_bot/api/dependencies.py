"""
FastAPI Dependency Providers.

Every long-lived object the routes need is built once by create_app()
and kept in an AppServices container on app.state. Routes receive them
through Depends() so tests can build an app around fakes without any
module-level singletons.

Lifecycle:
    1. create_app() builds AppServices and stores it on app.state.services
    2. The lifespan handler starts the sweeper, Telegram client and poller
    3. Route handlers receive AudioService / AppServices via Depends()

See Also:
    - main.py: create_app() and lifespan
    - services/audio_service.py: AudioService
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request

from tta_bot.bot.handler import ChatHandler
from tta_bot.bot.poller import BotPoller
from tta_bot.bot.telegram import TelegramClient
from tta_bot.core.config import AppConfig, Settings
from tta_bot.services.audio_service import AudioService
from tta_bot.tts.speech import SpeechClient
from tta_bot.tts.storage import TempFileStore


@dataclass
class AppServices:
    """Objects shared by every request of one application instance."""
    settings: Settings
    config: AppConfig
    speech_client: SpeechClient
    store: TempFileStore
    audio: AudioService
    telegram: Optional[TelegramClient] = None
    chat_handler: Optional[ChatHandler] = None
    poller: Optional[BotPoller] = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime_s(self) -> float:
        return time.monotonic() - self.started_at


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_audio_service(request: Request) -> AudioService:
    return get_services(request).audio
