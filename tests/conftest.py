"""Shared fixtures and fakes for tta-bot tests."""
from __future__ import annotations

import asyncio
import copy
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from tta_bot.bot.telegram import BotInfo, TelegramError
from tta_bot.core.config import Settings
from tta_bot.tts.speech import SpeechClient
from tta_bot.tts.storage import TempFileStore

FAKE_MP3 = b"ID3\x03\x00\x00\x00fake-mp3-payload"


class FakeSpeechClient(SpeechClient):
    """Speech client returning canned audio, or raising a preset error."""
    name = "fake"
    model = "fake-tts"

    def __init__(self, audio: bytes = FAKE_MP3, error: Optional[Exception] = None):
        self.audio = audio
        self.error = error
        self.calls: List[tuple] = []
        self.closed = False

    async def synthesize(self, text: str, voice: str, speed: float) -> bytes:
        self.calls.append((text, voice, speed))
        if self.error is not None:
            raise self.error
        return self.audio

    async def aclose(self) -> None:
        self.closed = True


class FakeTelegram:
    """In-memory stand-in for TelegramClient that records every call."""

    def __init__(self, fail_on: tuple = ()):
        self.fail_on = set(fail_on)
        self.started = False
        self.messages: List[Dict[str, Any]] = []
        self.audio: List[Dict[str, Any]] = []
        self.deleted: List[tuple] = []
        self._next_id = 100

    def _maybe_fail(self, method: str) -> None:
        if method in self.fail_on:
            raise TelegramError(f"{method} returned 400: Bad Request")

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.started = False

    async def get_me(self) -> BotInfo:
        self._maybe_fail("getMe")
        return BotInfo(id=123456, username="tta_test_bot", first_name="TTA Bot", is_bot=True)

    async def get_updates(self, offset: Optional[int] = None, timeout_s: int = 0) -> List[Dict[str, Any]]:
        # Park the poller until shutdown cancels it
        await asyncio.sleep(3600)
        return []

    async def send_message(self, chat_id, text: str) -> Dict[str, Any]:
        self._maybe_fail("sendMessage")
        self._next_id += 1
        self.messages.append({"chat_id": chat_id, "text": text, "message_id": self._next_id})
        return {"message_id": self._next_id, "chat": {"id": chat_id}, "text": text}

    async def send_audio(self, chat_id, path, caption: str = "", title: str = "", performer: str = "") -> Dict[str, Any]:
        self._maybe_fail("sendAudio")
        path = Path(path)
        self.audio.append({
            "chat_id": chat_id,
            "path": path,
            "existed": path.is_file(),
            "caption": caption,
            "title": title,
            "performer": performer,
        })
        self._next_id += 1
        return {"message_id": self._next_id}

    async def delete_message(self, chat_id, message_id: int) -> bool:
        self._maybe_fail("deleteMessage")
        self.deleted.append((chat_id, message_id))
        return True

    @property
    def texts(self) -> List[str]:
        return [m["text"] for m in self.messages]


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path / "temp"


@pytest.fixture
def make_settings(temp_dir: Path):
    """Build Settings for an isolated temp dir, with optional section overrides."""
    def _make(**sections: Dict[str, Any]) -> Settings:
        base = {
            "server": {"env": "development", "frontend_url": "http://localhost:3002"},
            "storage": {"temp_dir": str(temp_dir), "delete_delay_seconds": 0},
            "telegram": {"enabled": False},
        }
        return Settings(raw=_merge(base, sections))
    return _make


@pytest.fixture
def store(temp_dir: Path) -> TempFileStore:
    return TempFileStore(temp_dir, max_age_s=3600, delete_delay_s=0)


@pytest.fixture
def fake_speech() -> FakeSpeechClient:
    return FakeSpeechClient()


@pytest.fixture
def fake_telegram() -> FakeTelegram:
    return FakeTelegram()
