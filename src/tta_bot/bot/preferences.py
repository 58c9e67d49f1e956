"""
Per-Chat Voice and Speed Preferences.

Preferences are keyed by chat id, last write wins and never expire. The
backing mapping is injected, so a persistent key-value store can replace
the default in-process dict without touching the chat handler.

Usage:
    prefs = PreferenceStore()
    prefs.set_voice(chat_id, "nova")      # True
    prefs.set_speed(chat_id, 3.0)         # False, store unchanged
    prefs.get(chat_id)                    # UserPreference(voice='nova', speed=0.8)
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Hashable, MutableMapping, Optional

from tta_bot.core.logging import get_logger, verbose
from tta_bot.services.validators import validate_speed, validate_voice
from tta_bot.tts.voices import DEFAULT_SPEED, DEFAULT_VOICE

_LOG = get_logger("tta-bot.preferences")


@dataclass(frozen=True)
class UserPreference:
    voice: str = DEFAULT_VOICE
    speed: float = DEFAULT_SPEED


class PreferenceStore:
    """
    Voice/speed preferences per session.

    Setters validate against the reference tables first and return False,
    leaving the stored value untouched, when the value is not offered.
    """

    def __init__(
        self,
        backend: Optional[MutableMapping[Hashable, UserPreference]] = None,
        default_voice: str = DEFAULT_VOICE,
        default_speed: float = DEFAULT_SPEED,
    ):
        self._backend = {} if backend is None else backend
        self._default = UserPreference(voice=default_voice, speed=default_speed)

    def __len__(self) -> int:
        return len(self._backend)

    def get(self, session_id: Hashable) -> UserPreference:
        """Stored preference, or the defaults if the session never set one."""
        return self._backend.get(session_id, self._default)

    def set_voice(self, session_id: Hashable, voice: str) -> bool:
        if not validate_voice(voice):
            return False
        self._backend[session_id] = replace(self.get(session_id), voice=voice)
        verbose(_LOG, "preference_set", session=session_id, voice=voice)
        return True

    def set_speed(self, session_id: Hashable, speed: float) -> bool:
        if not validate_speed(speed):
            return False
        self._backend[session_id] = replace(self.get(session_id), speed=float(speed))
        verbose(_LOG, "preference_set", session=session_id, speed=speed)
        return True
