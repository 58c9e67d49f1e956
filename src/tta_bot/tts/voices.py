"""
Voice and Speed Reference Tables.

These tables are the single source of truth for what the HTTP API, the
web UI and the chat bot offer. Validation is plain membership in these
tables; values outside them are rejected, never coerced to the nearest
entry.

Voices (OpenAI tts-1):
    alloy, echo, fable, onyx, nova, shimmer

Speeds:
    0.5, 0.75, 0.8 (default), 1.0, 1.25, 1.5, 2.0
    The provider accepts 0.25-4.0; only these seven are offered.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class VoiceOption:
    """A selectable provider voice."""
    value: str
    label: str
    description: str
    gender: str
    style: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SpeedOption:
    """A selectable playback speed."""
    value: float
    label: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


VOICE_OPTIONS: Tuple[VoiceOption, ...] = (
    VoiceOption("alloy", "Alloy", "Balanced and natural - great for general use", "Neutral", "Conversational"),
    VoiceOption("echo", "Echo", "Clear and professional - perfect for business", "Male", "Professional"),
    VoiceOption("fable", "Fable", "Expressive storytelling - ideal for narratives", "Neutral", "Expressive"),
    VoiceOption("onyx", "Onyx", "Deep and authoritative - commanding presence", "Male", "Authoritative"),
    VoiceOption("nova", "Nova", "Bright and energetic - youthful and dynamic", "Female", "Energetic"),
    VoiceOption("shimmer", "Shimmer", "Soft and gentle - warm and soothing", "Female", "Gentle"),
)

SPEED_OPTIONS: Tuple[SpeedOption, ...] = (
    SpeedOption(0.5, "0.5x", "Very Slow"),
    SpeedOption(0.75, "0.75x", "Slow"),
    SpeedOption(0.8, "0.8x", "Relaxed (Default)"),
    SpeedOption(1.0, "1.0x", "Normal"),
    SpeedOption(1.25, "1.25x", "Fast"),
    SpeedOption(1.5, "1.5x", "Very Fast"),
    SpeedOption(2.0, "2.0x", "Maximum"),
)

DEFAULT_VOICE = VOICE_OPTIONS[0].value
DEFAULT_SPEED = 0.8


def voice_values() -> List[str]:
    return [v.value for v in VOICE_OPTIONS]


def speed_values() -> List[float]:
    return [s.value for s in SPEED_OPTIONS]

