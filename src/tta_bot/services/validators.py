"""
Input Validation for Text-to-Audio Requests.

Validation happens before any provider call so that a request never
reaches the speech provider with text it would reject or with a voice or
speed the UI does not offer.

Validation Rules:
    - Text: Required, non-blank after trim, max 4096 characters
    - Text over 3000 characters: warning only
    - Voice: one of the six reference voices
    - Speed: one of the seven reference speeds

Unlike the request pipeline, these functions never raise. They return
structured results and the caller decides how to report them:

    result = validate_text(payload.text)
    if not result.is_valid:
        return {"errors": result.errors}

See Also:
    - audio_service.py: Turns results into ValidationError with codes
    - tts/voices.py: The reference tables
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from tta_bot.core.config import Defaults
from tta_bot.tts.voices import speed_values, voice_values

MSG_TEXT_REQUIRED = "Text is required"
MSG_TEXT_EMPTY = "Text cannot be empty"
MSG_LONG_TEXT_WARNING = "Long text may take longer to generate"


@dataclass
class ValidationResult:
    """
    Outcome of text validation.

    Attributes:
        is_valid: False if any error was found.
        errors: Human-readable error messages.
        warnings: Non-fatal notices.
    """
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys the web UI expects."""
        return {"isValid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def text_too_long_message(length: int, max_length: int = Defaults.TEXT_MAX_LENGTH) -> str:
    return f"Text too long ({length}/{max_length} characters)"


def validate_text(
    text: Any,
    max_length: int = Defaults.TEXT_MAX_LENGTH,
    warn_length: int = Defaults.TEXT_WARN_LENGTH,
) -> ValidationResult:
    """
    Validate text for conversion.

    Args:
        text: Candidate text. None, "" and non-strings count as missing.
        max_length: Maximum allowed length in characters.
        warn_length: Length above which a warning is added.

    Returns:
        ValidationResult with every applicable error and warning.
    """
    result = ValidationResult()

    if not isinstance(text, str) or not text:
        result.is_valid = False
        result.errors.append(MSG_TEXT_REQUIRED)
        return result

    if len(text) > max_length:
        result.is_valid = False
        result.errors.append(text_too_long_message(len(text), max_length))

    if not text.strip():
        result.is_valid = False
        result.errors.append(MSG_TEXT_EMPTY)

    if len(text) > warn_length:
        result.warnings.append(MSG_LONG_TEXT_WARNING)

    return result


def validate_voice(voice: Any) -> bool:
    """Check that voice is one of the reference voices."""
    return isinstance(voice, str) and voice in voice_values()


def validate_speed(speed: Any) -> bool:
    """
    Check that speed is one of the reference speeds.

    Non-numeric input (including numeric strings and booleans) is
    rejected rather than converted.
    """
    if isinstance(speed, bool) or not isinstance(speed, (int, float)):
        return False
    return float(speed) in speed_values()
