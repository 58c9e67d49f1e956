"""
tta-bot Services Layer.

This package provides the business logic shared by the HTTP API and the
chat bot. It sits between the front ends and the tts package.

Components:
    - audio_service.py: AudioService (validate, synthesize, persist, release)
    - validators.py: Text, voice and speed validation
"""
from .audio_service import AudioService, SynthesisRequest
from .validators import ValidationResult, validate_speed, validate_text, validate_voice

__all__ = [
    "AudioService",
    "SynthesisRequest",
    "ValidationResult",
    "validate_text",
    "validate_voice",
    "validate_speed",
]
