"""
API Request Schemas.

Fields are permissive (all optional, no length limits):
missing, blank and over-length text are reported by AudioService with
the MISSING_TEXT / TEXT_TOO_LONG codes the web UI understands, rather
than as generic Pydantic errors. Only wrongly typed fields fail here
(400 INVALID_REQUEST); speed is strict, so "1.0" is not read as 1.0.

Example Request:
    {
        "text": "Hello world",
        "voice": "nova",
        "speed": 1.0
    }
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class GenerateAudioRequest(BaseModel):
    """
    Body of POST /api/generate-audio.

    Attributes:
        text: Text to convert (1-4096 characters, not blank).
        voice: One of alloy, echo, fable, onyx, nova, shimmer.
            Defaults to alloy.
        speed: One of 0.5, 0.75, 0.8, 1.0, 1.25, 1.5, 2.0.
            Defaults to 0.8.
    """
    text: str | None = Field(
        default=None,
        description="Text to convert to speech (1-4096 characters)"
    )
    voice: str | None = Field(
        default=None,
        description="Voice identifier (default: alloy)"
    )
    speed: float | None = Field(
        default=None,
        strict=True,
        description="Playback speed (default: 0.8)"
    )


class ValidateTextRequest(BaseModel):
    """Body of POST /api/validate-text."""
    text: str | None = Field(
        default=None,
        description="Text to check without generating audio"
    )
