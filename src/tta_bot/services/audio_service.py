"""
AudioService - Shared Text-to-Audio Pipeline.

Both front ends (HTTP routes and the Telegram chat handler) go through
this service, so validation rules, provider error mapping and temp-file
handling are identical for every caller.

Architecture:
    Received -> Validated -> Synthesized -> Persisted -> Delivered -> [delayed] Deleted
                  |               |                         |
               Rejected         Failed                    Failed

    build_request()  Received -> Validated | Rejected (ValidationError)
    generate()       Validated -> Persisted | Failed (tagged TTAError)
    release()        Delivered -> [delayed] Deleted

Error Handling:
    - ValidationError: bad text, unknown voice or speed
    - CredentialError / QuotaError / ProviderError: raised by the speech
      client; anything untagged is wrapped as ProviderError here

Example:
    >>> service = AudioService(speech_client, store)
    >>> request = service.build_request("Hello world", voice="nova", speed=1.0)
    >>> generated = await service.generate(request)
    >>> ...send generated.path...
    >>> service.release(generated)
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tta_bot.core.config import SpeechConfig, TextConfig
from tta_bot.core.errors import ErrorCode, ProviderError, TTAError, ValidationError
from tta_bot.core.logging import fail, get_logger, info, preview, success, verbose
from tta_bot.core.metrics import metrics
from tta_bot.services.validators import MSG_TEXT_EMPTY, MSG_TEXT_REQUIRED, validate_speed, validate_voice
from tta_bot.tts.speech import SpeechClient
from tta_bot.tts.storage import GeneratedFile, TempFileStore
from tta_bot.tts.voices import SPEED_OPTIONS, VOICE_OPTIONS, voice_values
from tta_bot.utils.timeit import timeit

_LOG = get_logger("tta-bot.service")


@dataclass(frozen=True)
class SynthesisRequest:
    """
    A validated conversion request.

    Only AudioService.build_request() creates these, so text is always
    non-blank and within the length limit, and voice and speed are
    always reference-table values.
    """
    text: str
    voice: str
    speed: float

    @property
    def input_text(self) -> str:
        """Text as sent to the provider."""
        return self.text.strip()


class AudioService:
    """
    Validate, synthesize, persist and release generated audio.

    Usage:
        service = AudioService(get_speech_client(config), TempFileStore(config.storage.temp_dir))
        request = service.build_request(payload.text, payload.voice, payload.speed)
        generated = await service.generate(request)
    """

    def __init__(
        self,
        speech_client: SpeechClient,
        store: TempFileStore,
        text_config: Optional[TextConfig] = None,
        speech_config: Optional[SpeechConfig] = None,
        preview_chars: int = 50,
    ):
        self._client = speech_client
        self._store = store
        self._text = text_config or TextConfig()
        self._speech = speech_config or SpeechConfig()
        self._preview_chars = preview_chars

    @property
    def store(self) -> TempFileStore:
        return self._store

    @property
    def max_length(self) -> int:
        return self._text.max_length

    @property
    def default_voice(self) -> str:
        return self._speech.default_voice

    @property
    def default_speed(self) -> float:
        return self._speech.default_speed

    def build_request(
        self,
        text: Any,
        voice: Optional[str] = None,
        speed: Optional[float] = None,
        channel: str = "http",
    ) -> SynthesisRequest:
        """
        Validate inputs and build a SynthesisRequest.

        Args:
            text: Text to convert.
            voice: Voice identifier; defaults to the configured voice.
            speed: Playback speed; defaults to the configured speed.
            channel: "http" or "chat", for metrics.

        Raises:
            ValidationError: MISSING_TEXT, TEXT_TOO_LONG, INVALID_VOICE
                or INVALID_SPEED.
        """
        try:
            request = self._validate(text, voice, speed)
        except ValidationError as e:
            info(_LOG, "rejected", channel=channel, code=e.code)
            metrics.record_request(channel, "rejected")
            raise
        verbose(_LOG, "validated", channel=channel, voice=request.voice, speed=request.speed)
        return request

    def _validate(self, text: Any, voice: Optional[str], speed: Optional[float]) -> SynthesisRequest:
        if not isinstance(text, str) or not text:
            raise ValidationError(MSG_TEXT_REQUIRED, ErrorCode.MISSING_TEXT)
        if len(text) > self._text.max_length:
            raise ValidationError(
                f"Text too long (max {self._text.max_length} characters)",
                ErrorCode.TEXT_TOO_LONG,
                {"maxLength": self._text.max_length, "currentLength": len(text)},
            )
        if not text.strip():
            raise ValidationError(MSG_TEXT_EMPTY, ErrorCode.MISSING_TEXT)

        voice = self._speech.default_voice if voice is None else voice
        if not validate_voice(voice):
            raise ValidationError(
                f"Invalid voice: {voice}. Must be one of: {', '.join(voice_values())}",
                ErrorCode.INVALID_VOICE,
            )

        speed = self._speech.default_speed if speed is None else speed
        if not validate_speed(speed):
            raise ValidationError(
                f"Invalid speed: {speed}. Must be one of: {', '.join(s.label for s in SPEED_OPTIONS)}",
                ErrorCode.INVALID_SPEED,
            )

        return SynthesisRequest(text=text, voice=voice, speed=float(speed))

    async def generate(self, request: SynthesisRequest, channel: str = "http") -> GeneratedFile:
        """
        Synthesize audio and stage it in the temp store.

        Raises:
            CredentialError: Provider rejected the credential.
            QuotaError: Provider quota exhausted.
            ProviderError: Any other failure, including write errors.
        """
        info(
            _LOG, "request",
            channel=channel,
            voice=request.voice,
            speed=request.speed,
            chars=len(request.text),
            text_preview=preview(request.text, self._preview_chars),
        )

        with timeit("synthesis") as t:
            try:
                audio = await self._client.synthesize(request.input_text, request.voice, request.speed)
            except TTAError as e:
                fail(_LOG, "request_failed", channel=channel, code=e.code, error=str(e))
                metrics.record_request(channel, e.code)
                raise
            except Exception as e:
                fail(_LOG, "request_failed", channel=channel, error=str(e), error_type=type(e).__name__)
                metrics.record_request(channel, ErrorCode.GENERATION_ERROR)
                raise ProviderError(str(e) or type(e).__name__) from e
        verbose(_LOG, "stage", event="synthesized", bytes=len(audio), seconds=round(t.seconds, 4))

        try:
            generated = self._store.save(audio, request.voice)
        except OSError as e:
            fail(_LOG, "request_failed", channel=channel, error=str(e), error_type=type(e).__name__)
            metrics.record_request(channel, ErrorCode.GENERATION_ERROR, duration=t.seconds)
            raise ProviderError(f"Could not write audio file: {e}") from e

        success(_LOG, "done", channel=channel, file=generated.name, bytes=generated.size_bytes,
                seconds=round(t.seconds, 3))
        metrics.record_request(channel, "success", duration=t.seconds, audio_bytes=generated.size_bytes)
        return generated

    def release(self, generated: GeneratedFile, delay_s: Optional[float] = None) -> asyncio.Task:
        """Schedule the delayed delete of a delivered (or abandoned) file."""
        return self._store.schedule_delete(generated, delay_s)

    def list_voices(self) -> List[Dict[str, Any]]:
        return [v.to_dict() for v in VOICE_OPTIONS]

    def list_speeds(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in SPEED_OPTIONS]
