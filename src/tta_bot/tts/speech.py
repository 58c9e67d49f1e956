"""
Speech Provider Client.

This module provides:
    - SpeechClient: Base class for text-to-speech providers
    - OpenAISpeechClient: OpenAI audio.speech implementation
    - get_speech_client(): Factory building the client from AppConfig

Error Surface:
    Provider failures are translated by exception type, never by
    inspecting the message text:

        openai.AuthenticationError   -> CredentialError  (401 INVALID_API_KEY)
        openai.PermissionDeniedError -> CredentialError  (401 INVALID_API_KEY)
        openai.RateLimitError        -> QuotaError       (429 QUOTA_EXCEEDED)
        any other openai.OpenAIError -> ProviderError    (500 GENERATION_ERROR)

Construction:
    The client is built once at startup. A missing API key raises
    ConfigurationError immediately instead of failing on first use.

Implementing a New Provider:
    1. Inherit from SpeechClient
    2. Implement synthesize() returning MP3 bytes
    3. Raise the tagged errors from tta_bot.core.errors
"""
from __future__ import annotations

from typing import Optional

import httpx
import openai
from openai import AsyncOpenAI

from tta_bot.core.config import AppConfig
from tta_bot.core.errors import ConfigurationError, CredentialError, ProviderError, QuotaError
from tta_bot.core.logging import get_logger, verbose, warn

_LOG = get_logger("tta-bot.speech")


class SpeechClient:
    """
    Base class for speech providers.

    Subclasses implement synthesize(); callers only ever pass validated,
    trimmed text and voice/speed values from the reference tables.

    Attributes:
        name: Provider identifier used in logs and health output.
        model: Provider model identifier.
    """
    name: str = "base"
    model: str = ""

    async def synthesize(self, text: str, voice: str, speed: float) -> bytes:
        """
        Generate MP3 audio for text.

        Raises:
            CredentialError: Credential missing or rejected.
            QuotaError: Quota exhausted or rate limited.
            ProviderError: Any other provider failure.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources."""


class OpenAISpeechClient(SpeechClient):
    """OpenAI audio.speech client (model tts-1, MP3 output)."""
    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "tts-1",
        timeout_s: float = 60.0,
        max_retries: int = 0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        self.model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_s,
            max_retries=max_retries,
            http_client=http_client,
        )

    async def synthesize(self, text: str, voice: str, speed: float) -> bytes:
        verbose(_LOG, "provider_call", model=self.model, voice=voice, speed=speed, chars=len(text))
        try:
            response = await self._client.audio.speech.create(
                model=self.model,
                voice=voice,
                input=text,
                speed=speed,
                response_format="mp3",
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            warn(_LOG, "provider_rejected_credential", status=e.status_code)
            raise CredentialError() from e
        except openai.RateLimitError as e:
            warn(_LOG, "provider_quota_exceeded", status=e.status_code)
            raise QuotaError() from e
        except openai.OpenAIError as e:
            warn(_LOG, "provider_error", error_type=type(e).__name__, error=str(e))
            raise ProviderError(str(e) or type(e).__name__) from e

        audio = response.content
        if not audio:
            raise ProviderError("Provider returned empty audio")
        return audio

    async def aclose(self) -> None:
        await self._client.close()


def get_speech_client(config: AppConfig) -> SpeechClient:
    """
    Build the speech client for the configured provider.

    Raises:
        ConfigurationError: If the API key is absent.
    """
    return OpenAISpeechClient(
        api_key=config.speech.api_key,
        model=config.speech.model,
        timeout_s=config.speech.timeout_s,
        max_retries=config.speech.max_retries,
    )
