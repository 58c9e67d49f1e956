"""
Tests for AudioService, the shared text-to-audio pipeline.

Tests cover:
- build_request(): defaults, trimming, every rejection code
- generate(): provider call, staged file, error propagation and wrapping
- release(): delayed delete of the staged file
- list_voices() / list_speeds()
"""
import asyncio

import pytest

from conftest import FAKE_MP3, FakeSpeechClient
from tta_bot.core.config import SpeechConfig, TextConfig
from tta_bot.core.errors import CredentialError, ErrorCode, ProviderError, QuotaError, ValidationError
from tta_bot.services.audio_service import AudioService, SynthesisRequest


@pytest.fixture
def service(fake_speech, store):
    return AudioService(fake_speech, store)


class TestBuildRequest:
    """Tests for validation in build_request()."""

    def test_defaults_applied(self, service):
        request = service.build_request("Hello")
        assert request == SynthesisRequest(text="Hello", voice="alloy", speed=0.8)

    def test_explicit_values(self, service):
        request = service.build_request("Hello", voice="nova", speed=1.25)
        assert request.voice == "nova"
        assert request.speed == 1.25

    def test_integer_speed_normalized(self, service):
        assert service.build_request("Hello", speed=1).speed == 1.0

    def test_configured_defaults(self, fake_speech, store):
        service = AudioService(fake_speech, store, speech_config=SpeechConfig(default_voice="echo", default_speed=1.5))
        request = service.build_request("Hello")
        assert (request.voice, request.speed) == ("echo", 1.5)

    def test_input_text_is_trimmed(self, service):
        request = service.build_request("  Hello  \n")
        assert request.text == "  Hello  \n"
        assert request.input_text == "Hello"

    @pytest.mark.parametrize("text", [None, "", 42])
    def test_missing_text(self, service, text):
        with pytest.raises(ValidationError) as exc:
            service.build_request(text)
        assert exc.value.code == ErrorCode.MISSING_TEXT
        assert exc.value.message == "Text is required"
        assert exc.value.status_code == 400

    def test_blank_text(self, service):
        with pytest.raises(ValidationError) as exc:
            service.build_request("   \n ")
        assert exc.value.code == ErrorCode.MISSING_TEXT
        assert exc.value.message == "Text cannot be empty"

    def test_too_long(self, service):
        with pytest.raises(ValidationError) as exc:
            service.build_request("x" * 4097)
        assert exc.value.code == ErrorCode.TEXT_TOO_LONG
        assert exc.value.to_dict() == {
            "error": "Text too long (max 4096 characters)",
            "code": "TEXT_TOO_LONG",
            "maxLength": 4096,
            "currentLength": 4097,
        }

    def test_exactly_max_length_accepted(self, service):
        assert service.build_request("x" * 4096).text == "x" * 4096

    def test_configured_max_length(self, fake_speech, store):
        service = AudioService(fake_speech, store, text_config=TextConfig(max_length=10, warn_length=5))
        assert service.max_length == 10
        with pytest.raises(ValidationError):
            service.build_request("x" * 11)

    def test_invalid_voice(self, service):
        with pytest.raises(ValidationError) as exc:
            service.build_request("Hello", voice="robot")
        assert exc.value.code == ErrorCode.INVALID_VOICE
        assert "robot" in exc.value.message

    @pytest.mark.parametrize("speed", [3.0, 0.25, "1.0", True])
    def test_invalid_speed(self, service, speed):
        with pytest.raises(ValidationError) as exc:
            service.build_request("Hello", speed=speed)
        assert exc.value.code == ErrorCode.INVALID_SPEED

    def test_rejection_never_calls_provider(self, service, fake_speech):
        with pytest.raises(ValidationError):
            service.build_request("", voice="robot")
        assert fake_speech.calls == []


class TestGenerate:
    """Tests for generate()."""

    def test_success(self, service, fake_speech, store):
        request = service.build_request("  Hello world ", voice="nova", speed=1.0)

        generated = asyncio.run(service.generate(request))

        assert fake_speech.calls == [("Hello world", "nova", 1.0)]
        assert generated.path.read_bytes() == FAKE_MP3
        assert generated.voice == "nova"
        assert generated.path.parent == store.base_dir
        assert generated.name.endswith("_nova.mp3")

    @pytest.mark.parametrize("error", [CredentialError(), QuotaError(), ProviderError("boom")])
    def test_tagged_errors_propagate(self, store, error):
        service = AudioService(FakeSpeechClient(error=error), store)
        request = service.build_request("Hello")

        with pytest.raises(type(error)) as exc:
            asyncio.run(service.generate(request))

        assert exc.value is error
        assert not store.base_dir.exists() or list(store.base_dir.iterdir()) == []

    def test_untagged_error_is_wrapped(self, store):
        service = AudioService(FakeSpeechClient(error=RuntimeError("socket closed")), store)
        request = service.build_request("Hello")

        with pytest.raises(ProviderError) as exc:
            asyncio.run(service.generate(request))

        assert exc.value.code == ErrorCode.GENERATION_ERROR
        assert exc.value.reason == "socket closed"
        assert isinstance(exc.value.__cause__, RuntimeError)

    def test_write_failure_is_provider_error(self, fake_speech, tmp_path):
        from tta_bot.tts.storage import TempFileStore

        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"file, not a directory")
        service = AudioService(fake_speech, TempFileStore(blocker))

        with pytest.raises(ProviderError, match="Failed to generate audio") as exc:
            asyncio.run(service.generate(service.build_request("Hello")))
        assert "Could not write audio file" in exc.value.reason


class TestRelease:
    def test_release_deletes_after_delay(self, service):
        async def scenario():
            generated = await service.generate(service.build_request("Hello"))
            task = service.release(generated, delay_s=0.01)
            assert generated.path.exists()
            await task
            return generated

        generated = asyncio.run(scenario())
        assert not generated.path.exists()

    def test_release_uses_store_delay(self, service, store):
        async def scenario():
            generated = await service.generate(service.build_request("Hello"))
            await service.release(generated)
            return generated

        generated = asyncio.run(scenario())
        assert not generated.path.exists()
        assert store.pending_count == 0


class TestListings:
    def test_list_voices(self, service):
        voices = service.list_voices()
        assert [v["value"] for v in voices] == ["alloy", "echo", "fable", "onyx", "nova", "shimmer"]
        assert set(voices[0]) == {"value", "label", "description", "gender", "style"}

    def test_list_speeds(self, service):
        speeds = service.list_speeds()
        assert [s["value"] for s in speeds] == [0.5, 0.75, 0.8, 1.0, 1.25, 1.5, 2.0]
        assert speeds[2] == {"value": 0.8, "label": "0.8x", "description": "Relaxed (Default)"}
