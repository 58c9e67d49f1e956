"""
Tests for the HTTP API.

The app is built around a fake speech client (and, where needed, a fake
Telegram client), so no credentials or network are involved.

Tests cover:
- POST /api/generate-audio success, file cleanup, every error code
- Body-size limit (413) for declared and chunked bodies, malformed JSON,
  wrong field types
- 404 shape for unknown routes and wrong methods
- GET /api/voices, /api/speeds, /api/health, /api/bot-info, /, /metrics
- POST /api/validate-text
- CORS allowed origin, including on 413 responses
- Shutdown sweep of the temp directory
"""
import time

import pytest
from fastapi.testclient import TestClient

from conftest import FAKE_MP3, FakeSpeechClient, FakeTelegram
from tta_bot.core.errors import CredentialError, ProviderError, QuotaError
from tta_bot.main import create_app

GENERATE = "/api/generate-audio"


@pytest.fixture
def client(make_settings, fake_speech):
    with TestClient(create_app(make_settings(), speech_client=fake_speech)) as c:
        yield c


def _wait_empty(directory, timeout_s: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if not directory.exists() or not any(directory.iterdir()):
            return True
        time.sleep(0.02)
    return False


class TestGenerateAudio:
    """Tests for POST /api/generate-audio."""

    def test_success(self, client, fake_speech, temp_dir):
        r = client.post(GENERATE, json={"text": "Hello world", "voice": "nova", "speed": 1.0})

        assert r.status_code == 200
        assert r.headers["content-type"] == "audio/mpeg"
        assert r.content == FAKE_MP3
        assert len(r.headers["x-request-id"]) == 12
        assert fake_speech.calls == [("Hello world", "nova", 1.0)]

    def test_file_removed_after_send(self, client, temp_dir):
        r = client.post(GENERATE, json={"text": "Hello world", "voice": "nova", "speed": 1.0})
        assert r.status_code == 200
        assert _wait_empty(temp_dir)

    def test_defaults(self, client, fake_speech):
        r = client.post(GENERATE, json={"text": "Hello"})
        assert r.status_code == 200
        assert fake_speech.calls == [("Hello", "alloy", 0.8)]

    def test_text_is_trimmed_for_provider(self, client, fake_speech):
        client.post(GENERATE, json={"text": "  Hello  "})
        assert fake_speech.calls[0][0] == "Hello"

    @pytest.mark.parametrize("body", [{}, {"text": ""}, {"text": None}])
    def test_missing_text(self, client, fake_speech, body):
        r = client.post(GENERATE, json=body)
        assert r.status_code == 400
        assert r.json() == {"error": "Text is required", "code": "MISSING_TEXT"}
        assert fake_speech.calls == []

    def test_blank_text(self, client):
        r = client.post(GENERATE, json={"text": "   "})
        assert r.status_code == 400
        assert r.json() == {"error": "Text cannot be empty", "code": "MISSING_TEXT"}

    def test_too_long(self, client, fake_speech):
        r = client.post(GENERATE, json={"text": "x" * 4097})
        assert r.status_code == 400
        assert r.json() == {
            "error": "Text too long (max 4096 characters)",
            "code": "TEXT_TOO_LONG",
            "maxLength": 4096,
            "currentLength": 4097,
        }
        assert fake_speech.calls == []

    def test_invalid_voice(self, client):
        r = client.post(GENERATE, json={"text": "Hello", "voice": "robot"})
        assert r.status_code == 400
        assert r.json()["code"] == "INVALID_VOICE"

    def test_invalid_speed(self, client):
        r = client.post(GENERATE, json={"text": "Hello", "speed": 3.0})
        assert r.status_code == 400
        assert r.json()["code"] == "INVALID_SPEED"

    def test_speed_string_not_coerced(self, client):
        r = client.post(GENERATE, json={"text": "Hello", "speed": "1.0"})
        assert r.status_code == 400
        assert r.json()["code"] == "INVALID_REQUEST"
        assert r.json()["fields"] == ["speed"]

    def test_wrong_type(self, client):
        r = client.post(GENERATE, json={"text": 123})
        assert r.status_code == 400
        assert r.json()["code"] == "INVALID_REQUEST"
        assert r.json()["fields"] == ["text"]

    def test_malformed_json(self, client):
        r = client.post(GENERATE, content=b'{"text": "Hel', headers={"content-type": "application/json"})
        assert r.status_code == 400
        assert r.json() == {"error": "Invalid JSON in request body", "code": "INVALID_JSON"}

    @pytest.mark.parametrize("error,status,code", [
        (CredentialError(), 401, "INVALID_API_KEY"),
        (QuotaError(), 429, "QUOTA_EXCEEDED"),
        (ProviderError("upstream timeout"), 500, "GENERATION_ERROR"),
    ])
    def test_provider_errors(self, make_settings, temp_dir, error, status, code):
        app = create_app(make_settings(), speech_client=FakeSpeechClient(error=error))
        with TestClient(app) as client:
            r = client.post(GENERATE, json={"text": "Hello"})

        assert r.status_code == status
        assert r.json()["code"] == code
        assert not temp_dir.exists() or list(temp_dir.iterdir()) == []

    def test_untagged_provider_failure(self, make_settings):
        app = create_app(make_settings(), speech_client=FakeSpeechClient(error=RuntimeError("reset by peer")))
        with TestClient(app) as client:
            r = client.post(GENERATE, json={"text": "Hello"})

        assert r.status_code == 500
        assert r.json() == {
            "error": "Failed to generate audio",
            "code": "GENERATION_ERROR",
            "message": "reset by peer",
        }


class TestRequestLimits:
    def test_payload_too_large(self, make_settings, fake_speech):
        app = create_app(make_settings(server={"max_body_bytes": 100}), speech_client=fake_speech)
        with TestClient(app) as client:
            r = client.post(GENERATE, json={"text": "x" * 200})

        assert r.status_code == 413
        assert r.json() == {"error": "Request payload too large", "code": "PAYLOAD_TOO_LARGE"}
        assert fake_speech.calls == []

    def test_chunked_body_counted(self, make_settings, fake_speech):
        payload = b'{"text": "' + b"x" * 500 + b'"}'

        def chunks():
            for i in range(0, len(payload), 64):
                yield payload[i:i + 64]

        app = create_app(make_settings(server={"max_body_bytes": 100}), speech_client=fake_speech)
        with TestClient(app) as client:
            r = client.post(GENERATE, content=chunks(), headers={"Content-Type": "application/json"})

        assert r.status_code == 413
        assert r.json()["code"] == "PAYLOAD_TOO_LARGE"
        assert fake_speech.calls == []

    def test_small_chunked_body_passes(self, make_settings, fake_speech):
        payload = b'{"text": "Hello world"}'

        def chunks():
            yield payload[:10]
            yield payload[10:]

        app = create_app(make_settings(server={"max_body_bytes": 100}), speech_client=fake_speech)
        with TestClient(app) as client:
            r = client.post(GENERATE, content=chunks(), headers={"Content-Type": "application/json"})

        assert r.status_code == 200
        assert fake_speech.calls == [("Hello world", "alloy", 0.8)]

    def test_unknown_route(self, client):
        r = client.get("/api/nope")
        assert r.status_code == 404
        assert r.json() == {
            "error": "Endpoint not found",
            "code": "NOT_FOUND",
            "path": "/api/nope",
            "method": "GET",
        }

    def test_wrong_method_is_not_found(self, client):
        r = client.get(GENERATE)
        assert r.status_code == 404
        assert r.json()["code"] == "NOT_FOUND"
        assert r.json()["method"] == "GET"


class TestReferenceEndpoints:
    def test_voices(self, client):
        body = client.get("/api/voices").json()
        assert body["success"] is True
        assert body["count"] == 6
        assert body["voices"][0]["value"] == "alloy"

    def test_speeds(self, client):
        body = client.get("/api/speeds").json()
        assert body["success"] is True
        assert body["count"] == 7
        assert body["default"] == 0.8
        assert [s["value"] for s in body["speeds"]] == [0.5, 0.75, 0.8, 1.0, 1.25, 1.5, 2.0]

    def test_validate_text(self, client):
        body = client.post("/api/validate-text", json={"text": "Hello"}).json()
        assert body == {
            "success": True,
            "validation": {"isValid": True, "errors": [], "warnings": []},
            "textLength": 5,
            "maxLength": 4096,
        }

    def test_validate_text_missing(self, client):
        body = client.post("/api/validate-text", json={}).json()
        assert body["validation"]["isValid"] is False
        assert body["validation"]["errors"] == ["Text is required"]
        assert body["textLength"] == 0

    def test_validate_text_too_long(self, client, fake_speech):
        body = client.post("/api/validate-text", json={"text": "x" * 5000}).json()
        assert body["validation"]["errors"] == ["Text too long (5000/4096 characters)"]
        assert body["validation"]["warnings"] == ["Long text may take longer to generate"]
        assert fake_speech.calls == []


class TestHealth:
    def test_health(self, client, temp_dir):
        r = client.get("/api/health")
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["timestamp"].endswith("Z")
        assert body["uptime"] >= 0
        assert body["memory"]["rss"] > 0
        assert body["appVersion"] == "1.0.0"
        assert body["env"] == "development"
        assert body["telegram"] is False
        assert body["storage"]["temp_dir"] == str(temp_dir)
        assert body["storage_stats"] == {
            "total_files_saved": 0,
            "total_files_deleted": 0,
            "total_bytes_freed": 0,
            "total_errors": 0,
        }
        assert body["pending_deletes"] == 0

    def test_root_bot_disabled(self, client):
        body = client.get("/").json()
        assert body["message"] == "Telegram Text-to-Audio Bot Server"
        assert body["status"] == "running"
        assert body["bot"] == {"active": False, "error": "Bot disabled"}
        assert body["endpoints"]["generateAudio"] == GENERATE

    def test_metrics(self, client):
        client.post(GENERATE, json={"text": "Hello"})
        r = client.get("/metrics")
        assert r.status_code == 200
        assert "tta_requests_total" in r.text
        assert "tta_files_deleted_total" in r.text

    def test_unexpected_error(self, make_settings, fake_speech):
        app = create_app(make_settings(), speech_client=fake_speech)

        def boom():
            raise RuntimeError("table unavailable")

        app.state.services.audio.list_speeds = boom
        with TestClient(app, raise_server_exceptions=False) as client:
            r = client.get("/api/speeds")

        assert r.status_code == 500
        assert r.json() == {
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
            "message": "table unavailable",
        }

    def test_unexpected_error_hidden_in_production(self, make_settings, fake_speech):
        app = create_app(make_settings(server={"env": "production"}), speech_client=fake_speech)

        def boom():
            raise RuntimeError("table unavailable")

        app.state.services.audio.list_speeds = boom
        with TestClient(app, raise_server_exceptions=False) as client:
            r = client.get("/api/speeds")

        assert r.json()["message"] == "Something went wrong"


class TestBotEndpoints:
    def test_bot_info(self, make_settings, fake_speech):
        telegram = FakeTelegram()
        app = create_app(make_settings(), speech_client=fake_speech, telegram_client=telegram)
        with TestClient(app) as client:
            assert telegram.started is True
            assert app.state.services.poller.running is True
            r = client.get("/api/bot-info")

        assert r.status_code == 200
        assert r.json() == {
            "success": True,
            "bot": {"id": 123456, "username": "tta_test_bot", "first_name": "TTA Bot", "is_bot": True},
        }
        assert telegram.started is False

    def test_bot_info_disabled(self, client):
        r = client.get("/api/bot-info")
        assert r.status_code == 500
        assert r.json() == {"error": "Failed to get bot information", "code": "BOT_INFO_ERROR"}

    def test_bot_info_unreachable(self, make_settings, fake_speech):
        app = create_app(make_settings(), speech_client=fake_speech, telegram_client=FakeTelegram(fail_on=("getMe",)))
        with TestClient(app) as client:
            r = client.get("/api/bot-info")
            root = client.get("/").json()

        assert r.status_code == 500
        assert r.json()["code"] == "BOT_INFO_ERROR"
        assert root["bot"] == {"active": False, "error": "Bot not responding"}

    def test_root_bot_active(self, make_settings, fake_speech):
        app = create_app(make_settings(), speech_client=fake_speech, telegram_client=FakeTelegram())
        with TestClient(app) as client:
            body = client.get("/").json()

        assert body["bot"] == {"active": True, "username": "tta_test_bot", "name": "TTA Bot"}


class TestCors:
    def test_allowed_origin(self, client):
        r = client.get("/api/voices", headers={"Origin": "http://localhost:3002"})
        assert r.headers["access-control-allow-origin"] == "http://localhost:3002"

    def test_other_origin(self, client):
        r = client.get("/api/voices", headers={"Origin": "https://evil.example.com"})
        assert "access-control-allow-origin" not in r.headers

    def test_preflight(self, client):
        r = client.options(GENERATE, headers={
            "Origin": "http://localhost:3002",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        })
        assert r.status_code == 200
        assert r.headers["access-control-allow-origin"] == "http://localhost:3002"

    def test_payload_too_large_has_cors_headers(self, make_settings, fake_speech):
        app = create_app(make_settings(server={"max_body_bytes": 100}), speech_client=fake_speech)
        with TestClient(app) as client:
            r = client.post(
                GENERATE,
                json={"text": "x" * 200},
                headers={"Origin": "http://localhost:3002"},
            )

        assert r.status_code == 413
        assert r.headers["access-control-allow-origin"] == "http://localhost:3002"


class TestLifecycle:
    def test_shutdown_sweeps_temp_dir(self, make_settings, fake_speech, temp_dir):
        app = create_app(make_settings(storage={"delete_delay_seconds": 60}), speech_client=fake_speech)
        with TestClient(app) as client:
            client.post(GENERATE, json={"text": "Hello"})
            (temp_dir / "stray.mp3").write_bytes(b"left over")
            assert len(list(temp_dir.iterdir())) == 2

        assert list(temp_dir.iterdir()) == []
        assert app.state.services.store.pending_count == 0
        assert fake_speech.closed is True

    def test_startup_creates_temp_dir(self, make_settings, fake_speech, temp_dir):
        with TestClient(create_app(make_settings(), speech_client=fake_speech)):
            assert temp_dir.is_dir()

    def test_missing_openai_key_fails_fast(self, make_settings, monkeypatch):
        from tta_bot.core.errors import ConfigurationError

        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            create_app(make_settings())

    def test_missing_telegram_token_fails_fast(self, make_settings, fake_speech):
        from tta_bot.core.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="TELEGRAM_BOT_TOKEN"):
            create_app(make_settings(telegram={"enabled": True}), speech_client=fake_speech)

    def test_unknown_default_voice_fails_fast(self, make_settings, fake_speech):
        from tta_bot.core.config import ConfigValidationError

        with pytest.raises(ConfigValidationError, match="speech.default_voice"):
            create_app(make_settings(speech={"default_voice": "robot"}), speech_client=fake_speech)
