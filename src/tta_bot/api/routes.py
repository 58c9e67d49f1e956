"""
tta-bot API Routes.

Endpoints:
    POST /api/generate-audio  - Convert text to MP3 (audio/mpeg body)
    GET  /api/voices          - Voice reference table
    GET  /api/speeds          - Speed reference table
    GET  /api/bot-info        - Telegram bot identity
    GET  /api/health          - Liveness, memory, temp storage
    POST /api/validate-text   - Dry-run text validation
    GET  /                    - Server and bot status summary
    GET  /metrics             - Prometheus metrics

Request Flow (generate-audio):
    1. Generate a request ID for tracing
    2. AudioService.build_request() validates text/voice/speed
    3. AudioService.generate() synthesizes and stages the MP3
    4. FileResponse streams the file
    5. A background task, run after the body is sent, schedules the
       delayed delete

Error Handling:
    All errors are returned as JSON:
    {
        "error": "<human readable message>",
        "code": "<ERROR_CODE>",
        ...details
    }

    Status codes come from the TTAError subclass:
        - ValidationError -> 400
        - CredentialError -> 401
        - QuotaError -> 429
        - ProviderError / DeliveryError -> 500

Example Usage:
    >>> import httpx
    >>> r = httpx.post("http://localhost:3001/api/generate-audio",
    ...                json={"text": "Hello world", "voice": "nova", "speed": 1.0})
    >>> open("hello.mp3", "wb").write(r.content)
"""
from __future__ import annotations

import platform
import uuid
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, Depends, Response
from fastapi.responses import FileResponse, JSONResponse
from starlette.background import BackgroundTask

from tta_bot import __version__
from tta_bot.api.dependencies import AppServices, get_audio_service, get_services
from tta_bot.api.schemas import GenerateAudioRequest, ValidateTextRequest
from tta_bot.bot.telegram import TelegramError
from tta_bot.core.errors import DeliveryError, ErrorCode, TTAError
from tta_bot.core.logging import error, get_logger, set_request_id, warn
from tta_bot.core.metrics import metrics
from tta_bot.services.audio_service import AudioService
from tta_bot.services.validators import validate_text
from tta_bot.tts.storage import GeneratedFile

# /api/* endpoints
router = APIRouter(prefix="/api")

# Root summary and metrics
root_router = APIRouter()

_LOG = get_logger("tta-bot.api")

ENDPOINTS = {
    "health": "/api/health",
    "generateAudio": "/api/generate-audio",
    "voices": "/api/voices",
    "speeds": "/api/speeds",
    "botInfo": "/api/bot-info",
    "validateText": "/api/validate-text",
    "metrics": "/metrics",
}


def _error_response(err: TTAError) -> JSONResponse:
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


async def _release_after_send(service: AudioService, generated: GeneratedFile) -> None:
    service.release(generated)


@router.post("/generate-audio", response_class=FileResponse)
async def generate_audio(
    req: GenerateAudioRequest,
    service: AudioService = Depends(get_audio_service),
):
    """
    Convert text to speech and return the MP3.

    Returns:
        FileResponse: audio/mpeg body with X-Request-Id header.

    Raises:
        400: MISSING_TEXT, TEXT_TOO_LONG, INVALID_VOICE, INVALID_SPEED
        401: INVALID_API_KEY
        429: QUOTA_EXCEEDED
        500: GENERATION_ERROR, SEND_FILE_ERROR

    Example:
        curl -X POST http://localhost:3001/api/generate-audio \\
            -H "Content-Type: application/json" \\
            -d '{"text": "Hello world", "voice": "nova"}' \\
            --output speech.mp3
    """
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)

    try:
        synth_request = service.build_request(req.text, req.voice, req.speed, channel="http")
        generated = await service.generate(synth_request, channel="http")
    except TTAError as e:
        return _error_response(e)

    if not generated.path.is_file():
        error(_LOG, "send_file_error", file=generated.name)
        return _error_response(DeliveryError())

    return FileResponse(
        generated.path,
        media_type="audio/mpeg",
        filename=generated.name,
        headers={"X-Request-Id": rid},
        background=BackgroundTask(_release_after_send, service, generated),
    )


@router.get("/voices")
def voices(service: AudioService = Depends(get_audio_service)):
    """List the selectable voices."""
    try:
        items = service.list_voices()
    except Exception as e:
        error(_LOG, "voices_error", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to get voice options", "code": ErrorCode.VOICES_ERROR},
        )
    return {"success": True, "voices": items, "count": len(items)}


@router.get("/speeds")
def speeds(service: AudioService = Depends(get_audio_service)):
    """List the selectable playback speeds."""
    items = service.list_speeds()
    return {"success": True, "speeds": items, "count": len(items), "default": service.default_speed}


@router.get("/bot-info")
async def bot_info(services: AppServices = Depends(get_services)):
    """
    Telegram bot identity from getMe.

    Returns 500 BOT_INFO_ERROR when the bot is disabled or Telegram
    cannot be reached.
    """
    bot_error = JSONResponse(
        status_code=500,
        content={"error": "Failed to get bot information", "code": ErrorCode.BOT_INFO_ERROR},
    )
    if services.telegram is None:
        return bot_error
    try:
        info = await services.telegram.get_me()
    except TelegramError as e:
        warn(_LOG, "bot_info_error", error=e.message)
        return bot_error
    return {"success": True, "bot": info.to_dict()}


@router.get("/health")
def health(services: AppServices = Depends(get_services)):
    """
    Health check for the web UI and load balancers.

    Returns:
        dict: success, timestamp, uptime, memory, version, env, plus
        temp storage usage, lifetime store counters and the number of
        pending delayed deletes.
    """
    mem = psutil.Process().memory_info()
    return {
        "success": True,
        "timestamp": _now_iso(),
        "uptime": round(services.uptime_s, 3),
        "memory": {"rss": mem.rss, "vms": mem.vms},
        "version": platform.python_version(),
        "appVersion": __version__,
        "env": services.config.server.env,
        "telegram": services.telegram is not None,
        "storage": services.store.get_storage_info(),
        "storage_stats": services.store.get_stats(),
        "pending_deletes": services.store.pending_count,
    }


@router.post("/validate-text")
def validate_text_endpoint(
    req: ValidateTextRequest,
    services: AppServices = Depends(get_services),
):
    """Validate text without calling the speech provider."""
    text_config = services.config.text
    result = validate_text(req.text, text_config.max_length, text_config.warn_length)
    return {
        "success": True,
        "validation": result.to_dict(),
        "textLength": len(req.text) if req.text else 0,
        "maxLength": text_config.max_length,
    }


@root_router.get("/")
async def root(services: AppServices = Depends(get_services)):
    """Server and bot status summary with the endpoint map."""
    bot: dict = {"active": False, "error": "Bot not responding"}
    if services.telegram is None:
        bot["error"] = "Bot disabled"
    else:
        try:
            info = await services.telegram.get_me()
            bot = {"active": True, "username": info.username, "name": info.first_name}
        except TelegramError as e:
            warn(_LOG, "bot_info_error", error=e.message)

    return {
        "message": "Telegram Text-to-Audio Bot Server",
        "status": "running",
        "timestamp": _now_iso(),
        "version": __version__,
        "bot": bot,
        "endpoints": ENDPOINTS,
    }


@root_router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
