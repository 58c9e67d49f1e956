"""
FastAPI Application Entry Point.

This module builds the FastAPI application for tta-bot: the HTTP API for
the web UI plus, in the same process, the Telegram bot poller.

Startup (lifespan):
    1. Create the temp directory and start the hourly sweeper
    2. Start the Telegram client and long-polling loop (if enabled)

Shutdown (lifespan):
    1. Stop the poller and Telegram client
    2. Cancel pending delayed deletes, stop the sweeper
    3. Sweep the temp directory completely
    4. Close the speech client

Construction fails fast: a missing OPENAI_API_KEY (or TELEGRAM_BOT_TOKEN
while Telegram is enabled) raises ConfigurationError from create_app().

Usage:
    # Run with uvicorn (factory mode)
    uvicorn tta_bot.main:create_app --factory --host 0.0.0.0 --port 3001

    # Or via the CLI
    tta-bot serve
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tta_bot import __version__
from tta_bot.api.dependencies import AppServices
from tta_bot.api.middleware import BodySizeLimitMiddleware
from tta_bot.api.routes import root_router, router
from tta_bot.bot.handler import ChatHandler
from tta_bot.bot.poller import BotPoller
from tta_bot.bot.preferences import PreferenceStore
from tta_bot.bot.telegram import TelegramClient, TelegramError
from tta_bot.core.config import Settings, load_settings
from tta_bot.core.errors import ErrorCode, TTAError
from tta_bot.core.logging import (
    configure_logging,
    exception,
    get_logger,
    info,
    success,
    verbose,
    warn,
)
from tta_bot.services.audio_service import AudioService
from tta_bot.tts.speech import SpeechClient, get_speech_client
from tta_bot.tts.storage import TempFileStore
from tta_bot.utils.timeit import timeit

_LOG = get_logger("tta-bot.main")


def create_app(
    settings: Optional[Settings] = None,
    *,
    speech_client: Optional[SpeechClient] = None,
    telegram_client: Optional[TelegramClient] = None,
    store: Optional[TempFileStore] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Loaded settings; defaults to load_settings().
        speech_client: Speech provider; defaults to the configured one.
        telegram_client: Bot API client; defaults to one built from
            settings when Telegram is enabled.
        store: Temp file store; defaults to the configured temp dir.

    Returns:
        FastAPI: Configured application instance.

    Raises:
        ConfigurationError: A required credential is missing.
        ConfigValidationError: A settings value is out of range.
    """
    configure_logging()

    settings = settings or load_settings()
    config = settings.get_app_config()

    speech_client = speech_client or get_speech_client(config)
    store = store or TempFileStore(
        config.storage.temp_dir,
        max_age_s=config.storage.max_age_seconds,
        delete_delay_s=config.storage.delete_delay_seconds,
    )
    audio = AudioService(
        speech_client,
        store,
        text_config=config.text,
        speech_config=config.speech,
        preview_chars=config.logging.text_preview_chars,
    )

    services = AppServices(
        settings=settings,
        config=config,
        speech_client=speech_client,
        store=store,
        audio=audio,
    )

    if telegram_client is None and config.telegram.enabled:
        telegram_client = TelegramClient(
            config.telegram.token,
            api_base=config.telegram.api_base,
            timeout_s=config.telegram.request_timeout_s,
        )
    if telegram_client is not None:
        services.telegram = telegram_client
        services.chat_handler = ChatHandler(
            audio,
            telegram_client,
            PreferenceStore(
                default_voice=config.speech.default_voice,
                default_speed=config.speech.default_speed,
            ),
            caption_preview_chars=config.telegram.caption_preview_chars,
        )
        services.poller = BotPoller(
            telegram_client,
            services.chat_handler,
            poll_timeout_s=config.telegram.poll_timeout_s,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.ensure_dir()
        store.start_sweeper(config.storage.sweep_interval_seconds)

        if services.telegram is not None:
            await services.telegram.start()
            try:
                me = await services.telegram.get_me()
                info(_LOG, "bot_connected", username=me.username)
            except TelegramError as e:
                warn(_LOG, "bot_unreachable", error=e.message)
            services.poller.start()

        success(
            _LOG, "server_started",
            version=__version__,
            env=config.server.env,
            telegram=services.telegram is not None,
            temp_dir=str(store.base_dir),
        )
        try:
            yield
        finally:
            info(_LOG, "shutting_down")
            if services.poller is not None:
                await services.poller.stop()
            if services.telegram is not None:
                await services.telegram.stop()
            store.cancel_pending()
            await store.stop_sweeper()
            store.sweep(0)
            await speech_client.aclose()
            success(_LOG, "shutdown_complete")

    app = FastAPI(title="tta-bot", version=__version__, lifespan=lifespan)
    app.state.services = services

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        with timeit("request") as t:
            response = await call_next(request)
        verbose(
            _LOG, "http",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            seconds=round(t.seconds, 4),
        )
        return response

    # Added last so CORS wraps every response, 413s included
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=config.server.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.server.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if any(e.get("type") == "json_invalid" for e in errors):
            return JSONResponse(
                status_code=400,
                content={"error": "Invalid JSON in request body", "code": ErrorCode.INVALID_JSON},
            )
        fields = [".".join(str(p) for p in e.get("loc", ()) if p != "body") for e in errors]
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request body",
                "code": ErrorCode.INVALID_REQUEST,
                "fields": [f for f in fields if f],
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Endpoint not found",
                    "code": ErrorCode.NOT_FOUND,
                    "path": request.url.path,
                    "method": request.method,
                },
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "code": ErrorCode.INVALID_REQUEST},
        )

    @app.exception_handler(TTAError)
    async def on_tta_error(request: Request, exc: TTAError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def on_unexpected_error(request: Request, exc: Exception):
        exception(_LOG, "server_error", path=request.url.path, error_type=type(exc).__name__)
        message = str(exc) if config.server.env == "development" else "Something went wrong"
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": ErrorCode.INTERNAL_ERROR, "message": message},
        )

    app.include_router(router)
    app.include_router(root_router)

    return app
