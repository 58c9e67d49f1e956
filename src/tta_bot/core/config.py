"""
Configuration Management for tta-bot.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration sections
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (OPENAI_API_KEY, TELEGRAM_BOT_TOKEN, PORT, ...)
    2. YAML config file (config/settings.yaml, or $TTA_BOT_SETTINGS)
    3. Defaults class values

Example settings.yaml:
    server:
      port: 3001
      frontend_url: http://localhost:3002

    storage:
      temp_dir: ./temp
      max_age_seconds: 3600

    telegram:
      enabled: true
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import os
import yaml

from tta_bot.tts.voices import speed_values, voice_values


DEFAULT_SETTINGS_PATH = "config/settings.yaml"


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    These values are used when no override is provided via YAML config
    or environment variables.
    """

    # ─────────────────────────────────────────────────────────────────────────
    # HTTP Server
    # ─────────────────────────────────────────────────────────────────────────
    SERVER_HOST = "0.0.0.0"
    SERVER_PORT = 3001
    SERVER_FRONTEND_URL = "http://localhost:3002"   # Only allowed CORS origin
    SERVER_MAX_BODY_BYTES = 10 * 1024 * 1024        # 10MB request body limit
    SERVER_ENV = "development"

    # ─────────────────────────────────────────────────────────────────────────
    # Text limits
    # ─────────────────────────────────────────────────────────────────────────
    TEXT_MAX_LENGTH = 4096          # Provider hard limit
    TEXT_WARN_LENGTH = 3000         # Above this, warn about slow generation

    # ─────────────────────────────────────────────────────────────────────────
    # Speech provider
    # ─────────────────────────────────────────────────────────────────────────
    SPEECH_MODEL = "tts-1"          # tts-1-hd is higher quality but slower
    SPEECH_TIMEOUT_S = 60.0
    SPEECH_MAX_RETRIES = 0
    SPEECH_DEFAULT_VOICE = "alloy"
    SPEECH_DEFAULT_SPEED = 0.8

    # ─────────────────────────────────────────────────────────────────────────
    # Temp file storage
    # ─────────────────────────────────────────────────────────────────────────
    STORAGE_TEMP_DIR = "./temp"
    STORAGE_MAX_AGE_SECONDS = 3600          # Sweep threshold (1 hour)
    STORAGE_SWEEP_INTERVAL_SECONDS = 3600   # Sweep cadence (1 hour)
    STORAGE_DELETE_DELAY_SECONDS = 5.0      # Delay after handoff before delete

    # ─────────────────────────────────────────────────────────────────────────
    # Telegram
    # ─────────────────────────────────────────────────────────────────────────
    TELEGRAM_ENABLED = True
    TELEGRAM_API_BASE = "https://api.telegram.org"
    TELEGRAM_POLL_TIMEOUT_S = 30
    TELEGRAM_REQUEST_TIMEOUT_S = 60.0
    TELEGRAM_CAPTION_PREVIEW_CHARS = 100

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 50
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = Defaults.SERVER_HOST
    port: int = Defaults.SERVER_PORT
    frontend_url: str = Defaults.SERVER_FRONTEND_URL
    max_body_bytes: int = Defaults.SERVER_MAX_BODY_BYTES
    env: str = Defaults.SERVER_ENV


@dataclass
class TextConfig:
    """Text length limits shared by the HTTP and chat paths."""
    max_length: int = Defaults.TEXT_MAX_LENGTH
    warn_length: int = Defaults.TEXT_WARN_LENGTH


@dataclass
class SpeechConfig:
    """
    Speech provider configuration.

    The API key is normally injected from OPENAI_API_KEY rather than
    written to settings.yaml.
    """
    api_key: Optional[str] = None
    model: str = Defaults.SPEECH_MODEL
    timeout_s: float = Defaults.SPEECH_TIMEOUT_S
    max_retries: int = Defaults.SPEECH_MAX_RETRIES
    default_voice: str = Defaults.SPEECH_DEFAULT_VOICE
    default_speed: float = Defaults.SPEECH_DEFAULT_SPEED


@dataclass
class StorageConfig:
    """
    Temp file storage configuration.

    Generated audio lives here between synthesis and delivery. Files are
    removed shortly after handoff and swept once older than max_age_seconds.
    """
    temp_dir: str = Defaults.STORAGE_TEMP_DIR
    max_age_seconds: int = Defaults.STORAGE_MAX_AGE_SECONDS
    sweep_interval_seconds: int = Defaults.STORAGE_SWEEP_INTERVAL_SECONDS
    delete_delay_seconds: float = Defaults.STORAGE_DELETE_DELAY_SECONDS


@dataclass
class TelegramConfig:
    """Telegram bot configuration."""
    enabled: bool = Defaults.TELEGRAM_ENABLED
    token: Optional[str] = None
    api_base: str = Defaults.TELEGRAM_API_BASE
    poll_timeout_s: int = Defaults.TELEGRAM_POLL_TIMEOUT_S
    request_timeout_s: float = Defaults.TELEGRAM_REQUEST_TIMEOUT_S
    caption_preview_chars: int = Defaults.TELEGRAM_CAPTION_PREVIEW_CHARS


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle, cleanup results (default)
        3 = VERBOSE: Per-stage events, polling details
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class AppConfig:
    """
    Validated application configuration.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = AppConfig.from_settings(settings)
        print(config.storage.temp_dir)
    """
    server: ServerConfig = field(default_factory=ServerConfig)
    text: TextConfig = field(default_factory=TextConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AppConfig":
        """
        Create AppConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated AppConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        server_raw = raw.get("server", {}) or {}
        server = ServerConfig(
            host=str(server_raw.get("host", Defaults.SERVER_HOST)),
            port=int(server_raw.get("port", Defaults.SERVER_PORT)),
            frontend_url=str(server_raw.get("frontend_url", Defaults.SERVER_FRONTEND_URL)),
            max_body_bytes=int(server_raw.get("max_body_bytes", Defaults.SERVER_MAX_BODY_BYTES)),
            env=str(server_raw.get("env", Defaults.SERVER_ENV)),
        )
        cls._validate_range("server.port", server.port, 1, 65535)
        cls._validate_positive("server.max_body_bytes", server.max_body_bytes)

        text_raw = raw.get("text", {}) or {}
        text = TextConfig(
            max_length=int(text_raw.get("max_length", Defaults.TEXT_MAX_LENGTH)),
            warn_length=int(text_raw.get("warn_length", Defaults.TEXT_WARN_LENGTH)),
        )
        cls._validate_positive("text.max_length", text.max_length)
        cls._validate_range("text.warn_length", text.warn_length, 0, text.max_length)

        speech_raw = raw.get("speech", {}) or {}
        speech = SpeechConfig(
            api_key=speech_raw.get("api_key") or None,
            model=str(speech_raw.get("model", Defaults.SPEECH_MODEL)),
            timeout_s=float(speech_raw.get("timeout_s", Defaults.SPEECH_TIMEOUT_S)),
            max_retries=int(speech_raw.get("max_retries", Defaults.SPEECH_MAX_RETRIES)),
            default_voice=str(speech_raw.get("default_voice", Defaults.SPEECH_DEFAULT_VOICE)),
            default_speed=float(speech_raw.get("default_speed", Defaults.SPEECH_DEFAULT_SPEED)),
        )
        cls._validate_positive("speech.timeout_s", speech.timeout_s)
        cls._validate_non_negative("speech.max_retries", speech.max_retries)
        cls._validate_choice("speech.default_voice", speech.default_voice, voice_values())
        cls._validate_choice("speech.default_speed", speech.default_speed, speed_values())

        storage_raw = raw.get("storage", {}) or {}
        storage = StorageConfig(
            temp_dir=str(storage_raw.get("temp_dir", Defaults.STORAGE_TEMP_DIR)),
            max_age_seconds=int(storage_raw.get("max_age_seconds", Defaults.STORAGE_MAX_AGE_SECONDS)),
            sweep_interval_seconds=int(
                storage_raw.get("sweep_interval_seconds", Defaults.STORAGE_SWEEP_INTERVAL_SECONDS)
            ),
            delete_delay_seconds=float(
                storage_raw.get("delete_delay_seconds", Defaults.STORAGE_DELETE_DELAY_SECONDS)
            ),
        )
        cls._validate_non_negative("storage.max_age_seconds", storage.max_age_seconds)
        cls._validate_positive("storage.sweep_interval_seconds", storage.sweep_interval_seconds)
        cls._validate_non_negative("storage.delete_delay_seconds", storage.delete_delay_seconds)

        telegram_raw = raw.get("telegram", {}) or {}
        telegram = TelegramConfig(
            enabled=bool(telegram_raw.get("enabled", Defaults.TELEGRAM_ENABLED)),
            token=telegram_raw.get("token") or None,
            api_base=str(telegram_raw.get("api_base", Defaults.TELEGRAM_API_BASE)),
            poll_timeout_s=int(telegram_raw.get("poll_timeout_s", Defaults.TELEGRAM_POLL_TIMEOUT_S)),
            request_timeout_s=float(
                telegram_raw.get("request_timeout_s", Defaults.TELEGRAM_REQUEST_TIMEOUT_S)
            ),
            caption_preview_chars=int(
                telegram_raw.get("caption_preview_chars", Defaults.TELEGRAM_CAPTION_PREVIEW_CHARS)
            ),
        )
        cls._validate_non_negative("telegram.poll_timeout_s", telegram.poll_timeout_s)
        cls._validate_positive("telegram.request_timeout_s", telegram.request_timeout_s)
        cls._validate_positive("telegram.caption_preview_chars", telegram.caption_preview_chars)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(
                logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)
            ),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            server=server,
            text=text,
            speech=speech,
            storage=storage,
            telegram=telegram,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")

    @staticmethod
    def _validate_choice(name: str, value: Any, choices: list) -> None:
        """Validate that a value is one of the reference table entries."""
        if value not in choices:
            raise ConfigValidationError(f"{name} must be one of {choices}, got {value!r}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_app_config() to get a validated AppConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    def get_app_config(self) -> AppConfig:
        """
        Get validated AppConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return AppConfig.from_settings(self)


# Environment variable -> (section, key)
_ENV_OVERRIDES = {
    "OPENAI_API_KEY": ("speech", "api_key"),
    "TELEGRAM_BOT_TOKEN": ("telegram", "token"),
    "PORT": ("server", "port"),
    "FRONTEND_URL": ("server", "frontend_url"),
    "APP_ENV": ("server", "env"),
    "TEMP_DIR": ("storage", "temp_dir"),
}


def apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides to a raw settings dict in place.

    Credentials are only ever read from the environment in production
    deployments, so this is the usual source of api_key and token.
    """
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            if not isinstance(raw.get(section), dict):
                raw[section] = {}
            raw[section][key] = value
    return raw


def load_settings(path: Optional[str] = None, missing_ok: bool = True) -> Settings:
    """
    Load settings from a YAML configuration file.

    Args:
        path: Path to the YAML file. Defaults to $TTA_BOT_SETTINGS or
            config/settings.yaml.
        missing_ok: When True a missing file yields default settings.

    Returns:
        Settings object with loaded configuration and env overrides.

    Raises:
        FileNotFoundError: If the file is missing and missing_ok is False.
    """
    p = Path(path or os.getenv("TTA_BOT_SETTINGS", DEFAULT_SETTINGS_PATH))
    raw: Dict[str, Any] = {}
    if p.exists():
        with p.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    elif not missing_ok:
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    return Settings(raw=apply_env_overrides(raw))
