"""
Request Context and Configuration State for Logging.

A contextvar carries the current request id so every log line emitted
while handling one HTTP request or one chat update can be correlated.
Module-level state holds the active level and file settings.

Environment Variables:
    - TTA_BOT_LOG_LEVEL: Override log level (1-4 or name)
    - TTA_BOT_LOG_DIR: Directory for the JSONL log file
    - TTA_BOT_JSONL_FILE: JSONL filename
    - TTA_BOT_LOG_ROTATE_BYTES: Max file size before rotation
    - TTA_BOT_LOG_ROTATE_BACKUP: Number of rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

from .levels import LEVEL_NAMES, LogLevel

# "-" marks log lines emitted outside any request
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Get the request id of the current context, or "-"."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Set the request id for the current context."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _env_int(cfg: Dict[str, Any], env_name: str, key: str) -> None:
    value = os.getenv(env_name)
    if not value:
        return
    try:
        cfg[key] = int(value)
    except ValueError:
        pass  # ignore malformed numbers, keep file/default value


def read_logging_config() -> Dict[str, Any]:
    """
    Read logging configuration from the settings file and environment.

    Priority (highest first): environment, settings.yaml logging section,
    defaults. An unreadable settings file is ignored here; the application
    factory reports it when it loads settings itself.
    """
    cfg: Dict[str, Any] = {}

    try:
        from tta_bot.core.config import load_settings
        cfg.update(load_settings().raw.get("logging", {}) or {})
    except Exception:
        pass

    if os.getenv("TTA_BOT_LOG_LEVEL"):
        cfg["level"] = os.environ["TTA_BOT_LOG_LEVEL"]
    if os.getenv("TTA_BOT_LOG_DIR"):
        cfg["log_dir"] = os.environ["TTA_BOT_LOG_DIR"]
    if os.getenv("TTA_BOT_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TTA_BOT_JSONL_FILE"]
    _env_int(cfg, "TTA_BOT_LOG_ROTATE_BYTES", "rotate_max_bytes")
    _env_int(cfg, "TTA_BOT_LOG_ROTATE_BACKUP", "rotate_backup_count")

    return cfg
