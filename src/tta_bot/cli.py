"""
Command-Line Interface for tta-bot.

Runs the server and offers offline maintenance commands that need no
API credentials.

Usage Examples:
    # Start the HTTP server and Telegram bot
    tta-bot serve --port 3001

    # Remove temp files older than 10 minutes
    tta-bot sweep --max-age 600

    # Remove every temp file
    tta-bot sweep --max-age 0 --json

    # Check text without generating audio
    tta-bot validate "Hello world" --json

    # List voices and speeds
    tta-bot voices

Environment Variables:
    TTA_BOT_SETTINGS: Settings file (default: config/settings.yaml)
    OPENAI_API_KEY, TELEGRAM_BOT_TOKEN, PORT, TEMP_DIR: see core/config.py
"""

from __future__ import annotations

import argparse
import json
import os
from typing import List, Optional

from tta_bot.core.config import load_settings
from tta_bot.core.logging import configure_logging, get_logger, info
from tta_bot.services.validators import validate_text
from tta_bot.tts.storage import TempFileStore
from tta_bot.tts.voices import DEFAULT_SPEED, DEFAULT_VOICE, SPEED_OPTIONS, VOICE_OPTIONS


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Optional list of arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(prog="tta-bot", description="Telegram text-to-audio bot and HTTP server")
    parser.add_argument("--settings", help="Path to settings.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server and Telegram bot")
    serve.add_argument("--host", help="Bind address (default from settings)")
    serve.add_argument("--port", type=int, help="Port (default from settings / $PORT)")
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes")

    sweep = sub.add_parser("sweep", help="Delete old files from the temp directory")
    sweep.add_argument("--max-age", type=float, default=None,
                       help="Age threshold in seconds (0 = delete everything)")
    sweep.add_argument("--json", action="store_true", help="Print JSON output")

    validate = sub.add_parser("validate", help="Validate text without generating audio")
    validate.add_argument("text", help="Text to validate")
    validate.add_argument("--json", action="store_true", help="Print JSON output")

    voices = sub.add_parser("voices", help="List voices and speeds")
    voices.add_argument("--json", action="store_true", help="Print JSON output")

    return parser.parse_args(argv)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    if args.settings:
        # create_app() runs in the uvicorn process and reads this
        os.environ["TTA_BOT_SETTINGS"] = args.settings
    config = load_settings(args.settings).get_app_config()
    uvicorn.run(
        "tta_bot.main:create_app",
        factory=True,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        reload=args.reload,
        log_level="warning",
    )
    return 0


def _sweep(args: argparse.Namespace) -> int:
    config = load_settings(args.settings).get_app_config()
    store = TempFileStore(config.storage.temp_dir, max_age_s=config.storage.max_age_seconds)
    info(get_logger("tta-bot.cli"), "sweep_start", temp_dir=config.storage.temp_dir, max_age_s=args.max_age)

    result = store.sweep(args.max_age)
    if args.json:
        print(json.dumps({"ok": result["errors"] == 0, "temp_dir": config.storage.temp_dir, **result}))
    else:
        print(f"Removed {result['files_removed']} file(s), freed {result['bytes_freed']} bytes"
              f" ({result['errors']} error(s))")
    return 0 if result["errors"] == 0 else 1


def _validate(args: argparse.Namespace) -> int:
    config = load_settings(args.settings).get_app_config()
    result = validate_text(args.text, config.text.max_length, config.text.warn_length)

    if args.json:
        payload = {
            "validation": result.to_dict(),
            "textLength": len(args.text),
            "maxLength": config.text.max_length,
        }
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print("VALID" if result.is_valid else "INVALID")
        for msg in result.errors:
            print(f"  error: {msg}")
        for msg in result.warnings:
            print(f"  warning: {msg}")
    return 0 if result.is_valid else 1


def _voices(args: argparse.Namespace) -> int:
    if args.json:
        payload = {
            "voices": [v.to_dict() for v in VOICE_OPTIONS],
            "speeds": [s.to_dict() for s in SPEED_OPTIONS],
            "default_voice": DEFAULT_VOICE,
            "default_speed": DEFAULT_SPEED,
        }
        print(json.dumps(payload, ensure_ascii=False))
        return 0

    print("Voices:")
    for v in VOICE_OPTIONS:
        marker = "*" if v.value == DEFAULT_VOICE else " "
        print(f" {marker} {v.value:<8} {v.gender:<8} {v.style:<15} {v.description}")
    print("Speeds:")
    for s in SPEED_OPTIONS:
        marker = "*" if s.value == DEFAULT_SPEED else " "
        print(f" {marker} {s.label:<6} {s.description}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code (0 for success).
    """
    args = _parse_args(argv)
    configure_logging()

    if args.command == "serve":
        return _serve(args)
    if args.command == "sweep":
        return _sweep(args)
    if args.command == "validate":
        return _validate(args)
    return _voices(args)


if __name__ == "__main__":
    raise SystemExit(main())
