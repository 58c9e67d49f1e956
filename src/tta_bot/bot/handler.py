"""
Chat Handler for Telegram Updates.

Each incoming message is either a command (see commands.py) or text to
convert. Conversion follows the same pipeline as the HTTP API:

    1. Validate (empty / over-length text gets a plain rejection reply)
    2. Resolve voice and speed from the chat's preferences
    3. Post "Converting text to audio..." and synthesize
    4. Upload the MP3 with a caption, delete the processing message
    5. Schedule the delayed delete of the temp file

Any failure from step 3 on is caught: the processing message is removed
best-effort and the chat gets a generic apology. Provider details are
logged, never sent to the chat.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from tta_bot.bot.commands import (
    Command,
    HelpCommand,
    ListSpeedsCommand,
    ListVoicesCommand,
    SetSpeedCommand,
    SetVoiceCommand,
    StartCommand,
    UnknownCommand,
    parse_command,
)
from tta_bot.bot.preferences import PreferenceStore
from tta_bot.bot.telegram import TelegramClient, TelegramError
from tta_bot.core.config import Defaults
from tta_bot.core.errors import ErrorCode, ValidationError
from tta_bot.core.logging import exception, get_logger, info, success, verbose, warn
from tta_bot.services.audio_service import AudioService
from tta_bot.tts.storage import GeneratedFile
from tta_bot.tts.voices import SPEED_OPTIONS, VOICE_OPTIONS

_LOG = get_logger("tta-bot.chat")

MSG_NO_TEXT = "❌ Please send me text to convert to audio!"
MSG_PROCESSING = "🎵 Converting text to audio..."
MSG_FAILURE = "❌ Sorry, I couldn't process your message. Please try again later."
MSG_INVALID_VOICE = "❌ Invalid voice. Use /voice to see available options."
MSG_INVALID_SPEED = "❌ Invalid speed. Use /speed to see available options."
MSG_UNKNOWN_COMMAND = "❓ Unknown command. Use /help to see what I can do."

AUDIO_TITLE = "Generated Audio"
AUDIO_PERFORMER = "TTS Bot"


def format_speed(speed: float) -> str:
    """1.0 -> "1", 0.75 -> "0.75"."""
    return f"{speed:g}"


def build_caption(
    user_name: str,
    voice: str,
    speed: float,
    text: str,
    preview_chars: int = Defaults.TELEGRAM_CAPTION_PREVIEW_CHARS,
) -> str:
    """Caption for a generated audio attachment, echoing the start of the text."""
    echo = text[:preview_chars] + ("..." if len(text) > preview_chars else "")
    return (
        f"🎵 Here's your audio, {user_name}! (Voice: {voice}, Speed: {format_speed(speed)}x)"
        f'\n\n"{echo}"'
    )


def too_long_message(max_length: int) -> str:
    return f"❌ Text too long! Maximum {max_length} characters allowed."


def welcome_message(user_name: str, max_length: int) -> str:
    return (
        f"🎵 Welcome to Text-to-Audio Bot, {user_name}! 🎵\n\n"
        "I convert your text messages into audio using OpenAI's text-to-speech.\n\n"
        "🚀 Quick Start:\n"
        "1. Send me any text message\n"
        "2. Get an MP3 audio file back\n"
        "3. Play it anywhere!\n\n"
        f"🎙️ Voices ({len(VOICE_OPTIONS)} options):\n"
        "• /voice - See all voices\n"
        "• /setvoice nova - Set energetic voice\n"
        "• /setvoice alloy - Set balanced voice (default)\n\n"
        f"⚡ Speeds ({len(SPEED_OPTIONS)} options):\n"
        "• /speed - See all speeds\n"
        "• /setspeed 1.0 - Normal speed\n"
        "• /setspeed 0.8 - Relaxed speed (default)\n\n"
        f"Up to {max_length} characters per message. Use /help for details."
    )


def help_message(max_length: int) -> str:
    speeds = ", ".join(format_speed(s.value) for s in SPEED_OPTIONS)
    return (
        "📖 Help & Commands:\n\n"
        "🎙️ Voice:\n"
        "/voice - See all available voices\n"
        "/setvoice [name] - Change voice (e.g. /setvoice nova)\n\n"
        "⚡ Speed:\n"
        "/speed - See all available speeds\n"
        f"/setspeed [speed] - Change speed (available: {speeds})\n\n"
        "📋 General:\n"
        "/start - Welcome message\n"
        "/help - Show this help\n\n"
        "📝 Send any text message and I'll reply with an MP3 in your chosen voice and speed.\n\n"
        f"⚠️ Maximum {max_length} characters per message."
    )


def voice_list_message(current: str) -> str:
    lines = ["🎙️ Available Voices:", ""]
    for voice in VOICE_OPTIONS:
        marker = "✅" if voice.value == current else "🔸"
        lines.append(f"{marker} {voice.label} ({voice.value}) - {voice.description}")
    lines += ["", "Send /setvoice [voice_name], e.g. /setvoice nova", f"🎯 Your current voice: {current}"]
    return "\n".join(lines)


def speed_list_message(current: float) -> str:
    lines = ["⚡ Available Speeds:", ""]
    for speed in SPEED_OPTIONS:
        marker = "✅" if speed.value == current else "🔸"
        lines.append(f"{marker} {speed.label} - {speed.description}")
    lines += ["", "Send /setspeed [speed], e.g. /setspeed 1.25", f"🎯 Your current speed: {format_speed(current)}x"]
    return "\n".join(lines)


class ChatHandler:
    """
    Turns Telegram updates into replies.

    handle_update() never raises for a failed conversion, so one bad
    message cannot stop the poller from serving later ones.
    """

    def __init__(
        self,
        service: AudioService,
        telegram: TelegramClient,
        preferences: Optional[PreferenceStore] = None,
        caption_preview_chars: int = Defaults.TELEGRAM_CAPTION_PREVIEW_CHARS,
    ):
        self._service = service
        self._telegram = telegram
        self._preferences = preferences or PreferenceStore(
            default_voice=service.default_voice,
            default_speed=service.default_speed,
        )
        self._caption_preview_chars = caption_preview_chars

    @property
    def preferences(self) -> PreferenceStore:
        return self._preferences

    async def handle_update(self, update: Dict[str, Any]) -> None:
        message = update.get("message")
        if not isinstance(message, dict):
            verbose(_LOG, "update_skipped", update_id=update.get("update_id"))
            return

        chat_id = message.get("chat", {}).get("id")
        if chat_id is None:
            return
        text = message.get("text")
        first_name = (message.get("from") or {}).get("first_name")

        command = parse_command(text)
        if command is not None:
            await self.handle_command(chat_id, command, first_name or "there")
        else:
            await self.convert(chat_id, text, first_name or "User")

    async def handle_command(self, chat_id: int, command: Command, user_name: str = "there") -> None:
        verbose(_LOG, "command", chat_id=chat_id, command=type(command).__name__)
        pref = self._preferences.get(chat_id)
        max_length = self._service.max_length

        if isinstance(command, StartCommand):
            reply = welcome_message(user_name, max_length)
        elif isinstance(command, HelpCommand):
            reply = help_message(max_length)
        elif isinstance(command, ListVoicesCommand):
            reply = voice_list_message(pref.voice)
        elif isinstance(command, ListSpeedsCommand):
            reply = speed_list_message(pref.speed)
        elif isinstance(command, SetVoiceCommand):
            if command.value and self._preferences.set_voice(chat_id, command.value):
                reply = f"✅ Voice set to: {command.value}"
            else:
                reply = MSG_INVALID_VOICE
        elif isinstance(command, SetSpeedCommand):
            speed = _parse_speed(command.value)
            if speed is not None and self._preferences.set_speed(chat_id, speed):
                reply = f"✅ Speed set to: {format_speed(speed)}x"
            else:
                reply = MSG_INVALID_SPEED
        elif isinstance(command, UnknownCommand):
            reply = MSG_UNKNOWN_COMMAND
        else:
            raise TypeError(f"unhandled command: {command!r}")

        await self._reply(chat_id, reply)

    async def convert(self, chat_id: int, text: Optional[str], user_name: str = "User") -> None:
        """Convert a text message and send the audio back to the chat."""
        pref = self._preferences.get(chat_id)
        try:
            request = self._service.build_request(text, pref.voice, pref.speed, channel="chat")
        except ValidationError as e:
            if e.code == ErrorCode.TEXT_TOO_LONG:
                await self._reply(chat_id, too_long_message(self._service.max_length))
            else:
                await self._reply(chat_id, MSG_NO_TEXT)
            return

        processing_id: Optional[int] = None
        generated: Optional[GeneratedFile] = None
        try:
            processing = await self._telegram.send_message(chat_id, MSG_PROCESSING)
            processing_id = processing.get("message_id")

            generated = await self._service.generate(request, channel="chat")
            await self._telegram.send_audio(
                chat_id,
                generated.path,
                caption=build_caption(user_name, request.voice, request.speed, request.text,
                                      self._caption_preview_chars),
                title=AUDIO_TITLE,
                performer=AUDIO_PERFORMER,
            )
            success(_LOG, "delivered", chat_id=chat_id, file=generated.name)
        except Exception as e:
            exception(_LOG, "chat_failed", chat_id=chat_id, error=str(e), error_type=type(e).__name__)
            await self._discard(chat_id, processing_id)
            await self._reply(chat_id, MSG_FAILURE)
        else:
            await self._discard(chat_id, processing_id)
        finally:
            if generated is not None:
                self._service.release(generated)

    async def _discard(self, chat_id: int, message_id: Optional[int]) -> None:
        if message_id is None:
            return
        try:
            await self._telegram.delete_message(chat_id, message_id)
        except TelegramError as e:
            warn(_LOG, "delete_message_failed", chat_id=chat_id, error=str(e))

    async def _reply(self, chat_id: int, text: str) -> None:
        try:
            await self._telegram.send_message(chat_id, text)
        except TelegramError as e:
            warn(_LOG, "reply_failed", chat_id=chat_id, error=str(e))
        else:
            info(_LOG, "replied", chat_id=chat_id, chars=len(text))


def _parse_speed(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
