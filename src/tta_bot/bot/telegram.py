"""Async client for the Telegram Bot API."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from tta_bot.core.config import Defaults
from tta_bot.core.errors import ConfigurationError, DeliveryError


class TelegramError(DeliveryError):
    """Raised when a Bot API call fails in transport or returns ok=false."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, details)


@dataclass(frozen=True)
class BotInfo:
    id: int
    username: str
    first_name: str
    is_bot: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TelegramClient:
    """
    Minimal async wrapper around the Bot API methods the bot uses.

    getMe, getUpdates, sendMessage, sendAudio and deleteMessage are all
    POSTed to {api_base}/bot{token}/{method}.
    """

    def __init__(
        self,
        token: Optional[str],
        api_base: str = Defaults.TELEGRAM_API_BASE,
        timeout_s: float = Defaults.TELEGRAM_REQUEST_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise ConfigurationError("TELEGRAM_BOT_TOKEN is not set")
        self._base_url = f"{api_base.rstrip('/')}/bot{token}"
        self._timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def started(self) -> bool:
        return self._client is not None

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_s,
                transport=self._transport,
            )

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_me(self) -> BotInfo:
        result = await self._call("getMe")
        try:
            return BotInfo(
                id=int(result["id"]),
                username=str(result.get("username", "")),
                first_name=str(result.get("first_name", "")),
                is_bot=bool(result.get("is_bot", True)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TelegramError("invalid getMe payload") from e

    async def get_updates(self, offset: Optional[int] = None, timeout_s: int = 0) -> List[Dict[str, Any]]:
        """
        Long-poll for new updates.

        The HTTP timeout is extended by timeout_s so the server can hold
        the request open for the full poll window.
        """
        payload: Dict[str, Any] = {"timeout": timeout_s, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        result = await self._call("getUpdates", json=payload, timeout=self._timeout_s + timeout_s)
        if not isinstance(result, list):
            raise TelegramError("invalid getUpdates payload: expected a list")
        return [u for u in result if isinstance(u, dict)]

    async def send_message(self, chat_id: int | str, text: str) -> Dict[str, Any]:
        return await self._call("sendMessage", json={"chat_id": chat_id, "text": text})

    async def send_audio(
        self,
        chat_id: int | str,
        path: str | Path,
        caption: str = "",
        title: str = "Generated Audio",
        performer: str = "TTS Bot",
    ) -> Dict[str, Any]:
        """Upload an MP3 file as an audio attachment."""
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise TelegramError("Failed to send audio file", {"file": path.name}) from e

        data = {
            "chat_id": str(chat_id),
            "caption": caption,
            "title": title,
            "performer": performer,
        }
        files = {"audio": (path.name, content, "audio/mpeg")}
        return await self._call("sendAudio", data=data, files=files)

    async def delete_message(self, chat_id: int | str, message_id: int) -> bool:
        return bool(await self._call("deleteMessage", json={"chat_id": chat_id, "message_id": message_id}))

    async def _call(self, method: str, timeout: Optional[float] = None, **kwargs: Any) -> Any:
        client = self._require_client()
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            resp = await client.post(f"/{method}", **kwargs)
        except httpx.HTTPError as e:
            msg = str(e).strip() or e.__class__.__name__
            raise TelegramError(f"{method} request failed: {msg}") from e

        try:
            body = resp.json()
        except ValueError as e:
            raise TelegramError(f"invalid JSON response from {method} ({resp.status_code})") from e

        if not isinstance(body, dict) or not body.get("ok"):
            detail = body.get("description") if isinstance(body, dict) else None
            raise TelegramError(
                f"{method} returned {resp.status_code}: {detail or 'unknown error'}",
                {"status": resp.status_code},
            )
        return body.get("result")

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("telegram client not started")
        return self._client
