"""
Telegram Long-Polling Loop.

Updates are fetched with getUpdates and handled strictly one at a time,
in arrival order. Preference writes for a chat therefore never race.

Any polling error is logged and retried with exponential back-off
capped at max_retry_delay_s. Bot API and network failures log a
warning; unexpected exceptions log a traceback.
"""
from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Dict, Optional, Protocol

from tta_bot.bot.telegram import TelegramClient, TelegramError
from tta_bot.core.config import Defaults
from tta_bot.core.logging import exception, get_logger, info, set_request_id, verbose, warn

_LOG = get_logger("tta-bot.poller")


class UpdateHandler(Protocol):
    async def handle_update(self, update: Dict[str, Any]) -> None: ...


class BotPoller:
    """Runs the getUpdates loop as a background task."""

    def __init__(
        self,
        client: TelegramClient,
        handler: UpdateHandler,
        poll_timeout_s: int = Defaults.TELEGRAM_POLL_TIMEOUT_S,
        retry_delay_s: float = 1.0,
        max_retry_delay_s: float = 60.0,
    ):
        self._client = client
        self._handler = handler
        self._poll_timeout_s = poll_timeout_s
        self._retry_delay_s = retry_delay_s
        self._max_retry_delay_s = max_retry_delay_s
        self._offset: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def offset(self) -> Optional[int]:
        return self._offset

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run(), name="telegram-poller")
            info(_LOG, "polling_started", poll_timeout_s=self._poll_timeout_s)
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        info(_LOG, "polling_stopped")

    async def poll_once(self) -> int:
        """
        Fetch and handle one batch of updates.

        Returns:
            Number of updates handled.

        Raises:
            TelegramError: If getUpdates fails.
        """
        updates = await self._client.get_updates(self._offset, self._poll_timeout_s)
        for update in updates:
            update_id = update.get("update_id")
            if isinstance(update_id, int):
                self._offset = update_id + 1
            set_request_id(f"tg-{update_id}")
            try:
                await self._handler.handle_update(update)
            except Exception as e:
                exception(_LOG, "update_failed", update_id=update_id, error=str(e))
            finally:
                set_request_id("-")
        if updates:
            verbose(_LOG, "updates_handled", count=len(updates), offset=self._offset)
        return len(updates)

    async def _run(self) -> None:
        delay = self._retry_delay_s
        while True:
            try:
                await self.poll_once()
            except TelegramError as e:
                warn(_LOG, "polling_error", error=e.message, retry_in_s=delay)
            except Exception as e:
                exception(_LOG, "polling_crashed", error=str(e), error_type=type(e).__name__, retry_in_s=delay)
            else:
                delay = self._retry_delay_s
                continue
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._max_retry_delay_s)
