"""
ASGI middleware for the HTTP API.

BodySizeLimitMiddleware enforces server.max_body_bytes on every request.
A declared Content-Length over the cap is rejected before anything is
read. Bodies without one (chunked uploads) are counted as they arrive
and rejected as soon as the running total passes the cap; smaller ones
are buffered and replayed to the application unchanged.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from tta_bot.core.errors import ErrorCode
from tta_bot.core.logging import get_logger, warn

_LOG = get_logger("tta-bot.http")


def payload_too_large() -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content={"error": "Request payload too large", "code": ErrorCode.PAYLOAD_TOO_LARGE},
    )


class BodySizeLimitMiddleware:
    """Reject request bodies larger than max_body_bytes with 413."""

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = _declared_length(scope)
        if declared is not None:
            if declared > self.max_body_bytes:
                await self._reject(scope, receive, send, declared)
                return
            await self.app(scope, receive, send)
            return

        chunks: List[bytes] = []
        received = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                # Client went away before finishing the body
                await self.app(scope, _replay([], message, receive), send)
                return
            body = message.get("body", b"")
            received += len(body)
            if received > self.max_body_bytes:
                await self._reject(scope, receive, send, received)
                return
            chunks.append(body)
            if not message.get("more_body", False):
                break

        await self.app(scope, _replay(chunks, None, receive), send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        warn(_LOG, "payload_too_large", path=scope.get("path"), bytes=size, limit=self.max_body_bytes)
        await payload_too_large()(scope, receive, send)


def _declared_length(scope: Scope) -> Optional[int]:
    value = Headers(scope=scope).get("content-length")
    if value is not None and value.isdigit():
        return int(value)
    return None


def _replay(chunks: List[bytes], pending: Optional[Message], receive: Receive) -> Receive:
    """Build a receive callable that yields the buffered body first."""
    queue: List[Dict[str, Any]] = []
    if pending is None:
        queue.append({"type": "http.request", "body": b"".join(chunks), "more_body": False})
    else:
        queue.append(pending)

    async def _receive() -> Message:
        if queue:
            return queue.pop(0)
        return await receive()

    return _receive
