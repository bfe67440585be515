"""Request logging middleware."""

from __future__ import annotations

import time

from loguru import logger
from starlette.types import ASGIApp, Message, Receive, Scope, Send


class RequestLoggingMiddleware:
    """Emit one access line per request with status and latency.

    Plain ASGI so the endpoint keeps the server's own ``receive`` and can
    observe client disconnects.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status_code = 500

        async def send_with_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            client = scope.get("client")
            logger.info(
                "{method} {path} -> {status} ({elapsed:.1f} ms)",
                method=scope.get("method", ""),
                path=scope.get("path", ""),
                status=status_code,
                elapsed=elapsed_ms,
                client=client[0] if client else "unknown",
            )
