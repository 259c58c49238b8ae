"""Permissive CORS handling.

Every HTTP response carries wildcard CORS headers so that pages served from
another origin (for example a mobile app's web view) can call the API.
Any OPTIONS request is answered directly with an empty 204.

Starlette's CORSMiddleware only decorates requests that carry an Origin
header and answers preflights with 200, so a small ASGI middleware is used
instead.
"""
from typing import List, Tuple

from fastapi import FastAPI
from starlette.types import ASGIApp, Message, Receive, Scope, Send

CORS_HEADERS: List[Tuple[str, str]] = [
    ("access-control-allow-origin", "*"),
    ("access-control-allow-methods", "GET, POST, OPTIONS"),
    ("access-control-allow-headers", "*"),
]


class PermissiveCORSMiddleware:
    """ASGI middleware adding CORS headers to every HTTP response."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self._raw_headers = [(k.encode("latin-1"), v.encode("latin-1")) for k, v in CORS_HEADERS]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            await send({
                "type": "http.response.start",
                "status": 204,
                "headers": list(self._raw_headers),
            })
            await send({"type": "http.response.body", "body": b""})
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                existing = {name.lower() for name, _ in message.get("headers", [])}
                headers = list(message.get("headers", []))
                headers.extend(h for h in self._raw_headers if h[0] not in existing)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_cors)


def configure_cors(app: FastAPI) -> None:
    """Apply the permissive CORS policy to *app*."""
    app.add_middleware(PermissiveCORSMiddleware)
