"""Middleware to append security-related HTTP headers.

Written as a plain ASGI middleware so streamed segment bodies pass through
untouched and a client disconnect still reaches the streaming response.
"""
from __future__ import annotations

from typing import Dict, Optional

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

_NO_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class SecurityHeadersMiddleware:
    """Append security headers to every response."""

    def __init__(self, app: ASGIApp, headers: Dict[str, Optional[str]], no_cache_prefix: str = "/delivery/"):
        self.app = app
        # Entries set to None are disabled for this environment
        self.headers = {name: value for name, value in headers.items() if value}
        self.no_cache_prefix = no_cache_prefix

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        no_cache = scope.get("path", "").startswith(self.no_cache_prefix)

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    headers[name] = value
                # Tokens in these URLs expire; caches must not outlive them
                if no_cache:
                    for name, value in _NO_CACHE.items():
                        headers[name] = value
                # Remove server information disclosure
                if "server" in headers:
                    del headers["server"]
            await send(message)

        await self.app(scope, receive, send_with_headers)
