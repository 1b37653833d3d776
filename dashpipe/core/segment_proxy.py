"""Streaming pass-through of media segments from the upstream origin.

The upstream body is never buffered: ``stream_body`` yields raw chunks as they
arrive and closes the upstream response when the consumer stops, including when
the client disconnects mid-transfer.
"""
from __future__ import annotations

import logging
from typing import AsyncIterator, Dict, Final, Optional

import httpx
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from dashpipe.core.errors import UpstreamNotFound, UpstreamTransportError
from dashpipe.core.validation import is_subtitle_path, validate_segment_path

logger = logging.getLogger(__name__)

DEFAULT_SEGMENT_MEDIA_TYPE: Final[str] = "video/mp4"
CHUNK_SIZE: Final[int] = 64 * 1024

# Upstream headers worth relaying alongside the body
_PASSTHROUGH_HEADERS: Final = ("content-length", "content-range", "accept-ranges", "last-modified", "etag")


class SegmentProxy:
    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=100, keepalive_expiry=30.0),
            transport=transport,
        )

    def upstream_url(self, segment_path: str) -> str:
        return f"{self.base_url}/{segment_path}"

    async def open(
        self,
        segment_path: str,
        *,
        method: str = "GET",
        range_header: Optional[str] = None,
    ) -> httpx.Response:
        """Start the upstream request and return the unread streaming response.

        Raises ``UpstreamNotFound`` for subtitle paths (without contacting the
        origin) and for upstream 404s, and ``UpstreamTransportError`` when the
        origin cannot be reached.
        """
        if is_subtitle_path(segment_path):
            raise UpstreamNotFound()
        validate_segment_path(segment_path)

        headers = {"User-Agent": self.user_agent, "Accept-Encoding": "identity"}
        if range_header:
            headers["Range"] = range_header

        request = self._client.build_request(method, self.upstream_url(segment_path), headers=headers)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TransportError as e:
            logger.error("Upstream transport error for %s: %s", segment_path, e)
            raise UpstreamTransportError() from e

        if response.status_code == 404:
            await response.aclose()
            raise UpstreamNotFound()
        return response

    @staticmethod
    def relay_headers(response: httpx.Response) -> Dict[str, str]:
        headers = {name: response.headers[name] for name in _PASSTHROUGH_HEADERS if name in response.headers}
        return headers

    @staticmethod
    def media_type(response: httpx.Response) -> str:
        return response.headers.get("content-type", DEFAULT_SEGMENT_MEDIA_TYPE)

    @staticmethod
    async def stream_body(response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_raw(CHUNK_SIZE):
                yield chunk
        except httpx.TransportError as e:
            # Headers are already sent; the client sees a truncated body.
            logger.error("Upstream stream interrupted: %s", e)
            raise
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()


class SegmentResponse(StreamingResponse):
    """Streams an upstream segment and always releases the upstream response.

    ``stream_body`` closes it once iteration starts; the ``finally`` below
    covers a client that goes away before the first chunk is pulled.
    Closing an httpx response twice is a no-op.
    """

    def __init__(self, upstream: httpx.Response, headers: Dict[str, str]):
        super().__init__(
            SegmentProxy.stream_body(upstream),
            status_code=upstream.status_code,
            media_type=SegmentProxy.media_type(upstream),
            headers=headers,
        )
        self.upstream = upstream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.upstream.aclose()
