"""Shared test fixtures for DashPipe tests."""

import os

# Rate limits would trip on the many logins a test run performs
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import httpx
import pytest
from fastapi.testclient import TestClient

from dashpipe.core.context import create_context
from dashpipe.main import create_app

UPSTREAM_PREFIX = "/shaka-demo-assets/angel-one-clearkey/"


class FakeClock:
    """Manually advanced stand-in for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _BodyStream(httpx.AsyncByteStream):
    """Unread response body, as a real origin would deliver it."""

    def __init__(self, body: bytes):
        self.body = body

    async def __aiter__(self):
        yield self.body


def _response(status: int, body: bytes, headers: dict | None = None) -> httpx.Response:
    headers = {**(headers or {}), "content-length": str(len(body))}
    return httpx.Response(status, headers=headers, stream=_BodyStream(body))


class FakeOrigin:
    """In-process upstream origin served through ``httpx.MockTransport``."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.segments = {
            "v-0144p-0100k-libx264-init.mp4": b"\x00\x00\x00\x18ftypiso6init",
            "v-0144p-0100k-libx264-1.m4s": bytes(range(256)) * 64,
        }
        self.unreachable = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("origin unreachable", request=request)

        name = request.url.path[len(UPSTREAM_PREFIX):]
        body = self.segments.get(name)
        if not request.url.path.startswith(UPSTREAM_PREFIX) or body is None:
            return _response(404, b"Not Found")

        range_header = request.headers.get("range")
        if range_header:
            start, end = (int(part) for part in range_header.removeprefix("bytes=").split("-"))
            chunk = body[start:end + 1]
            return _response(
                206,
                chunk,
                headers={
                    "content-type": "video/mp4",
                    "content-range": f"bytes {start}-{end}/{len(body)}",
                    "accept-ranges": "bytes",
                },
            )
        return _response(200, body, headers={"content-type": "video/mp4"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
def ctx(clock, origin):
    return create_context(clock=clock, upstream_transport=origin.transport())


@pytest.fixture
def client(ctx):
    with TestClient(create_app(ctx)) as test_client:
        yield test_client


def login(client, username="demo", password="demo123") -> str:
    response = client.post("/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def open_gate(client, session_token, content_id="angel-one"):
    return client.get(f"/gate/{content_id}", params={"token": session_token}, follow_redirects=False)
