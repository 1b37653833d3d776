"""Tests for the rate limiting key."""

from starlette.requests import Request

from dashpipe.core.limiter import get_rate_limit_key


def _request(path: str, query: str = "", user_agent: str = "Player/1.0", ip: str = "203.0.113.7") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "raw_path": path.encode(),
        "query_string": query.encode(),
        "headers": [(b"user-agent", user_agent.encode())],
        "client": (ip, 50000),
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


def test_segment_fetches_are_keyed_on_the_delivery_token():
    first = get_rate_limit_key(_request("/delivery/1aa@first/seg/v-1.m4s"))
    second = get_rate_limit_key(_request("/delivery/1ab@second/seg/v-1.m4s"))
    assert first == "delivery:1aa@first"
    assert second == "delivery:1ab@second"
    # Same address and browser, separate budgets
    assert first != second


def test_manifest_fetch_uses_the_delivery_token():
    assert get_rate_limit_key(_request("/delivery/1aa@abc/manifest.mpd")) == "delivery:1aa@abc"


def test_gate_is_keyed_on_the_session_token():
    assert get_rate_limit_key(_request("/gate/angel-one", "token=abc123")) == "session:abc123"
    assert get_rate_limit_key(_request("/gate/angel-one", "credential=abc123")) == "session:abc123"


def test_anonymous_requests_fall_back_to_address_and_agent():
    key = get_rate_limit_key(_request("/login"))
    assert key.startswith("anon:203.0.113.7:")
    assert get_rate_limit_key(_request("/delivery/")).startswith("anon:")
