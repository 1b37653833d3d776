"""Tests for delivery token issuance, validation and node selection."""

import re

import pytest

from dashpipe.core.delivery_tokens import TOKEN_PREFIXES, DeliveryTokenStore
from dashpipe.core.errors import CredentialExpired, CredentialNotFound
from dashpipe.core.nodes import NodeSelector
from dashpipe.core.sessions import SessionStore

DELIVERY_TTL = 60
SESSION_TTL = 3600
TOKEN_PATTERN = re.compile(r"^(1aa|1ab)@[A-Za-z0-9_-]{36}$")


def _store(clock):
    return DeliveryTokenStore("delivery-salt-for-tests", DELIVERY_TTL, clock=clock)


@pytest.mark.asyncio
async def test_token_shape(clock):
    store = _store(clock)
    token = await store.issue("session", "cs5", "angel-one")
    assert TOKEN_PATTERN.match(token)
    assert token.split("@")[0] in TOKEN_PREFIXES


@pytest.mark.asyncio
async def test_identical_inputs_at_different_instants_differ(clock):
    store = _store(clock)
    first = await store.issue("session", "cs5", "angel-one")
    clock.advance(0.001)
    second = await store.issue("session", "cs5", "angel-one")
    assert first.split("@")[1] != second.split("@")[1]
    assert len(store) == 2


@pytest.mark.asyncio
async def test_validate_returns_binding_and_seconds_left(clock):
    store = _store(clock)
    token = await store.issue("session", "cs7", "angel-one")
    clock.advance(15)
    record, seconds_left = await store.validate(token)
    assert record.session_token == "session"
    assert record.node == "cs7"
    assert record.content_id == "angel-one"
    assert seconds_left == 45


@pytest.mark.asyncio
async def test_expired_token_mentions_the_window(clock):
    store = _store(clock)
    token = await store.issue("session", "cs5", "angel-one")
    clock.advance(DELIVERY_TTL + 1)
    with pytest.raises(CredentialExpired) as exc_info:
        await store.validate(token)
    assert "60s limit reached" in exc_info.value.reason
    with pytest.raises(CredentialNotFound):
        await store.validate(token)


@pytest.mark.asyncio
async def test_delivery_window_ignores_remaining_session_time(clock):
    sessions = SessionStore("session-salt-for-tests", SESSION_TTL, clock=clock)
    deliveries = _store(clock)
    session_token = await sessions.issue("demo", "10.0.0.1")
    session = await sessions.validate(session_token)

    clock.advance(SESSION_TTL - 1)
    await sessions.validate(session_token)
    token = await deliveries.issue(session_token, "cs6", "angel-one")
    record, _ = await deliveries.validate(token)

    assert record.expires_at == clock.now + DELIVERY_TTL
    assert record.expires_at > session.expires_at

    # The session lapses first; the delivery token is checked on its own
    clock.advance(30)
    with pytest.raises(CredentialExpired):
        await sessions.validate(session_token)
    await deliveries.validate(token)


@pytest.mark.asyncio
async def test_sweep_only_removes_expired(clock):
    store = _store(clock)
    old = await store.issue("session", "cs5", "angel-one")
    clock.advance(DELIVERY_TTL + 1)
    fresh = await store.issue("session", "cs5", "angel-one")

    assert await store.sweep() == 1
    with pytest.raises(CredentialNotFound):
        await store.validate(old)
    await store.validate(fresh)


def test_node_selection_stays_in_pool():
    selector = NodeSelector(("cs5", "cs6", "cs7", "cs8"), "bpcdn{node}.example.lk")
    picks = {selector.select() for _ in range(200)}
    assert picks <= {"cs5", "cs6", "cs7", "cs8"}
    assert len(picks) > 1
    assert selector.hostname("cs6") == "bpcdncs6.example.lk"


def test_node_pool_must_not_be_empty():
    with pytest.raises(ValueError):
        NodeSelector(())
