"""Tests for the expiry sweeper."""

import asyncio

import pytest

from dashpipe.core.errors import CredentialExpired, CredentialNotFound
from dashpipe.core.sweeper import sweep_loop, sweep_once


@pytest.mark.asyncio
async def test_sweep_removes_expired_from_both_stores(ctx, clock):
    stale_session = await ctx.sessions.issue("demo", "10.0.0.1")
    stale_delivery = await ctx.deliveries.issue(stale_session, "cs5", "angel-one")
    clock.advance(ctx.deliveries.ttl_seconds + 1)
    live_delivery = await ctx.deliveries.issue(stale_session, "cs6", "angel-one")

    assert await sweep_once(ctx) == 1
    with pytest.raises(CredentialNotFound):
        await ctx.deliveries.validate(stale_delivery)
    await ctx.deliveries.validate(live_delivery)

    clock.advance(ctx.sessions.ttl_seconds)
    assert await sweep_once(ctx) == 2
    assert len(ctx.sessions) == 0
    assert len(ctx.deliveries) == 0
    await ctx.aclose()


@pytest.mark.asyncio
async def test_second_sweep_is_a_no_op(ctx, clock):
    for user in ("demo", "test", "admin"):
        await ctx.sessions.issue(user, "10.0.0.1")
    clock.advance(ctx.sessions.ttl_seconds + 1)

    assert await sweep_once(ctx) == 3
    assert await sweep_once(ctx) == 0
    await ctx.aclose()


@pytest.mark.asyncio
async def test_sweep_after_lazy_deletion_is_harmless(ctx, clock):
    token = await ctx.deliveries.issue("session", "cs5", "angel-one")
    clock.advance(ctx.deliveries.ttl_seconds + 1)
    with pytest.raises(CredentialExpired):
        await ctx.deliveries.validate(token)
    assert await sweep_once(ctx) == 0
    await ctx.aclose()


@pytest.mark.asyncio
async def test_loop_survives_a_failing_cycle(ctx, monkeypatch):
    calls = []
    original = ctx.sessions.sweep

    async def flaky_sweep():
        calls.append(None)
        if len(calls) == 1:
            raise RuntimeError("scan failed")
        return await original()

    monkeypatch.setattr(ctx.sessions, "sweep", flaky_sweep)
    task = asyncio.create_task(sweep_loop(ctx, interval_seconds=0))
    for _ in range(50):
        await asyncio.sleep(0)
        if len(calls) >= 3:
            break

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(calls) >= 3
    await ctx.aclose()
