"""Expired credential sweeper.

Background task that periodically removes expired sessions and delivery tokens.
It coexists with the lazy deletion done by validators:
- Deletion is delete-if-present, so a credential removed twice is harmless.
- Each store is scanned under its own lock; request handlers wait at most one scan.
- A failing cycle is logged and the loop carries on with the next one.
"""
from __future__ import annotations

import asyncio
import logging

from dashpipe.core.context import AppContext

logger = logging.getLogger(__name__)


async def sweep_once(ctx: AppContext) -> int:
    """Remove every expired entry from both stores; return how many went."""
    removed = await ctx.sessions.sweep()
    removed += await ctx.deliveries.sweep()
    if removed:
        logger.info("[CLEANUP] Removed %d expired token(s)", removed)
    return removed


async def sweep_loop(ctx: AppContext, interval_seconds: int = 30) -> None:
    """Vòng lặp bất đồng bộ dọn token hết hạn.

    Args:
        ctx: Ngữ cảnh ứng dụng chứa cả hai kho token.
        interval_seconds: Chu kỳ lặp lại, mặc định 30 giây.
    """
    logger.info("Starting expiry sweeper: every %ss", interval_seconds)
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await sweep_once(ctx)
            except Exception:
                logger.exception("Expiry sweep failed; retrying next cycle")
    except asyncio.CancelledError:
        logger.info("Expiry sweeper cancelled")
        raise
