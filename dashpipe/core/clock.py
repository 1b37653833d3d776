"""Wall-clock helpers shared by the credential stores.

Every store takes a ``clock`` callable so tests can drive expiry without sleeping.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], float]


def now() -> float:
    """Current wall-clock time in epoch seconds."""
    return time.time()


def expiry_after(issued_at: float, ttl_seconds: float) -> float:
    return issued_at + ttl_seconds


def is_expired(expires_at: float, at: float) -> bool:
    # The expiry instant itself is still valid.
    return at > expires_at


def seconds_remaining(expires_at: float, at: float) -> int:
    return max(0, round(expires_at - at))


def to_iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()
