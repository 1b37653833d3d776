"""Process-lifetime state shared by every handler and the sweeper.

One ``AppContext`` is created in the application lifespan and stored on
``app.state.ctx``; handlers reach it through ``get_context``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from dashpipe.core import clock as clock_utils
from dashpipe.core import config
from dashpipe.core.clock import Clock
from dashpipe.core.delivery_tokens import DeliveryTokenStore
from dashpipe.core.manifest import ManifestSettings
from dashpipe.core.nodes import NodeSelector
from dashpipe.core.request_log import RequestLog
from dashpipe.core.security import AccountTable
from dashpipe.core.segment_proxy import SegmentProxy
from dashpipe.core.sessions import SessionStore


@dataclass
class AppContext:
    sessions: SessionStore
    deliveries: DeliveryTokenStore
    nodes: NodeSelector
    accounts: AccountTable
    segments: SegmentProxy
    manifest: ManifestSettings
    request_log: RequestLog
    clearkeys: Dict[str, str]
    clock: Clock = clock_utils.now
    started_at: float = field(default_factory=clock_utils.now)

    def uptime_seconds(self) -> int:
        return max(0, int(self.clock() - self.started_at))

    async def aclose(self) -> None:
        await self.segments.aclose()


def create_context(
    *,
    clock: Clock = clock_utils.now,
    session_ttl: Optional[int] = None,
    delivery_ttl: Optional[int] = None,
    accounts: Optional[Dict[str, str]] = None,
    upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AppContext:
    """Build a context from ``config``; keyword arguments override it for tests."""
    session_ttl = session_ttl or config.SESSION_TTL_SECONDS
    delivery_ttl = delivery_ttl or config.DELIVERY_TTL_SECONDS
    config.validate_ttl_pair(session_ttl, delivery_ttl)

    clearkeys = dict(config.CLEARKEYS)
    return AppContext(
        sessions=SessionStore(config.SESSION_SECRET, session_ttl, clock=clock),
        deliveries=DeliveryTokenStore(config.DELIVERY_SECRET, delivery_ttl, clock=clock),
        nodes=NodeSelector(config.NODE_POOL, config.NODE_HOST_TEMPLATE),
        accounts=AccountTable(accounts if accounts is not None else config.ACCOUNTS),
        segments=SegmentProxy(
            f"{config.UPSTREAM_SCHEME}://{config.UPSTREAM_HOST}{config.UPSTREAM_BASE_PATH}",
            config.UPSTREAM_USER_AGENT,
            timeout_seconds=config.UPSTREAM_TIMEOUT_SECONDS,
            transport=upstream_transport,
        ),
        manifest=ManifestSettings(key_id_hex=next(iter(clearkeys))),
        request_log=RequestLog(clock=clock),
        clearkeys=clearkeys,
        clock=clock,
        started_at=clock(),
    )
