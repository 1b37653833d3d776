"""Short-lived delivery token issuer and store.

Delivery tokens are minted by the gate for one (session, node, content) binding
and embedded in every manifest URL. Their window is fixed and much shorter than
a session, so a leaked manifest stops working on its own even while the session
behind it is still valid.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Dict, Final, Tuple

from dashpipe.core import clock as clock_utils
from dashpipe.core.clock import Clock
from dashpipe.core.errors import CredentialExpired, CredentialNotFound
from dashpipe.core.security import derive_delivery_body
from dashpipe.schemas.delivery import DeliveryRecord

logger = logging.getLogger(__name__)

# Cosmetic tags in front of the body; they carry no meaning.
TOKEN_PREFIXES: Final[Tuple[str, ...]] = ("1aa", "1ab")
TOKEN_SEPARATOR: Final[str] = "@"

_system_random = random.SystemRandom()


class DeliveryTokenStore:
    def __init__(self, secret: str, ttl_seconds: int, clock: Clock = clock_utils.now):
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: Dict[str, DeliveryRecord] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    async def issue(self, session_token: str, node: str, content_id: str) -> str:
        """Mint a delivery token valid for ``ttl_seconds`` from now."""
        issued_at = self._clock()
        body = derive_delivery_body(session_token, node, content_id, issued_at, self._secret)
        token = f"{_system_random.choice(TOKEN_PREFIXES)}{TOKEN_SEPARATOR}{body}"
        record = DeliveryRecord(
            session_token=session_token,
            node=node,
            content_id=content_id,
            created_at=issued_at,
            expires_at=clock_utils.expiry_after(issued_at, self.ttl_seconds),
        )
        async with self._lock:
            self._records[token] = record
        logger.debug("Issued delivery token %s... on node %s", token[:12], node)
        return token

    async def validate(self, token: str) -> Tuple[DeliveryRecord, int]:
        """Return ``(record, seconds_remaining)`` or raise."""
        async with self._lock:
            record = self._records.get(token)
            if record is None:
                raise CredentialNotFound("delivery token not found, it may have expired")
            at = self._clock()
            if clock_utils.is_expired(record.expires_at, at):
                self._records.pop(token, None)
                raise CredentialExpired(f"delivery token expired ({self.ttl_seconds}s limit reached)")
            return record, clock_utils.seconds_remaining(record.expires_at, at)

    async def sweep(self) -> int:
        async with self._lock:
            at = self._clock()
            expired = [key for key, rec in self._records.items() if clock_utils.is_expired(rec.expires_at, at)]
            for key in expired:
                self._records.pop(key, None)
        return len(expired)
