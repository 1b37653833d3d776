"""In-memory session store.

Sessions are the long-lived tier of the token chain: issued at login, checked by
the gate, deleted on logout, on the first lookup after expiry, or by the sweeper.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from dashpipe.core import clock as clock_utils
from dashpipe.core.clock import Clock
from dashpipe.core.errors import CredentialExpired, CredentialNotFound
from dashpipe.core.security import derive_session_credential
from dashpipe.schemas.session import SessionRecord

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, secret: str, ttl_seconds: int, clock: Clock = clock_utils.now):
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: Dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    async def issue(self, identity: str, origin: str) -> str:
        """Create a session for *identity* and return its credential."""
        issued_at = self._clock()
        credential = derive_session_credential(identity, origin, issued_at, self._secret)
        record = SessionRecord(
            user_id=identity,
            origin=origin,
            created_at=issued_at,
            expires_at=clock_utils.expiry_after(issued_at, self.ttl_seconds),
        )
        async with self._lock:
            if credential in self._records:
                logger.warning("Session credential collision for %s, overwriting", identity)
            self._records[credential] = record
        return credential

    async def validate(self, credential: str) -> SessionRecord:
        """Return the record or raise ``CredentialNotFound`` / ``CredentialExpired``.

        An expired record is removed before the error is raised, so a later
        lookup of the same credential reports it as not found.
        """
        async with self._lock:
            record = self._records.get(credential)
            if record is None:
                raise CredentialNotFound("token not found")
            if clock_utils.is_expired(record.expires_at, self._clock()):
                self._records.pop(credential, None)
                raise CredentialExpired("token expired")
            # Origin binding is deliberately not enforced here.
            return record

    async def revoke(self, credential: str) -> None:
        async with self._lock:
            self._records.pop(credential, None)

    def peek(self, credential: str) -> Optional[SessionRecord]:
        """Read-only lookup for introspection; never deletes."""
        return self._records.get(credential)

    def remaining(self, record: SessionRecord) -> int:
        return clock_utils.seconds_remaining(record.expires_at, self._clock())

    async def sweep(self) -> int:
        async with self._lock:
            at = self._clock()
            expired = [key for key, rec in self._records.items() if clock_utils.is_expired(rec.expires_at, at)]
            for key in expired:
                self._records.pop(key, None)
        return len(expired)
