# dashpipe/core/security.py
import base64
import hashlib
import logging
from typing import Dict, Optional
from passlib.context import CryptContext

# Configure logging
logger = logging.getLogger(__name__)

# Use Argon2 for password hashing
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

DELIVERY_BODY_LENGTH = 36


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies a plain password against a hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hashes a password."""
    return pwd_context.hash(password)


def derive_session_credential(identity: str, origin: str, issued_at: float, secret: str) -> str:
    """One-way hash over identity, origin address, issue time and the session salt."""
    raw = f"{identity}:{origin}:{issued_at!r}:{secret}"
    return hashlib.sha256(raw.encode()).hexdigest()


def derive_delivery_body(
    session_credential: str,
    node_id: str,
    content_id: str,
    issued_at: float,
    secret: str,
) -> str:
    """Fixed-length URL-safe body of a delivery credential."""
    raw = f"{session_credential}:{node_id}:{content_id}:{issued_at!r}:{secret}"
    digest = hashlib.sha256(raw.encode()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()[:DELIVERY_BODY_LENGTH]


class AccountTable:
    """Fixed identity table with secrets kept only as argon2 hashes."""

    def __init__(self, accounts: Dict[str, str]):
        self._hashes = {name: get_password_hash(secret) for name, secret in accounts.items()}

    def authenticate(self, identity: Optional[str], secret: Optional[str]) -> bool:
        hashed = self._hashes.get(identity or "")
        if hashed is None:
            return False
        try:
            return verify_password(secret or "", hashed)
        except ValueError as e:
            logger.warning(f"Password verification error for {identity}: {e}")
            return False
