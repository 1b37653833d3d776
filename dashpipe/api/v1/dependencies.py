# dashpipe/api/v1/dependencies.py
import json
import logging
from typing import Any, Optional

from fastapi import Query, Request

from dashpipe.core.context import AppContext
from dashpipe.core.errors import MissingCredential

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Extract client IP address securely"""
    # Check for proxy headers (be careful with spoofing)
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        # Take the first IP in the chain (original client)
        client_ip = forwarded_for.split(",")[0].strip()
    else:
        client_ip = request.client.host if request.client else None

    return client_ip or "unknown"


def get_context(request: Request) -> AppContext:
    """Process-wide stores and collaborators created in the lifespan."""
    return request.app.state.ctx


def get_session_token(
    token: Optional[str] = Query(default=None),
    credential: Optional[str] = Query(default=None),
) -> str:
    """Session token from ``?token=`` (or ``?credential=``); 401 when absent."""
    value = token or credential
    if not value:
        logger.info("Gate request without a session token")
        raise MissingCredential(hint="POST /login first")
    return value


async def read_json_body(request: Request) -> Optional[Any]:
    """Parsed JSON body, or ``None`` when the body is empty or not JSON."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.info(f"{request.method} {request.url.path}: body is not JSON")
        return None
