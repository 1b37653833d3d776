# dashpipe/core/limiter.py
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from dashpipe.core.config import RATE_LIMIT_ENABLED, RATE_LIMITS

logger = logging.getLogger(__name__)

DELIVERY_PREFIX = "/delivery/"


def get_rate_limit_key(request: Request) -> str:
    """
    Rate limiting key combining the client address and its User-Agent

    Logged-in players hitting the gate are keyed by their session token, and
    manifest/segment fetches by the delivery token in the path, so several
    players behind one NAT do not share a budget.
    """
    ip = get_remote_address(request)

    path = request.url.path
    if path.startswith(DELIVERY_PREFIX):
        delivery_token = path[len(DELIVERY_PREFIX):].split("/", 1)[0]
        if delivery_token:
            return f"delivery:{delivery_token}"

    token = request.query_params.get("token") or request.query_params.get("credential")
    if token:
        return f"session:{token}"

    user_agent = request.headers.get("user-agent", "unknown")
    user_agent_hash = hash(user_agent) % 10000  # Simple hash for grouping
    return f"anon:{ip}:{user_agent_hash}"


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[RATE_LIMITS["default"]],
    enabled=RATE_LIMIT_ENABLED,
)
