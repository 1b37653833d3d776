# dashpipe/api/v1/endpoints/auth.py
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from dashpipe.api.v1.dependencies import get_client_ip, get_context, read_json_body
from dashpipe.core.context import AppContext
from dashpipe.core.errors import AuthenticationFailed, InvalidRequestBody
from dashpipe.core.limiter import limiter
from dashpipe.core.config import RATE_LIMITS
from dashpipe.schemas.session import LoginRequest, LoginResponse, LogoutRequest

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
@limiter.limit(RATE_LIMITS["auth"])
async def login(request: Request, ctx: AppContext = Depends(get_context)):
    """
    Checks the account table and opens a session.
    - Missing fields, or a body that is not a JSON object, give 400.
    - Fields of the wrong type can never match an account and give 401.
    """
    client_ip = get_client_ip(request)
    payload = await read_json_body(request)
    if not isinstance(payload, dict):
        payload = {}

    username = payload.get("username", payload.get("identity"))
    password = payload.get("password", payload.get("secret"))
    ctx.request_log.record("LOGIN", f"user={username} ip={client_ip}")

    if not username or not password:
        raise InvalidRequestBody("username and password required")

    try:
        credentials = LoginRequest.model_validate(payload)
    except ValidationError:
        logger.warning(f"Malformed login attempt from IP {client_ip}")
        raise AuthenticationFailed("Invalid credentials") from None

    username = credentials.username
    if not ctx.accounts.authenticate(username, credentials.password):
        logger.warning(f"Failed login attempt for {username} from IP {client_ip}")
        raise AuthenticationFailed("Invalid credentials")

    token = await ctx.sessions.issue(username, client_ip)
    ttl = ctx.sessions.ttl_seconds
    ctx.request_log.record("TOKEN_ISSUED", f"user={username} token={token[:8]}... expires={ttl}s")

    return LoginResponse(
        token=token,
        userId=username,
        expiresIn=ttl,
        message=f"Welcome {username}! Session valid for {ttl // 60} minutes.",
    )


@router.post("/logout")
async def logout(request: Request, ctx: AppContext = Depends(get_context)):
    """Revokes the session token, if any. Always succeeds, whatever the body."""
    payload = await read_json_body(request)
    token = None
    if isinstance(payload, dict):
        try:
            token = LogoutRequest.model_validate(payload).token
        except ValidationError:
            logger.info("Logout body carries no usable token")

    if token:
        await ctx.sessions.revoke(token)
        ctx.request_log.record("LOGOUT", f"token={token[:8]}... ip={get_client_ip(request)}")
    return {"success": True}
