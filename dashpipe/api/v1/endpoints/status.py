# dashpipe/api/v1/endpoints/status.py
from fastapi import APIRouter, Depends

from dashpipe.api.v1.dependencies import get_context
from dashpipe.core.clock import to_iso
from dashpipe.core.context import AppContext
from dashpipe.schemas.delivery import HealthStatus
from dashpipe.schemas.session import SessionInfo

router = APIRouter()


@router.get("/health", response_model=HealthStatus)
async def health(ctx: AppContext = Depends(get_context)):
    return HealthStatus(
        sessions=len(ctx.sessions),
        deliveryTokens=len(ctx.deliveries),
        uptime=f"{ctx.uptime_seconds()}s",
    )


@router.get("/log")
async def request_log(ctx: AppContext = Depends(get_context)):
    """Most recent pipeline events, newest first."""
    return ctx.request_log.entries()


@router.get("/session/{token}", response_model=SessionInfo, response_model_exclude_none=True)
async def session_info(token: str, ctx: AppContext = Depends(get_context)):
    """Read-only view of a session; does not delete expired entries."""
    record = ctx.sessions.peek(token)
    if record is None:
        return SessionInfo(valid=False)
    return SessionInfo(
        valid=True,
        userId=record.user_id,
        remaining=ctx.sessions.remaining(record),
        expiresAt=to_iso(record.expires_at),
        token=token,
    )
