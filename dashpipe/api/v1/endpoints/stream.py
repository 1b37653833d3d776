"""
Gate and delivery endpoints.

The gate trades a valid session token for a short-lived delivery token and
redirects to the manifest. The manifest and every segment fetch re-validate the
delivery token independently, so playback stops working once its window ends
and the player has to go back through the gate.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse, Response

from dashpipe.api.v1.dependencies import get_context, get_session_token
from dashpipe.core.config import RATE_LIMITS
from dashpipe.core.context import AppContext
from dashpipe.core.errors import CredentialExpired, CredentialNotFound, PipelineError
from dashpipe.core.limiter import limiter
from dashpipe.core.manifest import MANIFEST_MEDIA_TYPE, build_manifest, manifest_url
from dashpipe.core.segment_proxy import SegmentResponse
from dashpipe.schemas.delivery import DeliveryRecord

logger = logging.getLogger(__name__)
router = APIRouter()

SESSION_HINT = "Your session has expired. POST /login again to get a new token."


def _delivery_hint(ctx: AppContext) -> str:
    return (
        f"Delivery tokens are only valid for {ctx.deliveries.ttl_seconds} seconds. "
        "Reload the player and a fresh token will be generated."
    )


async def _validate_delivery(ctx: AppContext, token: str, stage: str) -> tuple[DeliveryRecord, int]:
    try:
        return await ctx.deliveries.validate(token)
    except (CredentialNotFound, CredentialExpired) as e:
        ctx.request_log.record(f"{stage}_DENY", f"token={token[:12]}... reason={e.reason}")
        raise type(e)(f"Access denied: {e.reason}", hint=_delivery_hint(ctx)) from None


@router.get("/gate/{content_id}")
@limiter.limit(RATE_LIMITS["gate"])
async def gate(
    content_id: str,
    request: Request,
    token: str = Depends(get_session_token),
    ctx: AppContext = Depends(get_context),
):
    """
    Validates the session token, picks a node, mints a delivery token
    and redirects to the manifest that embeds it.
    """
    ctx.request_log.record("GATE_REQ", f"content={content_id} token={token[:8]}...")

    try:
        session = await ctx.sessions.validate(token)
    except (CredentialNotFound, CredentialExpired) as e:
        ctx.request_log.record("GATE_DENY", f"reason={e.reason}")
        raise type(e)(f"Access denied: {e.reason}", hint=SESSION_HINT) from None

    node = ctx.nodes.select()
    delivery_token = await ctx.deliveries.issue(token, node, content_id)
    remaining = ctx.sessions.remaining(session)

    ctx.request_log.record(
        "GATE_OK",
        f"content={content_id} node={node} delivery={delivery_token[:12]}... sessionLeft={remaining}s",
    )

    redirect_url = manifest_url(request.url.scheme, request.headers.get("host", request.url.netloc), delivery_token)
    response = RedirectResponse(redirect_url, status_code=302)
    response.headers["X-Session-Remaining"] = f"{remaining}s"
    response.headers["X-Delivery-Node"] = ctx.nodes.hostname(node)
    response.headers["X-Delivery-Token"] = f"{delivery_token[:12]}..."
    return response


@router.get("/delivery/{delivery_token}/manifest", response_class=Response)
@router.get("/delivery/{delivery_token}/manifest.mpd", response_class=Response)
async def get_manifest(
    delivery_token: str,
    request: Request,
    ctx: AppContext = Depends(get_context),
):
    """Returns the DASH manifest with the delivery token in every segment URL."""
    ctx.request_log.record("MANIFEST", f"token={delivery_token[:12]}...")
    binding, seconds_left = await _validate_delivery(ctx, delivery_token, "MANIFEST")

    node_host = ctx.nodes.hostname(binding.node)
    ctx.request_log.record("MANIFEST_OK", f"server={node_host} content={binding.content_id} secsLeft={seconds_left}s")

    content = build_manifest(
        request.headers.get("host", request.url.netloc),
        delivery_token,
        binding,
        ctx.manifest,
        scheme=request.url.scheme,
    )
    return Response(
        content,
        media_type=MANIFEST_MEDIA_TYPE,
        headers={
            "X-Delivery-Node": node_host,
            "X-Delivery-Expires": f"{seconds_left}s",
        },
    )


@router.api_route("/delivery/{delivery_token}/seg/{segment_path:path}", methods=["GET", "HEAD"])
async def get_segment(
    delivery_token: str,
    segment_path: str,
    request: Request,
    ctx: AppContext = Depends(get_context),
):
    """
    Re-validates the delivery token and streams the segment from the upstream origin.
    Subtitle paths are answered with 404 without contacting the origin.
    """
    binding, _ = await _validate_delivery(ctx, delivery_token, "SEGMENT")

    try:
        upstream = await ctx.segments.open(
            segment_path,
            method=request.method,
            range_header=request.headers.get("range"),
        )
    except PipelineError as e:
        if e.status_code >= 500:
            ctx.request_log.record("SEG_ERR", f"seg={segment_path} reason={e.reason}")
        raise

    node_host = ctx.nodes.hostname(binding.node)
    ctx.request_log.record("SEGMENT", f"server={node_host} seg={segment_path} status={upstream.status_code}")

    headers = ctx.segments.relay_headers(upstream)
    headers["X-Delivery-Node"] = node_host
    return SegmentResponse(upstream, headers)
