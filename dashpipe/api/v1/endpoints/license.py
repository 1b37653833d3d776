"""ClearKey license endpoint."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from dashpipe.api.v1.dependencies import get_client_ip, get_context, read_json_body
from dashpipe.core.context import AppContext
from dashpipe.core.license import build_license, requested_key_ids
from dashpipe.schemas.delivery import LicenseResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/license", response_model=LicenseResponse)
async def issue_license(request: Request, ctx: AppContext = Depends(get_context)):
    """
    Answers a W3C ClearKey license request.
    - A request listing ``kids`` gets only the catalog keys it asked for.
    - Any other body (or none) gets the whole catalog.
    """
    ctx.request_log.record(
        "DRM_LICENSE",
        f"ip={get_client_ip(request)} contentType={request.headers.get('content-type')}",
    )

    payload = await read_json_body(request)

    license_response = build_license(ctx.clearkeys, requested_key_ids(payload))
    first_kid = license_response.keys[0].kid[:8] if license_response.keys else "-"
    ctx.request_log.record("DRM_KEY_ISSUED", f"keys={len(license_response.keys)} keyId={first_kid}...")
    return license_response


@router.options("/license")
async def license_preflight():
    """Bare preflight (CORSMiddleware handles requests carrying an Origin)."""
    return Response(
        status_code=204,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        },
    )
