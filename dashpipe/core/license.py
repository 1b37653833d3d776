"""ClearKey license responses built from the fixed key catalog."""
from __future__ import annotations

import base64
import logging
from typing import Dict, Iterable, Optional

from dashpipe.schemas.delivery import LicenseKey, LicenseResponse

logger = logging.getLogger(__name__)


def b64url_from_hex(value: str) -> str:
    """Re-encode a hex string as unpadded URL-safe base64."""
    return base64.urlsafe_b64encode(bytes.fromhex(value)).rstrip(b"=").decode()


def build_license(catalog: Dict[str, str], requested_kids: Optional[Iterable[str]] = None) -> LicenseResponse:
    """Return the W3C ClearKey license for *catalog*.

    When *requested_kids* is given (base64url key ids from the license
    request), only matching entries are returned.
    """
    keys = [LicenseKey(kid=b64url_from_hex(kid), k=b64url_from_hex(key)) for kid, key in catalog.items()]
    if requested_kids is not None:
        wanted = {kid.rstrip("=") for kid in requested_kids if isinstance(kid, str)}
        keys = [key for key in keys if key.kid in wanted]
        logger.debug("License request matched %d of %d catalog keys", len(keys), len(catalog))
    return LicenseResponse(keys=keys)


def requested_key_ids(payload: object) -> Optional[list]:
    """Extract ``kids`` from a ClearKey license request, if it has one."""
    if isinstance(payload, dict) and isinstance(payload.get("kids"), list):
        return payload["kids"]
    return None
