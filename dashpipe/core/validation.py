"""
Request validation helpers for the delivery endpoints
"""
import logging
import re
from typing import Final

from dashpipe.core.errors import InvalidRequestBody

logger = logging.getLogger(__name__)

_SEGMENT_PATH_MAX: Final[int] = 512
_SEGMENT_CHARS = re.compile(r"^[A-Za-z0-9._\-/]+$")


def validate_segment_path(segment_path: str) -> str:
    """
    Reject segment paths that could escape the upstream base path

    Returns:
        The path, unchanged

    Raises:
        InvalidRequestBody: If the path is empty, absolute, too long or traverses upwards
    """
    if not segment_path or len(segment_path) > _SEGMENT_PATH_MAX:
        raise InvalidRequestBody("Invalid segment path")

    if segment_path.startswith("/") or "\\" in segment_path:
        logger.warning(f"Absolute or backslash segment path rejected: {segment_path[:80]}")
        raise InvalidRequestBody("Invalid segment path")

    if any(part in ("", ".", "..") for part in segment_path.split("/")):
        logger.warning(f"Path traversal attempt in segment path: {segment_path[:80]}")
        raise InvalidRequestBody("Invalid segment path")

    if not _SEGMENT_CHARS.match(segment_path):
        raise InvalidRequestBody("Invalid segment path")

    return segment_path


def is_subtitle_path(segment_path: str) -> bool:
    """Subtitle assets are not served by the upstream origin"""
    return "subtitles" in segment_path or segment_path.endswith(".vtt")
