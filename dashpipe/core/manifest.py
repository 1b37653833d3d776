"""DASH manifest generation.

The manifest is never stored: it is rendered per request from the requesting
host, the delivery token and its binding. Every representation gets the same
token-bearing base URL so one manifest fetch yields a self-consistent set of
segment URLs. The caller is responsible for validating the token first.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Final, Optional, Tuple
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from dashpipe.schemas.delivery import DeliveryRecord

MANIFEST_MEDIA_TYPE: Final[str] = "application/dash+xml"
DELIVERY_PREFIX: Final[str] = "delivery"
SEGMENT_ROOT: Final[str] = "seg"
LICENSE_PATH: Final[str] = "license"
CLEARKEY_SCHEME: Final[str] = "urn:uuid:e2719d58-a985-b3c9-781a-b030af78d30e"

TEMPLATE_DIRECTORY: Final[Path] = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME: Final[str] = "manifest.mpd.xml"


@dataclass(frozen=True)
class Representation:
    id: str
    bandwidth: int
    media: str
    timescale: int
    duration: int
    initialization: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    start_number: int = 1


@dataclass(frozen=True)
class AdaptationSet:
    id: int
    content_type: str
    mime_type: str
    representations: Tuple[Representation, ...]
    codecs: Optional[str] = None
    frame_rate: Optional[int] = None
    lang: Optional[str] = None
    protected: bool = True
    path_suffix: str = ""


def _video(rep_id: str, height: int, width: int, kbps: int) -> Representation:
    stem = f"v-{height:04d}p-{kbps:04d}k-libx264"
    return Representation(
        id=rep_id,
        bandwidth=kbps * 1000,
        width=width,
        height=height,
        initialization=f"{stem}-init.mp4",
        media=f"{stem}-$Number$.m4s",
        timescale=90000,
        duration=250000,
    )


def _audio(rep_id: str, kbps: int) -> Representation:
    stem = f"a-{kbps:04d}k-aac"
    return Representation(
        id=rep_id,
        bandwidth=kbps * 1000,
        initialization=f"{stem}-init.mp4",
        media=f"{stem}-$Number$.m4s",
        timescale=44100,
        duration=177408,
    )


ADAPTATION_SETS: Final[Tuple[AdaptationSet, ...]] = (
    AdaptationSet(
        id=1,
        content_type="video",
        mime_type="video/mp4",
        codecs="avc1.42c00d",
        frame_rate=25,
        representations=(
            _video("v1", 144, 256, 100),
            _video("v2", 240, 424, 250),
            _video("v3", 360, 640, 550),
            _video("v4", 480, 854, 1000),
            _video("v5", 720, 1280, 1800),
        ),
    ),
    AdaptationSet(
        id=2,
        content_type="audio",
        mime_type="audio/mp4",
        codecs="mp4a.40.2",
        lang="en",
        representations=(_audio("a1", 128), _audio("a2", 64)),
    ),
    AdaptationSet(
        id=3,
        content_type="text",
        mime_type="text/vtt",
        lang="en",
        protected=False,
        path_suffix="subtitles/",
        representations=(
            Representation(id="s1", bandwidth=1000, media="angel_one_en-$Number$.vtt", timescale=1, duration=10),
        ),
    ),
)


@dataclass(frozen=True)
class ManifestSettings:
    key_id_hex: str
    duration: str = "PT1M14.167S"
    min_buffer_time: str = "PT1.5S"
    adaptation_sets: Tuple[AdaptationSet, ...] = field(default=ADAPTATION_SETS)

    @property
    def key_id(self) -> str:
        """Key id in the dashed form DASH expects for ``default_KID``."""
        return str(uuid.UUID(hex=self.key_id_hex))


_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIRECTORY)),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def _comment_text(value: str) -> str:
    """XML comments may not contain a double hyphen."""
    while "--" in value:
        value = value.replace("--", "- -")
    return value


def delivery_base_url(scheme: str, host: str, token: str) -> str:
    return f"{scheme}://{host}/{DELIVERY_PREFIX}/{quote(token, safe='')}"


def segment_base_url(scheme: str, host: str, token: str) -> str:
    return f"{delivery_base_url(scheme, host, token)}/{SEGMENT_ROOT}/"


def manifest_url(scheme: str, host: str, token: str) -> str:
    return f"{delivery_base_url(scheme, host, token)}/manifest.mpd"


def build_manifest(
    host: str,
    token: str,
    binding: DeliveryRecord,
    settings: ManifestSettings,
    *,
    scheme: str = "http",
    generated_at: Optional[datetime] = None,
) -> str:
    """Render the MPD for *token*. Only the debug comment varies between calls."""
    generated_at = generated_at or datetime.now(timezone.utc)
    template = _environment.get_template(TEMPLATE_NAME)
    return template.render(
        token_preview=_comment_text(token[:20]),
        node=_comment_text(binding.node),
        content_id=_comment_text(binding.content_id),
        generated_at=generated_at.isoformat(),
        license_url=f"{scheme}://{host}/{LICENSE_PATH}",
        segment_base=segment_base_url(scheme, host, token),
        clearkey_scheme=CLEARKEY_SCHEME,
        key_id=settings.key_id,
        duration=settings.duration,
        min_buffer_time=settings.min_buffer_time,
        adaptation_sets=settings.adaptation_sets,
    )
