"""Tests for DASH manifest generation."""

import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

from dashpipe.core.manifest import ManifestSettings, build_manifest, manifest_url
from dashpipe.schemas.delivery import DeliveryRecord

NS = {"mpd": "urn:mpeg:dash:schema:mpd:2011", "cenc": "urn:mpeg:cenc:2013", "dashif": "https://dashif.org/CPS"}
TOKEN = "1ab@AbCdEfGhIjKlMnOpQrStUvWxYz0123456789"
QUOTED = "1ab%40AbCdEfGhIjKlMnOpQrStUvWxYz0123456789"
SETTINGS = ManifestSettings(key_id_hex="9ab40503e44b480293256257542f2299")
BINDING = DeliveryRecord(
    session_token="session",
    node="cs5",
    content_id="angel-one",
    created_at=1_700_000_000.0,
    expires_at=1_700_000_060.0,
)


def _render(generated_at=None, host="media.example:3000", scheme="http"):
    return build_manifest(host, TOKEN, BINDING, SETTINGS, scheme=scheme, generated_at=generated_at)


def _strip_comment(document: str) -> str:
    return re.sub(r"<!--.*?-->", "", document, flags=re.S)


def test_every_base_url_embeds_the_quoted_token():
    root = ET.fromstring(_render().encode())
    base_urls = [node.text for node in root.iterfind(".//mpd:BaseURL", NS)]
    assert len(base_urls) == 8
    for url in base_urls:
        assert url.startswith(f"http://media.example:3000/delivery/{QUOTED}/seg/")
    assert base_urls[-1].endswith("/seg/subtitles/")


def test_representations_and_templates():
    root = ET.fromstring(_render().encode())
    reps = {rep.get("id"): rep for rep in root.iterfind(".//mpd:Representation", NS)}
    assert sorted(reps) == ["a1", "a2", "s1", "v1", "v2", "v3", "v4", "v5"]

    v5 = reps["v5"]
    assert (v5.get("width"), v5.get("height"), v5.get("bandwidth")) == ("1280", "720", "1800000")
    template = v5.find("mpd:SegmentTemplate", NS)
    assert template.get("initialization") == "v-0720p-1800k-libx264-init.mp4"
    assert template.get("media") == "v-0720p-1800k-libx264-$Number$.m4s"
    assert (template.get("timescale"), template.get("duration"), template.get("startNumber")) == ("90000", "250000", "1")

    a2 = reps["a2"].find("mpd:SegmentTemplate", NS)
    assert a2.get("initialization") == "a-0064k-aac-init.mp4"
    assert a2.get("timescale") == "44100"

    subtitles = reps["s1"].find("mpd:SegmentTemplate", NS)
    assert subtitles.get("initialization") is None
    assert subtitles.get("media") == "angel_one_en-$Number$.vtt"


def test_protection_points_at_license_endpoint():
    root = ET.fromstring(_render(scheme="https").encode())
    sets = list(root.iterfind(".//mpd:AdaptationSet", NS))
    assert [s.get("contentType") for s in sets] == ["video", "audio", "text"]

    for adaptation_set in sets[:2]:
        clearkey = adaptation_set.find("mpd:ContentProtection[@value='ClearKey1.0']", NS)
        assert clearkey.find("cenc:default_KID", NS).text == "9ab40503-e44b-4802-9325-6257542f2299"
        laurl = clearkey.find("dashif:laurl", NS)
        assert laurl.text == "https://media.example:3000/license"
        assert laurl.get("licenseType") == "temporary"

    assert sets[2].find("mpd:ContentProtection", NS) is None


def test_output_is_stable_apart_from_debug_comment():
    first = _render(datetime(2026, 1, 1, tzinfo=timezone.utc))
    second = _render(datetime(2026, 1, 1, 0, 0, 30, tzinfo=timezone.utc))
    assert first != second
    assert _strip_comment(first) == _strip_comment(second)
    assert _render(datetime(2026, 1, 1, tzinfo=timezone.utc)) == first


def test_manifest_url_quotes_token():
    assert manifest_url("http", "h:1", TOKEN) == f"http://h:1/delivery/{QUOTED}/manifest.mpd"
