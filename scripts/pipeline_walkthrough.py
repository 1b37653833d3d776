"""Manual end-to-end walkthrough against a running DashPipe server.

Run with:
    python scripts/pipeline_walkthrough.py [BASE_URL] [--wait]

Checks, in order:
1. Login returns a session token.
2. The gate redirects to a manifest carrying a delivery token.
3. The manifest is a DASH document whose segment URLs embed that token.
4. An init segment streams through the proxy.
5. The license server returns the ClearKey key.
6. (--wait) After the delivery window, the same segment URL is refused.
"""
from __future__ import annotations

import sys
import time
from urllib.parse import quote, unquote

import requests

ARGS = [arg for arg in sys.argv[1:] if not arg.startswith("--")]
BASE_URL = ARGS[0] if ARGS else "http://127.0.0.1:3000"
WAIT_FOR_EXPIRY = "--wait" in sys.argv
INIT_SEGMENT = "v-0144p-0100k-libx264-init.mp4"

S = requests.Session()


def chk(cond: bool, msg: str) -> None:
    if cond:
        print(f"✅ {msg}")
    else:
        print(f"❌ FAIL: {msg}")
        sys.exit(1)


print("--- Login ---")
login_r = S.post(f"{BASE_URL}/login", json={"username": "demo", "password": "demo123"}, timeout=30)
login_r.raise_for_status()
session_token = login_r.json()["token"]
chk(bool(session_token), "Login returns session token")

print("--- Gate ---")
gate_r = S.get(f"{BASE_URL}/gate/angel-one", params={"token": session_token}, allow_redirects=False, timeout=30)
chk(gate_r.status_code == 302, f"Gate redirects (got {gate_r.status_code})")
manifest_url = gate_r.headers["Location"]
delivery_token = unquote(manifest_url.split("/delivery/")[1].split("/")[0])
print(f"   node={gate_r.headers.get('X-Delivery-Node')} sessionLeft={gate_r.headers.get('X-Session-Remaining')}")

print("--- Manifest ---")
mpd_r = S.get(manifest_url, timeout=30)
chk(mpd_r.status_code == 200, "Manifest served within delivery window")
chk(mpd_r.headers.get("Content-Type", "").startswith("application/dash+xml"), "Manifest content type is DASH")
chk(f"/delivery/{quote(delivery_token, safe='')}/seg/" in mpd_r.text, "Segment URLs embed the delivery token")

print("--- Segment ---")
segment_url = manifest_url.rsplit("/", 1)[0] + f"/seg/{INIT_SEGMENT}"
seg_r = S.get(segment_url, timeout=60)
chk(seg_r.status_code == 200 and len(seg_r.content) > 0, f"Init segment proxied ({len(seg_r.content)} bytes)")

print("--- License ---")
lic_r = S.post(f"{BASE_URL}/license", json={"kids": ["mrQFA-RLSAKTJWJXVC8imQ"], "type": "temporary"}, timeout=30)
keys = lic_r.json().get("keys", [])
chk(len(keys) == 1 and keys[0]["kty"] == "oct", "License returns the ClearKey key")

if WAIT_FOR_EXPIRY:
    wait_s = int(mpd_r.headers.get("X-Delivery-Expires", "60s").rstrip("s")) + 2
    print(f"--- Waiting {wait_s}s for the delivery token to expire ---")
    time.sleep(wait_s)
    late_r = S.get(segment_url, timeout=30)
    chk(late_r.status_code == 403, "Expired delivery token is refused")
    print(f"   reason: {late_r.json().get('error')}")

print("🎉 Pipeline walkthrough complete")
