"""
YouTube-specific constants and helpers shared by the feed ingester, the
probes and the channel resolver: identifier filters, the cache-busting nonce
and the consent cookie.
"""
from __future__ import annotations

import random
import re
import time
from urllib.parse import urlparse

YOUTUBE_BASE = "https://www.youtube.com"
CHANNEL_FEED_URL = f"{YOUTUBE_BASE}/feeds/videos.xml"
WATCH_URL = f"{YOUTUBE_BASE}/watch?v={{video_id}}"
THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/sddefault.jpg"

YOUTUBE_HOSTS = frozenset({"youtube.com", "www.youtube.com", "m.youtube.com", "youtu.be"})

# Query parameter carrying the value returned by generate_nonce().
NONCE_KEY = "_h"

# SOCS cookie accepted by YouTube in place of the EU consent interstitial.
CONSENT_COOKIE = "SOCS=CAESEwgDEgk0ODE3Nzk3MjQaAmVuIAEaBgiA_LyaBg"

_ID_CHARS_RE = re.compile(r"[A-Za-z0-9_-]+")


def _is_valid_id(value: str, min_len: int, max_len: int) -> bool:
    return min_len <= len(value) <= max_len and _ID_CHARS_RE.fullmatch(value) is not None


def is_valid_channel_id(value: str) -> bool:
    """Roughly check a YouTube channel ID (6-64 chars of [A-Za-z0-9_-])."""
    return _is_valid_id(value, 6, 64)


def is_valid_video_id(value: str) -> bool:
    """Roughly check a YouTube video ID (6-48 chars of [A-Za-z0-9_-])."""
    return _is_valid_id(value, 6, 48)


def is_valid_url(value: str) -> bool:
    """Syntactic check only: an absolute URL with a scheme and a host."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def is_youtube_url(value: str) -> bool:
    if not is_valid_url(value):
        return False
    return (urlparse(value).hostname or "").lower() in YOUTUBE_HOSTS


def generate_nonce() -> str:
    """
    Time-based unique hex string used to sign requests past HTTP caches.

    Millisecond wall clock in the high bits, 22 random bits in the low bits,
    rendered as 16 hex digits.
    """
    millis = time.time_ns() // 1_000_000
    value = ((millis << 22) | random.getrandbits(22)) & 0xFFFFFFFFFFFFFFFF
    return f"{value:016x}"


def consent_headers() -> dict[str, str]:
    return {"Cookie": CONSENT_COOKIE}
