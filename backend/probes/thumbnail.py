"""
Live thumbnail probe.

While a video is (or is about to be) a livestream, YouTube serves a `_live`
variant of its thumbnails, e.g. `.../vi/<id>/sddefault_live.jpg`. Requesting
that variant is a cheap, quota-free hint: a 404 rules the video out as a
livestream, anything in {200, 302, 304} means it may be one.
"""
from __future__ import annotations

from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from shared.errors import IndeterminateError, InvalidIdentifierError, LiveTrackerError
from shared.models.enums import ThumbnailVerdict
from shared.utils.http_client import CrawlerHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import THUMBNAIL_PROBES
from shared.youtube import (
    NONCE_KEY,
    THUMBNAIL_URL,
    consent_headers,
    generate_nonce,
    is_valid_video_id,
)

logger = get_logger(__name__)

OPERATION = "check_live_video_thumbnail"

THUMBNAIL_SUFFIXES = (".jpg", ".webp")
LIVE_MARKER = "_live"

EXISTS_STATUSES = frozenset({200, 302, 304})
MISSING_STATUS = 404


def add_live_marker(url: str) -> str:
    """
    Insert the live marker right before the file extension of the URL path.

    Already-marked paths are returned unchanged, so applying it twice is a no-op.
    """
    parts = urlsplit(url)
    stem, dot, extension = parts.path.rpartition(".")
    if not dot:
        raise InvalidIdentifierError("thumbnail URL has no file extension", operation=OPERATION)
    if stem.rsplit("/", 1)[-1].endswith(LIVE_MARKER):
        return url
    return urlunsplit(parts._replace(path=f"{stem}{LIVE_MARKER}.{extension}"))


def live_thumbnail_url(video_id: str, hint_url: str = "") -> str:
    """
    Live thumbnail URL for a video, without the nonce.

    `hint_url` is used as the base when its path looks like a still image;
    otherwise the default high-resolution thumbnail of the video is used.
    """
    base = ""
    if hint_url:
        path = urlsplit(hint_url).path
        if any(suffix in path for suffix in THUMBNAIL_SUFFIXES):
            base = hint_url
    if not base:
        base = THUMBNAIL_URL.format(video_id=quote(video_id, safe=""))
    return add_live_marker(base)


def _with_nonce(url: str) -> str:
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != NONCE_KEY]
    query.append((NONCE_KEY, generate_nonce()))
    return urlunsplit(parts._replace(query=urlencode(query)))


class LiveThumbnailProbe:
    """Checks whether the live thumbnail variant of a video exists."""

    def __init__(self, http: CrawlerHTTPClient) -> None:
        self._http = http

    async def check(self, video_id: str, hint_url: str = "") -> bool:
        """
        Return True if the live thumbnail exists, False on 404.

        Raises:
            InvalidIdentifierError: If the video ID fails validation.
            IndeterminateError: On any other status code.
            TransportError / CheckTimeoutError: On network failure.
        """
        if not is_valid_video_id(video_id):
            raise InvalidIdentifierError("invalid video ID", operation=OPERATION, video_id=video_id)

        url = _with_nonce(live_thumbnail_url(video_id, hint_url))
        try:
            resp = await self._http.request(
                "GET", url, headers=consent_headers(), operation=OPERATION, follow_redirects=False
            )
        except LiveTrackerError as exc:
            THUMBNAIL_PROBES.labels(verdict=ThumbnailVerdict.ERROR.value).inc()
            raise exc.with_context(video_id=video_id)

        if resp.status_code == MISSING_STATUS:
            verdict = ThumbnailVerdict.MISSING
        elif resp.status_code in EXISTS_STATUSES:
            verdict = ThumbnailVerdict.EXISTS
        else:
            THUMBNAIL_PROBES.labels(verdict=ThumbnailVerdict.INDETERMINATE.value).inc()
            raise IndeterminateError(
                f"uncertain live thumbnail status {resp.status_code}",
                status_code=resp.status_code,
                operation=OPERATION,
                video_id=video_id,
            )

        THUMBNAIL_PROBES.labels(verdict=verdict.value).inc()
        logger.debug("thumbnail_checked", video_id=video_id, verdict=verdict.value)
        return verdict is ThumbnailVerdict.EXISTS
