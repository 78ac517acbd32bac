"""
Channel feed ingestion.

Fetches a channel's public Atom feed (`/feeds/videos.xml`) and turns it into
deduplicated `FeedVideoEntry` records. The feed is requested with a fresh
cache-busting nonce and the consent cookie on every fetch.
"""
from __future__ import annotations

import calendar
import time
from typing import Any, Optional
from urllib.parse import urlencode

import feedparser

from shared.errors import FeedParseError, InvalidIdentifierError, LiveTrackerError, TransportError
from shared.models.domain import ChannelFeed, FeedVideoEntry
from shared.utils.http_client import CrawlerHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import FEED_FETCHES
from shared.youtube import (
    CHANNEL_FEED_URL,
    NONCE_KEY,
    WATCH_URL,
    consent_headers,
    generate_nonce,
    is_valid_channel_id,
    is_valid_url,
    is_youtube_url,
)

logger = get_logger(__name__)

OPERATION = "fetch_channel_feed"


def channel_feed_url(channel_id: str) -> str:
    """Feed URL for a channel, signed with a single-use nonce."""
    return f"{CHANNEL_FEED_URL}?{urlencode({'channel_id': channel_id, NONCE_KEY: generate_nonce()})}"


def _timestamp_ms(parsed: Optional[time.struct_time]) -> int:
    """feedparser's UTC struct_time to ms since epoch; unparseable dates are 0."""
    if not parsed:
        return 0
    try:
        return calendar.timegm(parsed) * 1000
    except (TypeError, ValueError, OverflowError):
        return 0


def _entry_url(entry: Any, video_id: str) -> str:
    for link in entry.get("links", []) or []:
        href = (link.get("href") or "").strip()
        if not href or (link.get("rel") or "").lower() != "alternate":
            continue
        if is_youtube_url(href):
            return href
    return WATCH_URL.format(video_id=video_id)


def _entry_media(entry: Any) -> tuple[str, str]:
    """
    Description and thumbnail URL of an entry's media group.

    feedparser flattens `media:group` into the entry: `media:description`
    lands in `summary` and every `media:thumbnail` in `media_thumbnail`. The
    thumbnail is the first one with a valid URL; the description is kept even
    when no thumbnail qualifies.
    """
    description = entry.get("summary", "") or ""
    for thumb in entry.get("media_thumbnail", []) or []:
        url = (thumb.get("url") or "").strip() if isinstance(thumb, dict) else ""
        if url and is_valid_url(url):
            return description, url
    return description, ""


def extract_videos(parsed: Any) -> list[FeedVideoEntry]:
    """
    Build feed video entries from a feedparser result.

    Entries without a video ID are skipped and only the first occurrence of a
    video ID is kept, so the result follows feed order without duplicates.
    """
    videos: list[FeedVideoEntry] = []
    seen: set[str] = set()

    for entry in parsed.entries:
        video_id = (entry.get("yt_videoid") or "").strip()
        if not video_id or video_id in seen:
            continue
        seen.add(video_id)
        description, thumbnail_url = _entry_media(entry)

        videos.append(FeedVideoEntry(
            id=video_id,
            channel_id=(entry.get("yt_channelid") or "").strip(),
            title=entry.get("title", "") or "",
            description=description,
            url=_entry_url(entry, video_id),
            thumbnail_url=thumbnail_url,
            published=_timestamp_ms(entry.get("published_parsed")),
            updated=_timestamp_ms(entry.get("updated_parsed")),
        ))

    return videos


def parse_channel_feed(body: bytes) -> ChannelFeed:
    """
    Parse a channel feed body.

    Raises:
        FeedParseError: If the body is empty or is not a feed at all.
    """
    if not body:
        raise FeedParseError("empty feed body", operation=OPERATION)

    parsed = feedparser.parse(body)
    if not parsed.entries and not parsed.get("version"):
        reason = parsed.get("bozo_exception") or "no feed element"
        raise FeedParseError(f"not a feed: {reason}", operation=OPERATION)

    meta = parsed.feed
    author = meta.get("author_detail") or {}
    return ChannelFeed(
        title=meta.get("title", "") or "",
        author_name=author.get("name", "") or "",
        author_uri=author.get("href", "") or "",
        videos=extract_videos(parsed),
    )


class FeedIngester:
    """Fetches and parses channel feeds through the shared HTTP client."""

    def __init__(self, http: CrawlerHTTPClient) -> None:
        self._http = http

    async def fetch(self, channel_id: str) -> ChannelFeed:
        """
        Fetch and parse the feed of a channel.

        Raises:
            InvalidIdentifierError: If the channel ID fails validation.
            TransportError / CheckTimeoutError: On network failure or a non-2xx status.
            FeedParseError: If the body is not a feed.
        """
        if not is_valid_channel_id(channel_id):
            raise InvalidIdentifierError("invalid channel ID", operation=OPERATION, channel_id=channel_id)

        try:
            resp = await self._http.request(
                "GET", channel_feed_url(channel_id), headers=consent_headers(), operation=OPERATION
            )
            if not resp.is_success:
                raise TransportError(
                    f"unexpected status {resp.status_code}",
                    status_code=resp.status_code,
                    operation=OPERATION,
                    channel_id=channel_id,
                )
            feed = parse_channel_feed(resp.content)
        except FeedParseError as exc:
            FEED_FETCHES.labels(outcome="parse_error").inc()
            raise exc.with_context(channel_id=channel_id)
        except LiveTrackerError as exc:
            FEED_FETCHES.labels(outcome="error").inc()
            raise exc.with_context(channel_id=channel_id)

        FEED_FETCHES.labels(outcome="ok").inc()
        logger.debug("feed_fetched", channel_id=channel_id, videos=len(feed.videos))
        return feed
