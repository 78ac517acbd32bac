"""
Channel URL to channel ID resolution, with a process-lifetime cache.
"""
from __future__ import annotations

import threading
from typing import Optional

from shared.errors import InvalidIdentifierError, LiveTrackerError, TransportError
from shared.utils.http_client import CrawlerHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import CHANNEL_ID_CACHE_SIZE, CHANNEL_RESOLUTIONS
from shared.youtube import consent_headers, is_valid_url

from ingest.channel_index import parse_channel_index

logger = get_logger(__name__)

OPERATION = "fetch_channel_index"


class ChannelIDCache:
    """Channel URL -> channel ID. Entries are never evicted; concurrent stores race, last one wins."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, channel_url: str) -> Optional[str]:
        return self._entries.get(channel_url)

    def store(self, channel_url: str, channel_id: str) -> None:
        with self._lock:
            self._entries[channel_url] = channel_id
            CHANNEL_ID_CACHE_SIZE.set(len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, channel_url: object) -> bool:
        return channel_url in self._entries


class ChannelResolver:
    """Resolves vanity channel URLs by reading the channel page's `<link>` tags."""

    def __init__(self, http: CrawlerHTTPClient, cache: ChannelIDCache) -> None:
        self._http = http
        self._cache = cache

    @property
    def cache(self) -> ChannelIDCache:
        return self._cache

    async def resolve(self, channel_url: str) -> str:
        """
        Return the channel ID behind `channel_url`, fetching the page on a cache miss.

        Raises:
            InvalidIdentifierError: If `channel_url` is not a URL.
            NotFoundError: If the page names no valid channel ID.
            TransportError / CheckTimeoutError: On network failure or a non-2xx status.
        """
        if not is_valid_url(channel_url):
            raise InvalidIdentifierError(f"invalid channel URL {channel_url!r}", operation=OPERATION)

        cached = self._cache.get(channel_url)
        if cached:
            CHANNEL_RESOLUTIONS.labels(source="cache").inc()
            return cached

        try:
            resp = await self._http.request(
                "GET", channel_url, headers=consent_headers(), operation=OPERATION
            )
            if not resp.is_success:
                raise TransportError(
                    f"unexpected status {resp.status_code} for {channel_url}",
                    status_code=resp.status_code,
                    operation=OPERATION,
                )
            index = parse_channel_index(resp.content)
        except LiveTrackerError:
            CHANNEL_RESOLUTIONS.labels(source="error").inc()
            logger.warning("channel_resolve_failed", channel_url=channel_url, exc_info=True)
            raise

        self._cache.store(channel_url, index.channel_id)
        CHANNEL_RESOLUTIONS.labels(source="fetch").inc()
        logger.info("channel_resolved", channel_url=channel_url, channel_id=index.channel_id)
        return index.channel_id
