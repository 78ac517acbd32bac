"""
Tracker session factory.
Owns the HTTP client lifecycle so embedders only deal with a ready ChannelTracker.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from shared.config import get_settings
from shared.errors import ConfigurationError
from shared.utils.http_client import CrawlerHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import start_metrics_server

from probes.base import VideosAPI
from probes.videos_api import YouTubeDataAPI
from tracker.config import TrackerSettings, get_tracker_settings
from tracker.engine import ChannelTracker
from tracker.resolver import ChannelIDCache

logger = get_logger(__name__)


@asynccontextmanager
async def tracker_session(
    settings: Optional[TrackerSettings] = None,
    videos_api: Optional[VideosAPI] = None,
    http: Optional[CrawlerHTTPClient] = None,
    channel_id_cache: Optional[ChannelIDCache] = None,
    serve_metrics: bool = False,
) -> AsyncIterator[ChannelTracker]:
    """
    Yield a ChannelTracker wired to a started HTTP client.

    A client passed in by the caller is used as is and left open; one created
    here is closed on exit. Without an explicit `videos_api`, the YouTube Data
    API is used and `LW_YOUTUBE_API_KEY` must be set.

    Raises:
        ConfigurationError: If no YouTube Data API key is configured.
    """
    app_settings = get_settings()
    if videos_api is None and not app_settings.youtube_api_key:
        raise ConfigurationError("LW_YOUTUBE_API_KEY is not set", operation="tracker_session")

    owns_http = http is None
    client = http or CrawlerHTTPClient()
    if owns_http:
        await client.start()

    try:
        api = videos_api or YouTubeDataAPI(client)
        tracker = ChannelTracker(
            client,
            api,
            settings=settings or get_tracker_settings(),
            channel_id_cache=channel_id_cache,
        )
        if serve_metrics:
            start_metrics_server()
        logger.info(
            "tracker_session_started",
            environment=app_settings.environment.value,
            api_key=app_settings.youtube_api_key_safe_log,
        )
        yield tracker
    finally:
        if owns_http:
            await client.close()
        logger.info("tracker_session_closed")
