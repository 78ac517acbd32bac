"""
Shared fixtures for the tracker test suite: a started HTTP client (no retries,
no backoff), a controllable clock, a fake Data API and a feed builder.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Iterable, Iterator

import pytest
import pytest_asyncio
import respx

from probes.base import LiveStreamingDetails, VideosAPI
from shared.utils.http_client import CrawlerHTTPClient

CHANNEL_ID = "UC_x5XG1OV2P6uZZ5FSM9Ttw"

FEED_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns:media="http://search.yahoo.com/mrss/" xmlns="http://www.w3.org/2005/Atom">
 <link rel="self" href="http://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"/>
 <id>yt:channel:{channel_id}</id>
 <yt:channelId>{channel_id}</yt:channelId>
 <title>Google for Developers</title>
 <link rel="alternate" href="https://www.youtube.com/channel/{channel_id}"/>
 <author>
  <name>Google for Developers</name>
  <uri>https://www.youtube.com/channel/{channel_id}</uri>
 </author>
 <published>2007-08-23T00:34:43+00:00</published>
"""

FEED_ENTRY = """ <entry>
  <id>yt:video:{video_id}</id>
  <yt:videoId>{video_id}</yt:videoId>
  <yt:channelId>{channel_id}</yt:channelId>
  <title>{title}</title>
  {link}
  <published>{published}</published>
  <updated>{updated}</updated>
  <media:group>
   <media:title>{title}</media:title>
   <media:thumbnail url="https://i2.ytimg.com/vi/{video_id}/hqdefault.jpg" width="480" height="360"/>
   <media:description>About {title}</media:description>
  </media:group>
 </entry>
"""


def rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S+00:00")


def make_feed_xml(
    entries: Iterable[tuple[str, datetime]],
    channel_id: str = CHANNEL_ID,
    with_links: bool = True,
) -> bytes:
    """Atom feed in YouTube's format; each entry is (video_id, published == updated)."""
    body = FEED_HEADER.format(channel_id=channel_id)
    for video_id, touched in entries:
        link = (
            f'<link rel="alternate" href="https://www.youtube.com/watch?v={video_id}"/>'
            if with_links
            else ""
        )
        body += FEED_ENTRY.format(
            video_id=video_id,
            channel_id=channel_id,
            title=f"Video {video_id}",
            link=link,
            published=rfc3339(touched),
            updated=rfc3339(touched),
        )
    body += "</feed>\n"
    return body.encode("utf-8")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeVideosAPI(VideosAPI):
    """In-memory Data API; records every batch it is asked for."""

    def __init__(self, details: dict[str, LiveStreamingDetails] | None = None) -> None:
        self.details = details or {}
        self.calls: list[list[str]] = []

    async def list_live_streaming_details(
        self, video_ids: list[str]
    ) -> dict[str, LiveStreamingDetails]:
        self.calls.append(list(video_ids))
        return {vid: self.details[vid] for vid in video_ids if vid in self.details}


LIVE = LiveStreamingDetails(actual_start_time="2024-06-01T11:00:00Z")
FINISHED = LiveStreamingDetails(
    actual_start_time="2024-06-01T09:00:00Z", actual_end_time="2024-06-01T10:00:00Z"
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def videos_api() -> FakeVideosAPI:
    return FakeVideosAPI()


@pytest_asyncio.fixture
async def http() -> AsyncIterator[CrawlerHTTPClient]:
    client = CrawlerHTTPClient(name="test", max_retries=1, retry_delay_s=0)
    await client.start()
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture
def router() -> Iterator[respx.MockRouter]:
    """respx router that tolerates routes a test expects to stay unused."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock
