"""
Pydantic v2 domain models for the live tracker.
These are the persisted/serializable representations handed to the orchestrator.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.models.enums import HandleType

# "Never" for every cached-verdict timestamp.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ── Handles ─────────────────────────────────────────────────────────────
class Handle(DomainModel):
    """Tagged identifier of a tracked channel: a canonical channel ID or a channel URL."""
    model_config = ConfigDict(frozen=True)

    type: HandleType
    value: str

    @classmethod
    def channel_id(cls, channel_id: str) -> "Handle":
        return cls(type=HandleType.CHANNEL_ID, value=channel_id)

    @classmethod
    def channel_url(cls, channel_url: str) -> "Handle":
        return cls(type=HandleType.CHANNEL_URL, value=channel_url)

    def valid(self) -> bool:
        return bool(self.value)

    def __str__(self) -> str:
        return f"{{{self.type.value}:{self.value!r}}}"


# ── Feed ────────────────────────────────────────────────────────────────
class FeedVideoEntry(DomainModel):
    """A single video from a channel's Atom feed."""
    id: str
    channel_id: str = ""
    title: str = ""
    description: str = ""
    url: str = ""
    thumbnail_url: str = ""
    published: int = 0  # ms since epoch
    updated: int = 0  # ms since epoch

    @property
    def last_touch(self) -> int:
        """Most recent of the published/updated timestamps (ms)."""
        return max(self.published, self.updated)


class ChannelFeed(DomainModel):
    """Parsed channel feed, deduplicated by video ID in feed order."""
    title: str = ""
    author_name: str = ""
    author_uri: str = ""
    videos: list[FeedVideoEntry] = Field(default_factory=list)


class ChannelIndex(DomainModel):
    """What a channel's index page tells us about the channel."""
    channel_id: str


# ── Tracking state ──────────────────────────────────────────────────────
class VideoCandidate(DomainModel):
    """A feed video whose live status is being tracked, with its cached verdicts."""
    id: str
    channel_id: str
    last_processed_time: datetime = EPOCH

    live: bool = False
    live_confirmed: bool = False
    live_check_attempt_count: int = 0
    last_live_check_time: datetime = EPOCH

    livestream_finished: bool = False
    last_livestream_finished_time: datetime = EPOCH

    not_livestream: bool = False
    last_not_livestream_time: datetime = EPOCH


class ChannelState(DomainModel):
    """Per-channel state carried between tracking passes by the orchestrator."""
    live: bool = False
    live_video_ids: list[str] = Field(default_factory=list)
    feed: Optional[ChannelFeed] = None
    last_feed_fetch_time: datetime = EPOCH
    candidates: list[VideoCandidate] = Field(default_factory=list)


class OrderResult(DomainModel):
    """Outcome of processing a tracking order: the canonical handle to track."""
    handle: Handle
    resolved_from: Optional[str] = None
