"""
Channel tracking engine.

The orchestrator that owns scheduling calls two entry points:

    process_order(handle)          -> canonical channel-ID handle (resolving URLs)
    process_entity(handle, state)  -> updated ChannelState for one tracking pass

A pass refreshes the channel feed when it has run out of candidates, advances
each candidate through the state machine in feed order and collects the
confirmed live videos, stopping early once enough have been found.
"""
from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta
from typing import Optional

from shared.errors import ConfigurationError, InvalidIdentifierError, LiveTrackerError
from shared.models.domain import EPOCH, ChannelFeed, ChannelState, Handle, OrderResult, VideoCandidate
from shared.models.enums import HandleType
from shared.utils.http_client import CrawlerHTTPClient
from shared.utils.logging import channel_log_context, get_logger
from shared.utils.metrics import TRACKING_PASS
from shared.youtube import is_valid_channel_id, is_valid_url

from ingest.feed import FeedIngester
from probes.base import VideosAPI
from probes.thumbnail import LiveThumbnailProbe
from probes.videos_api import VideoStateProbe
from tracker.candidate import CandidateStateMachine, Clock, utcnow
from tracker.config import EffectiveSettings, SettingsCell, TrackerSettings, get_tracker_settings
from tracker.resolver import ChannelIDCache, ChannelResolver

logger = get_logger(__name__)

ONE_MS = timedelta(milliseconds=1)


def _epoch_ms(moment: datetime) -> int:
    return (moment - EPOCH) // ONE_MS


def select_candidates(
    feed: ChannelFeed,
    channel_id: str,
    now: datetime,
    maximum_video_age: timedelta,
) -> list[VideoCandidate]:
    """
    Fresh candidates for the feed videos touched within `[now - maximum_video_age, now]`.

    A zero `maximum_video_age` keeps every video not dated in the future.
    Candidates start with no cached verdicts.
    """
    now_ms = _epoch_ms(now)
    oldest_ms: Optional[int] = None
    if maximum_video_age > timedelta(0):
        oldest_ms = now_ms - maximum_video_age // ONE_MS

    candidates: list[VideoCandidate] = []
    for video in feed.videos:
        touched = video.last_touch
        if touched > now_ms:
            continue
        if oldest_ms is not None and touched < oldest_ms:
            continue
        candidates.append(VideoCandidate(id=video.id, channel_id=channel_id))
    return candidates


class ChannelTracker:
    """
    Live-status tracker for YouTube channels.

    Holds the state shared by every pass: the channel ID cache and the
    current settings snapshot. Per-channel state lives in `ChannelState`,
    owned and persisted by the caller.
    """

    def __init__(
        self,
        http: CrawlerHTTPClient,
        videos_api: VideosAPI,
        settings: Optional[TrackerSettings] = None,
        channel_id_cache: Optional[ChannelIDCache] = None,
        clock: Clock = utcnow,
    ) -> None:
        if http is None:
            raise ConfigurationError("an HTTP client is required", operation="create_tracker")
        if videos_api is None:
            raise ConfigurationError("a YouTube Data API client is required", operation="create_tracker")

        self._settings = SettingsCell(settings or get_tracker_settings())
        self._cache = channel_id_cache if channel_id_cache is not None else ChannelIDCache()
        self._clock = clock
        self._resolver = ChannelResolver(http, self._cache)
        self._feeds = FeedIngester(http)
        self._machine = CandidateStateMachine(
            LiveThumbnailProbe(http),
            VideoStateProbe(videos_api),
            clock=clock,
        )

    # ── Settings ────────────────────────────────────────────────────────
    @property
    def settings(self) -> TrackerSettings:
        return self._settings.load()

    def set_settings(self, settings: TrackerSettings) -> None:
        """Swap the settings snapshot; passes already running keep the old one."""
        self._settings.store(settings)
        logger.info("tracker_settings_updated", **settings.model_dump(mode="json"))

    # ── Handles ─────────────────────────────────────────────────────────
    def channel_id(self, channel_url: str) -> Optional[str]:
        """Cached channel ID of a channel URL, without any network access."""
        return self._cache.get(channel_url)

    def canonical_handle(self, handle: Handle) -> Handle:
        """Swap a channel-URL handle for its channel ID when it has been resolved before."""
        if handle.type == HandleType.CHANNEL_URL:
            channel_id = self._cache.get(handle.value)
            if channel_id:
                return Handle.channel_id(channel_id)
        return handle

    async def process_order(self, handle: Handle) -> OrderResult:
        """
        Turn a tracking order into a canonical channel-ID handle.

        Raises:
            InvalidIdentifierError: If the handle is malformed.
            NotFoundError / TransportError / CheckTimeoutError: If URL resolution fails.
        """
        if not isinstance(handle, Handle) or not handle.valid():
            raise InvalidIdentifierError(f"invalid handle {handle!r}", operation="process_order")

        if handle.type == HandleType.CHANNEL_URL:
            if not is_valid_url(handle.value):
                raise InvalidIdentifierError(f"invalid channel URL {handle.value!r}", operation="process_order")
            channel_id = await self._resolver.resolve(handle.value)
            return OrderResult(handle=Handle.channel_id(channel_id), resolved_from=handle.value)

        if handle.type == HandleType.CHANNEL_ID:
            if not is_valid_channel_id(handle.value):
                raise InvalidIdentifierError(
                    "invalid channel ID", operation="process_order", channel_id=handle.value
                )
            return OrderResult(handle=handle)

        raise InvalidIdentifierError(f"unsupported handle type {handle.type!r}", operation="process_order")

    async def process_entity(self, handle: Handle, state: Optional[ChannelState] = None) -> ChannelState:
        """
        Run one tracking pass for a channel.

        `state` is updated in place (and returned); when the pass fails, the
        caller's object still holds everything committed before the failure.

        Raises:
            InvalidIdentifierError: If `handle` is not a valid channel-ID handle.
            LiveTrackerError: The feed or the first candidate failure that aborted the pass.
        """
        if not isinstance(handle, Handle) or not handle.valid() or handle.type != HandleType.CHANNEL_ID:
            raise InvalidIdentifierError(
                f"expected a channel ID handle, got {handle!r}", operation="process_entity"
            )
        if not is_valid_channel_id(handle.value):
            raise InvalidIdentifierError("invalid channel ID", operation="process_entity", channel_id=handle.value)

        if state is None:
            state = ChannelState()
        settings = self._settings.load().effective()

        start = time.perf_counter()
        outcome = "ok"
        with channel_log_context(handle.value):
            try:
                await self._run_pass(handle.value, state, settings)
            except asyncio.CancelledError:
                outcome = "cancelled"
                raise
            except Exception:
                outcome = "error"
                raise
            finally:
                TRACKING_PASS.labels(outcome=outcome).observe(time.perf_counter() - start)

        logger.debug(
            "tracking_pass_done",
            channel_id=handle.value,
            live=state.live,
            live_video_ids=state.live_video_ids,
            candidates=len(state.candidates),
        )
        return state

    async def _run_pass(self, channel_id: str, state: ChannelState, settings: EffectiveSettings) -> None:
        if (
            not state.candidates
            and self._clock() - state.last_feed_fetch_time >= settings.minimum_fetch_channel_feed_delay
        ):
            await self._refresh_feed(channel_id, state, settings)

        state.live_video_ids = []
        state.live = False

        for candidate in state.candidates:
            if self._clock() - candidate.last_processed_time >= settings.minimum_check_video_delay:
                try:
                    await self._machine.advance(candidate, settings)
                except LiveTrackerError as exc:
                    candidate.last_processed_time = self._clock()
                    candidate.live_confirmed = False
                    exc.with_context(channel_id=channel_id, video_id=candidate.id)
                    logger.error(
                        "candidate_process_failed",
                        attempts=candidate.live_check_attempt_count,
                        **exc.log_fields(),
                    )
                    raise
                candidate.last_processed_time = self._clock()
                candidate.live_confirmed = True

            if candidate.live and candidate.live_confirmed:
                state.live_video_ids.append(candidate.id)
                state.live = True
                if 0 < settings.stop_after_live_videos <= len(state.live_video_ids):
                    break

    async def _refresh_feed(self, channel_id: str, state: ChannelState, settings: EffectiveSettings) -> None:
        state.feed = None
        state.candidates = []
        state.live_video_ids = []
        state.live = False

        try:
            feed = await self._feeds.fetch(channel_id)
        except LiveTrackerError as exc:
            logger.error("feed_fetch_failed", **exc.log_fields())
            raise

        state.feed = feed
        state.last_feed_fetch_time = self._clock()
        state.candidates = select_candidates(feed, channel_id, self._clock(), settings.maximum_video_age)
        logger.info(
            "feed_refreshed",
            channel_id=channel_id,
            videos=len(feed.videos),
            candidates=len(state.candidates),
        )
