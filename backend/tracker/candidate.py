"""
Per-video decision logic.

For one candidate, decide between trusting a cached verdict, running the
cheap live-thumbnail probe, or paying for an authoritative API check:

    1. thumbnail verdict still fresh        -> reuse it, no request
       otherwise                            -> thumbnail probe (verdict stamped on success only)
    2. not a livestream                     -> live = False, done
    3. finished-livestream verdict fresh    -> live = False, done
    4. authoritative check                  -> live / finished from the API
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable

from shared.errors import CheckTimeoutError, LiveTrackerError
from shared.models.domain import EPOCH, VideoCandidate
from shared.utils.logging import get_logger
from shared.utils.metrics import CANDIDATE_DECISIONS

from probes.thumbnail import LiveThumbnailProbe
from probes.videos_api import VideoStateProbe
from tracker.config import EffectiveSettings

logger = get_logger(__name__)

OPERATION = "process_video_candidate"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CandidateStateMachine:
    """Advances `VideoCandidate`s using the two probes."""

    def __init__(
        self,
        thumbnail_probe: LiveThumbnailProbe,
        state_probe: VideoStateProbe,
        clock: Clock = utcnow,
    ) -> None:
        self._thumbnail = thumbnail_probe
        self._state = state_probe
        self._clock = clock

    async def advance(self, candidate: VideoCandidate, settings: EffectiveSettings) -> str:
        """
        Run one decision round for `candidate` under the per-video deadline.

        Returns the name of the path the round ended on. Probe failures are
        re-raised after the candidate's bookkeeping has been updated.

        Raises:
            CheckTimeoutError: If the round exceeded `check_video_timeout`.
            LiveTrackerError: Whatever the probes raised.
        """
        timeout = settings.check_video_timeout.total_seconds()
        if timeout <= 0:
            path = await self._advance(candidate, settings)
        else:
            try:
                path = await asyncio.wait_for(self._advance(candidate, settings), timeout)
            except LiveTrackerError:
                raise
            except asyncio.TimeoutError as exc:
                raise CheckTimeoutError(
                    f"exceeded check video timeout of {timeout:g}s",
                    operation=OPERATION,
                    channel_id=candidate.channel_id,
                    video_id=candidate.id,
                ) from exc

        CANDIDATE_DECISIONS.labels(path=path).inc()
        logger.debug(
            "candidate_advanced",
            video_id=candidate.id,
            path=path,
            live=candidate.live,
            attempts=candidate.live_check_attempt_count,
        )
        return path

    async def _advance(self, candidate: VideoCandidate, settings: EffectiveSettings) -> str:
        now = self._clock()

        if now - candidate.last_not_livestream_time >= settings.maximum_cached_not_livestream_age:
            exists = await self._thumbnail.check(candidate.id)
            candidate.not_livestream = not exists
            candidate.last_not_livestream_time = self._clock()

        if candidate.not_livestream:
            candidate.live = False
            candidate.live_check_attempt_count = 0
            candidate.livestream_finished = False
            candidate.last_livestream_finished_time = EPOCH
            return "not_livestream"

        if (
            candidate.livestream_finished
            and now - candidate.last_livestream_finished_time < settings.maximum_cached_livestream_finished_age
        ):
            candidate.live = False
            candidate.live_check_attempt_count = 0
            return "finished_cached"

        # Counted up front so a deadline hit mid-call still registers as a failed attempt.
        candidate.last_live_check_time = now
        candidate.live_check_attempt_count += 1
        state = await self._state.check(candidate.id)

        candidate.live = state.live
        candidate.livestream_finished = state.finished
        if state.finished:
            candidate.last_livestream_finished_time = self._clock()
        candidate.live_check_attempt_count = 0

        if state.finished:
            return "finished"
        return "live" if state.live else "not_live"
