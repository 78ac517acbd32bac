"""
Shared probe schema and the YouTube Data API collaborator interface.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LiveStreamingDetails:
    """The `liveStreamingDetails` fields we care about; empty string means absent."""
    actual_start_time: str = ""
    actual_end_time: str = ""
    scheduled_start_time: str = ""


@dataclass(frozen=True)
class LiveVideoState:
    """Authoritative verdict for one video."""
    live: bool
    finished: bool

    @classmethod
    def from_details(cls, details: Optional[LiveStreamingDetails]) -> "LiveVideoState":
        if details is None:
            return cls(live=False, finished=False)
        finished = bool(details.actual_end_time)
        return cls(live=not finished and bool(details.actual_start_time), finished=finished)


class VideosAPI(ABC):
    """Batched-by-ID video lookup against the rate-limited YouTube Data API."""

    @abstractmethod
    async def list_live_streaming_details(
        self, video_ids: list[str]
    ) -> dict[str, LiveStreamingDetails]:
        """
        Return live streaming details keyed by video ID.

        Videos that are unknown or were never streams are simply missing from
        the mapping. Implementations raise `UpstreamError` on API failures.
        """
