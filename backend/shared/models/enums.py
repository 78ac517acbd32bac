"""Domain enumerations for the live tracker."""
from __future__ import annotations

from enum import Enum


class HandleType(str, Enum):
    """Discriminant of a tracking handle."""
    CHANNEL_ID = "channel_id"
    CHANNEL_URL = "channel_url"


class ThumbnailVerdict(str, Enum):
    """Outcome labels of a live-thumbnail probe, used for metrics and logs."""
    EXISTS = "exists"
    MISSING = "missing"
    INDETERMINATE = "indeterminate"
    ERROR = "error"


class VideoLiveStatus(str, Enum):
    """Outcome labels of an authoritative video-state check."""
    LIVE = "live"
    FINISHED = "finished"
    NOT_LIVE = "not_live"
    ERROR = "error"
