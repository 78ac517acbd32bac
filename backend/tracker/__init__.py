"""
YouTube channel live tracker.
Decides whether a channel is livestreaming while keeping YouTube Data API
calls to a minimum: cached verdicts first, then the live thumbnail probe,
and the authoritative API check only when nothing else settles it.
"""
from tracker.config import TrackerSettings, get_tracker_settings
from tracker.engine import ChannelTracker, select_candidates
from tracker.resolver import ChannelIDCache, ChannelResolver
from tracker.service import tracker_session

__all__ = [
    "ChannelIDCache",
    "ChannelResolver",
    "ChannelTracker",
    "TrackerSettings",
    "get_tracker_settings",
    "select_candidates",
    "tracker_session",
]
