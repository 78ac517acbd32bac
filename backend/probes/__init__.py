"""
Live-status probes for YouTube videos.
A cheap heuristic (live thumbnail variant) and an authoritative, quota-bound
check through the YouTube Data API.
"""
from probes.base import LiveStreamingDetails, LiveVideoState, VideosAPI
from probes.thumbnail import LiveThumbnailProbe, live_thumbnail_url
from probes.videos_api import VideoStateProbe, YouTubeDataAPI

__all__ = [
    "LiveStreamingDetails",
    "LiveVideoState",
    "VideosAPI",
    "LiveThumbnailProbe",
    "live_thumbnail_url",
    "VideoStateProbe",
    "YouTubeDataAPI",
]
