"""
Authoritative live-status probe backed by the YouTube Data API v3.

Each check costs quota, so the candidate state machine only gets here after
the cached verdicts and the thumbnail probe have failed to settle a video.
"""
from __future__ import annotations

from typing import Any, Iterable
from urllib.parse import urlencode

import httpx

from shared.config import get_settings
from shared.errors import InvalidIdentifierError, LiveTrackerError, UpstreamError
from shared.models.enums import VideoLiveStatus
from shared.utils.http_client import CrawlerHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import VIDEO_STATE_CHECKS
from shared.youtube import is_valid_video_id

from probes.base import LiveStreamingDetails, LiveVideoState, VideosAPI

logger = get_logger(__name__)

OPERATION = "videos.list"

# videos.list accepts at most 50 IDs per call.
MAX_IDS_PER_CALL = 50


def extract_error_reason(response: httpx.Response) -> str:
    """`reason` of the first error in a YouTube API error body, or "unknown"."""
    try:
        errors = response.json().get("error", {}).get("errors", [])
    except ValueError:
        return "unknown"
    if errors and isinstance(errors[0], dict):
        return errors[0].get("reason", "unknown")
    return "unknown"


def _details_from_item(item: dict[str, Any]) -> LiveStreamingDetails:
    raw = item.get("liveStreamingDetails") or {}
    return LiveStreamingDetails(
        actual_start_time=raw.get("actualStartTime", "") or "",
        actual_end_time=raw.get("actualEndTime", "") or "",
        scheduled_start_time=raw.get("scheduledStartTime", "") or "",
    )


def _chunks(ids: list[str], size: int) -> Iterable[list[str]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


class YouTubeDataAPI(VideosAPI):
    """`videos.list?part=liveStreamingDetails` over the shared HTTP client."""

    def __init__(
        self,
        http: CrawlerHTTPClient,
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        settings = get_settings()
        self._http = http
        self._key = api_key if api_key is not None else settings.youtube_api_key
        self._base_url = (base_url or settings.youtube_api_base_url).rstrip("/")

    async def list_live_streaming_details(
        self, video_ids: list[str]
    ) -> dict[str, LiveStreamingDetails]:
        result: dict[str, LiveStreamingDetails] = {}
        for batch in _chunks(video_ids, MAX_IDS_PER_CALL):
            params = {"part": "liveStreamingDetails", "id": ",".join(batch), "key": self._key}
            resp = await self._http.request(
                "GET", f"{self._base_url}/videos?{urlencode(params)}", operation=OPERATION
            )
            if not resp.is_success:
                raise UpstreamError(
                    f"HTTP {resp.status_code}",
                    status_code=resp.status_code,
                    reason=extract_error_reason(resp),
                    operation=OPERATION,
                )
            try:
                items = resp.json().get("items", []) or []
            except ValueError as exc:
                raise UpstreamError("malformed JSON response", operation=OPERATION) from exc

            for item in items:
                video_id = item.get("id")
                if video_id in batch and item.get("liveStreamingDetails"):
                    result[video_id] = _details_from_item(item)
        return result


class VideoStateProbe:
    """Exact live/finished status of one video."""

    def __init__(self, api: VideosAPI) -> None:
        self._api = api

    async def check(self, video_id: str) -> LiveVideoState:
        """
        Return the video's live state.

        Raises:
            InvalidIdentifierError: If the video ID fails validation.
            UpstreamError: If the API call fails; transport errors keep their type.
        """
        if not is_valid_video_id(video_id):
            raise InvalidIdentifierError("invalid video ID", operation=OPERATION, video_id=video_id)

        try:
            details = await self._api.list_live_streaming_details([video_id])
        except LiveTrackerError as exc:
            VIDEO_STATE_CHECKS.labels(status=VideoLiveStatus.ERROR.value).inc()
            raise exc.with_context(video_id=video_id)
        except httpx.HTTPError as exc:
            VIDEO_STATE_CHECKS.labels(status=VideoLiveStatus.ERROR.value).inc()
            raise UpstreamError(str(exc), operation=OPERATION, video_id=video_id) from exc

        state = LiveVideoState.from_details(details.get(video_id))
        if state.finished:
            status = VideoLiveStatus.FINISHED
        elif state.live:
            status = VideoLiveStatus.LIVE
        else:
            status = VideoLiveStatus.NOT_LIVE
        VIDEO_STATE_CHECKS.labels(status=status.value).inc()
        logger.debug("video_state_checked", video_id=video_id, status=status.value)
        return state
