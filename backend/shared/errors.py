"""
Error taxonomy for the live tracker.

Every error carries the operation that failed and, where known, the channel
and video it concerned. "Not live" and "thumbnail missing" are results, never
errors; only transport and protocol failures end up here.
"""
from __future__ import annotations

from typing import Optional


class LiveTrackerError(Exception):
    """Base class for all tracker errors."""

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        channel_id: Optional[str] = None,
        video_id: Optional[str] = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.channel_id = channel_id
        self.video_id = video_id
        super().__init__(self._render())

    def _render(self) -> str:
        text = f"{self.operation}: {self.message}" if self.operation else self.message
        context = [
            f"{key}={value}"
            for key, value in (("channel_id", self.channel_id), ("video_id", self.video_id))
            if value
        ]
        if context:
            text += f" ({', '.join(context)})"
        return text

    def with_context(
        self, *, channel_id: Optional[str] = None, video_id: Optional[str] = None
    ) -> "LiveTrackerError":
        """Fill in missing channel/video context, keeping what is already set."""
        self.channel_id = self.channel_id or channel_id
        self.video_id = self.video_id or video_id
        self.args = (self._render(),)
        return self

    def log_fields(self) -> dict[str, str]:
        """Context as structured log fields."""
        fields = {"error": self.message, "error_type": type(self).__name__}
        if self.operation:
            fields["operation"] = self.operation
        if self.channel_id:
            fields["channel_id"] = self.channel_id
        if self.video_id:
            fields["video_id"] = self.video_id
        return fields


class InvalidIdentifierError(LiveTrackerError):
    """A handle, channel ID, channel URL or video ID failed validation."""


class NotFoundError(LiveTrackerError):
    """A channel page did not yield a channel ID."""


class TransportError(LiveTrackerError):
    """Network failure or unexpected HTTP status from the upstream site."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, **kwargs: Optional[str]) -> None:
        self.status_code = status_code
        super().__init__(message, **kwargs)


class CheckTimeoutError(LiveTrackerError, TimeoutError):
    """A request or a per-video check exceeded its deadline."""


class IndeterminateError(LiveTrackerError):
    """The live thumbnail answered with a status that proves nothing either way."""

    def __init__(self, message: str, *, status_code: int, **kwargs: Optional[str]) -> None:
        self.status_code = status_code
        super().__init__(message, **kwargs)


class UpstreamError(LiveTrackerError):
    """The YouTube Data API rejected or failed a call."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        reason: str = "",
        **kwargs: Optional[str],
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(message, **kwargs)


class FeedParseError(LiveTrackerError):
    """A channel feed body could not be parsed as an Atom feed."""


class ConfigurationError(LiveTrackerError):
    """The tracker was assembled without a required collaborator."""
