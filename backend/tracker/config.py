"""
Tracker configuration.
Uses the LW_TRACKER_ prefix; durations accept seconds or ISO 8601 (e.g. "PT45S").
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_DELAY = timedelta(seconds=1)
ZERO = timedelta(0)


class TrackerSettings(BaseSettings):
    """Caching and probing knobs read once per tracking pass."""

    model_config = SettingsConfigDict(
        env_prefix="LW_TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    stop_after_live_videos: int = Field(
        default=1, description="Stop scanning a channel once this many live videos are found; <= 0 scans all"
    )
    minimum_fetch_channel_feed_delay: timedelta = Field(
        default=timedelta(seconds=45), description="Minimum time between two feed fetches of a channel"
    )
    maximum_cached_not_livestream_age: timedelta = Field(
        default=timedelta(minutes=15), description="How long a thumbnail verdict is trusted"
    )
    maximum_cached_livestream_finished_age: timedelta = Field(
        default=timedelta(minutes=60), description="How long a finished-livestream verdict is trusted"
    )
    minimum_check_video_delay: timedelta = Field(
        default=timedelta(seconds=30), description="Minimum time between two checks of the same video"
    )
    maximum_video_age: timedelta = Field(
        default=timedelta(days=60), description="Feed videos older than this are ignored; 0 keeps all"
    )
    check_video_timeout: timedelta = Field(
        default=timedelta(seconds=10), description="Deadline for checking one video; 0 disables it"
    )

    def effective(self) -> "EffectiveSettings":
        """Floor every value to what the tracking pass can work with."""
        return EffectiveSettings(
            stop_after_live_videos=max(0, self.stop_after_live_videos),
            minimum_fetch_channel_feed_delay=max(MIN_DELAY, self.minimum_fetch_channel_feed_delay),
            maximum_cached_not_livestream_age=max(MIN_DELAY, self.maximum_cached_not_livestream_age),
            maximum_cached_livestream_finished_age=max(MIN_DELAY, self.maximum_cached_livestream_finished_age),
            minimum_check_video_delay=max(MIN_DELAY, self.minimum_check_video_delay),
            maximum_video_age=max(ZERO, self.maximum_video_age),
            check_video_timeout=max(ZERO, self.check_video_timeout),
        )


@dataclass(frozen=True)
class EffectiveSettings:
    stop_after_live_videos: int
    minimum_fetch_channel_feed_delay: timedelta
    maximum_cached_not_livestream_age: timedelta
    maximum_cached_livestream_finished_age: timedelta
    minimum_check_video_delay: timedelta
    maximum_video_age: timedelta
    check_video_timeout: timedelta


class SettingsCell:
    """
    Holder of the current settings snapshot.

    Readers take whatever snapshot is current without locking; writers swap
    the whole (immutable) snapshot in one reference assignment.
    """

    def __init__(self, settings: TrackerSettings) -> None:
        self._settings = settings
        self._write_lock = threading.Lock()

    def load(self) -> TrackerSettings:
        return self._settings

    def store(self, settings: TrackerSettings) -> None:
        with self._write_lock:
            self._settings = settings


def get_tracker_settings() -> TrackerSettings:
    """Load tracker settings from the environment."""
    return TrackerSettings()
