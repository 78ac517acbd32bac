"""
Unit tests for domain models, settings, identifiers and the error taxonomy.

Run: pytest backend/tests/test_models_config.py -v
"""
from __future__ import annotations

import logging
import re
from datetime import timedelta

import pytest
import structlog
from pydantic import ValidationError

from shared.config import Settings
from shared.errors import CheckTimeoutError, LiveTrackerError, TransportError
from shared.models.domain import EPOCH, ChannelFeed, ChannelState, FeedVideoEntry, Handle, VideoCandidate
from shared.models.enums import HandleType
from shared.utils.logging import channel_log_context, setup_logging
from shared.youtube import generate_nonce, is_valid_channel_id, is_valid_url, is_valid_video_id
from tracker.config import SettingsCell, TrackerSettings

from conftest import CHANNEL_ID, FakeClock


# ── Domain models ───────────────────────────────────────────────────────

def test_channel_state_json_round_trip(clock: FakeClock) -> None:
    state = ChannelState(
        live=True,
        live_video_ids=["dQw4w9WgXcQ"],
        feed=ChannelFeed(
            title="Google for Developers",
            videos=[FeedVideoEntry(id="dQw4w9WgXcQ", channel_id=CHANNEL_ID, published=1, updated=2)],
        ),
        last_feed_fetch_time=clock.now,
        candidates=[
            VideoCandidate(
                id="dQw4w9WgXcQ",
                channel_id=CHANNEL_ID,
                last_processed_time=clock.now,
                live=True,
                live_confirmed=True,
            )
        ],
    )

    restored = ChannelState.model_validate_json(state.model_dump_json())

    assert restored == state
    assert restored.candidates[0].last_not_livestream_time == EPOCH


def test_new_candidate_has_no_cached_verdicts() -> None:
    candidate = VideoCandidate(id="dQw4w9WgXcQ", channel_id=CHANNEL_ID)
    assert candidate.last_processed_time == EPOCH
    assert candidate.live is False
    assert candidate.live_check_attempt_count == 0


def test_handle_constructors_and_validity() -> None:
    assert Handle.channel_id(CHANNEL_ID).type is HandleType.CHANNEL_ID
    assert Handle.channel_url("https://www.youtube.com/@x").type is HandleType.CHANNEL_URL
    assert Handle.channel_id(CHANNEL_ID).valid()
    assert not Handle.channel_id("").valid()


def test_handle_rejects_unknown_type() -> None:
    with pytest.raises(ValidationError):
        Handle(type="playlist", value="PL123")


def test_feed_entry_last_touch_is_latest_timestamp() -> None:
    assert FeedVideoEntry(id="dQw4w9WgXcQ", published=5, updated=3).last_touch == 5
    assert FeedVideoEntry(id="dQw4w9WgXcQ", published=5, updated=9).last_touch == 9


# ── Identifiers ─────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (CHANNEL_ID, True),
        ("abcdef", True),
        ("abcde", False),
        ("a" * 65, False),
        ("UC bad id", False),
        ("UCabcdef\n", False),
    ],
)
def test_channel_id_filter(value: str, expected: bool) -> None:
    assert is_valid_channel_id(value) is expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("dQw4w9WgXcQ", True),
        ("a" * 48, True),
        ("a" * 49, False),
        ("dQw4w9/gXcQ", False),
        ("abcdef\n", False),
    ],
)
def test_video_id_filter(value: str, expected: bool) -> None:
    assert is_valid_video_id(value) is expected


def test_url_filter_needs_scheme_and_host() -> None:
    assert is_valid_url("https://www.youtube.com/@x")
    assert not is_valid_url("www.youtube.com/@x")
    assert not is_valid_url("")


def test_nonce_is_sixteen_hex_digits() -> None:
    nonces = {generate_nonce() for _ in range(50)}
    assert all(re.fullmatch(r"[0-9a-f]{16}", n) for n in nonces)
    assert len(nonces) > 1


# ── TrackerSettings ─────────────────────────────────────────────────────

def test_settings_defaults() -> None:
    settings = TrackerSettings()
    assert settings.stop_after_live_videos == 1
    assert settings.minimum_fetch_channel_feed_delay == timedelta(seconds=45)
    assert settings.maximum_cached_not_livestream_age == timedelta(minutes=15)
    assert settings.maximum_cached_livestream_finished_age == timedelta(minutes=60)
    assert settings.minimum_check_video_delay == timedelta(seconds=30)
    assert settings.maximum_video_age == timedelta(days=60)
    assert settings.check_video_timeout == timedelta(seconds=10)


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LW_TRACKER_STOP_AFTER_LIVE_VIDEOS", "3")
    monkeypatch.setenv("LW_TRACKER_MINIMUM_CHECK_VIDEO_DELAY", "PT5S")

    settings = TrackerSettings()

    assert settings.stop_after_live_videos == 3
    assert settings.minimum_check_video_delay == timedelta(seconds=5)


def test_effective_settings_are_floored() -> None:
    effective = TrackerSettings(
        stop_after_live_videos=-2,
        minimum_fetch_channel_feed_delay=timedelta(0),
        maximum_cached_not_livestream_age=timedelta(milliseconds=10),
        maximum_cached_livestream_finished_age=timedelta(seconds=-1),
        minimum_check_video_delay=timedelta(0),
        maximum_video_age=timedelta(seconds=-5),
        check_video_timeout=timedelta(seconds=-1),
    ).effective()

    assert effective.stop_after_live_videos == 0
    assert effective.minimum_fetch_channel_feed_delay == timedelta(seconds=1)
    assert effective.maximum_cached_not_livestream_age == timedelta(seconds=1)
    assert effective.maximum_cached_livestream_finished_age == timedelta(seconds=1)
    assert effective.minimum_check_video_delay == timedelta(seconds=1)
    assert effective.maximum_video_age == timedelta(0)
    assert effective.check_video_timeout == timedelta(0)


def test_settings_are_immutable() -> None:
    settings = TrackerSettings()
    with pytest.raises(ValidationError):
        settings.stop_after_live_videos = 4  # type: ignore[misc]


def test_settings_cell_swaps_snapshot() -> None:
    first, second = TrackerSettings(), TrackerSettings(stop_after_live_videos=2)
    cell = SettingsCell(first)

    assert cell.load() is first
    cell.store(second)
    assert cell.load() is second


# ── Root Settings ───────────────────────────────────────────────────────

def test_root_settings_ignore_unknown_general_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LW_DEBUG", "true")
    monkeypatch.setenv("LW_LOG_LEVEL", "DEBUG")

    settings = Settings(_env_file=None)

    assert "debug" not in Settings.model_fields
    assert not hasattr(settings, "debug")
    assert settings.log_level == "DEBUG"


# ── Errors ──────────────────────────────────────────────────────────────

def test_error_message_includes_context() -> None:
    exc = TransportError("unexpected status 404", status_code=404, operation="fetch_channel_feed")
    exc.with_context(channel_id=CHANNEL_ID)

    assert str(exc) == f"fetch_channel_feed: unexpected status 404 (channel_id={CHANNEL_ID})"
    assert exc.log_fields()["error_type"] == "TransportError"


def test_with_context_keeps_existing_values() -> None:
    exc = LiveTrackerError("boom", video_id="first_video")
    exc.with_context(video_id="other_video", channel_id=CHANNEL_ID)

    assert exc.video_id == "first_video"
    assert exc.channel_id == CHANNEL_ID


def test_check_timeout_is_a_timeout_error() -> None:
    assert issubclass(CheckTimeoutError, TimeoutError)
    assert issubclass(CheckTimeoutError, LiveTrackerError)


# ── Logging ─────────────────────────────────────────────────────────────

def test_setup_logging_installs_single_handler() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("tracker-test", extra_context={"component": "tests"})

        assert len(root.handlers) == 1
        assert structlog.contextvars.get_contextvars()["service"] == "tracker-test"
        assert structlog.contextvars.get_contextvars()["component"] == "tests"
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        structlog.contextvars.clear_contextvars()
        structlog.reset_defaults()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_channel_log_context_binds_and_unbinds() -> None:
    with channel_log_context(CHANNEL_ID, video_id="dQw4w9WgXcQ"):
        bound = structlog.contextvars.get_contextvars()
        assert bound["channel_id"] == CHANNEL_ID
        assert bound["video_id"] == "dQw4w9WgXcQ"
    assert "channel_id" not in structlog.contextvars.get_contextvars()
