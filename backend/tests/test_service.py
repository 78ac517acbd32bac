"""
Tests for the tracker session factory.

Run: pytest backend/tests/test_service.py -v
"""
from __future__ import annotations

from typing import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.config import get_settings
from shared.errors import ConfigurationError
from tracker.engine import ChannelTracker
from tracker.service import tracker_session

from conftest import FakeVideosAPI


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("LW_YOUTUBE_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_session_requires_api_key_without_custom_api() -> None:
    with pytest.raises(ConfigurationError):
        async with tracker_session():
            pass


@pytest.mark.asyncio
async def test_session_with_api_key_builds_tracker(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LW_YOUTUBE_API_KEY", "test-key-1234")
    get_settings.cache_clear()

    async with tracker_session() as tracker:
        assert isinstance(tracker, ChannelTracker)


@pytest.mark.asyncio
async def test_session_leaves_caller_client_open() -> None:
    http = MagicMock()
    http.start = AsyncMock()
    http.close = AsyncMock()

    async with tracker_session(videos_api=FakeVideosAPI(), http=http) as tracker:
        assert isinstance(tracker, ChannelTracker)

    http.start.assert_not_awaited()
    http.close.assert_not_awaited()
