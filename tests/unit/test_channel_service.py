"""Unit tests for ChannelService.

Tests channel profile counters and watch history assembly against a mocked
asyncpg pool.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from vidtube.errors import NotFoundError, ValidationError
from vidtube.services.channel_service import ChannelService


def _profile_row(**overrides):
    row = {
        "id": uuid4(),
        "username": "neo",
        "fullname": "Neo A",
        "email": "neo@x.com",
        "avatar": "ref1",
        "cover_image": None,
        "created_at": datetime.now(timezone.utc),
        "subscribers_count": 0,
        "channels_subscribed_to_count": 0,
        "is_subscribed": False,
    }
    row.update(overrides)
    return row


def _history_row(title, owner=True):
    owner_id = uuid4() if owner else None
    return {
        "id": uuid4(),
        "title": title,
        "description": f"{title} description",
        "video_file": f"https://cdn/{title}.mp4",
        "thumbnail": f"https://cdn/{title}.png",
        "duration": 42.5,
        "views": 7,
        "created_at": datetime.now(timezone.utc),
        "owner_id": owner_id,
        "owner_username": "morpheus" if owner else None,
        "owner_fullname": "Morpheus" if owner else None,
        "owner_avatar": "ref-m" if owner else None,
    }


@pytest.fixture
def channel_service():
    return ChannelService()


@pytest.fixture
def patched_pool(mock_pool):
    pool, conn = mock_pool
    with patch("vidtube.services.channel_service.get_pool", new_callable=AsyncMock) as mock_get_pool:
        mock_get_pool.return_value = pool
        yield conn


class TestChannelProfile:
    """Tests for ChannelService.channel_profile."""

    @pytest.mark.parametrize("username", [None, "", "   "])
    async def test_blank_username(self, channel_service, patched_pool, username):
        with pytest.raises(ValidationError, match="Username is missing"):
            await channel_service.channel_profile(username)
        patched_pool.fetchrow.assert_not_awaited()

    async def test_unknown_channel(self, channel_service, patched_pool):
        patched_pool.fetchrow.return_value = None

        with pytest.raises(NotFoundError, match="Channel does not exist"):
            await channel_service.channel_profile("ghost")

    async def test_fresh_channel_has_zero_counts(self, channel_service, patched_pool):
        patched_pool.fetchrow.return_value = _profile_row()

        profile = await channel_service.channel_profile("neo")

        assert profile.subscribers_count == 0
        assert profile.channels_subscribed_to_count == 0
        assert profile.is_subscribed is False
        assert profile.cover_image == ""

    async def test_counts_and_viewer_subscription(self, channel_service, patched_pool):
        viewer_id = uuid4()
        patched_pool.fetchrow.return_value = _profile_row(
            subscribers_count=3, channels_subscribed_to_count=1, is_subscribed=True
        )

        profile = await channel_service.channel_profile("NEO", viewer_id=viewer_id)

        assert profile.subscribers_count == 3
        assert profile.channels_subscribed_to_count == 1
        assert profile.is_subscribed is True
        _, username, viewer = patched_pool.fetchrow.call_args[0]
        assert username == "neo"
        assert viewer == viewer_id

    async def test_profile_serializes_camel_case(self, channel_service, patched_pool):
        patched_pool.fetchrow.return_value = _profile_row(subscribers_count=2)

        profile = await channel_service.channel_profile("neo")
        dumped = profile.model_dump(by_alias=True)

        assert dumped["subscribersCount"] == 2
        assert "channelsSubscribedToCount" in dumped
        assert "isSubscribed" in dumped
        assert "password_hash" not in dumped


class TestWatchHistory:
    """Tests for ChannelService.watch_history."""

    async def test_unknown_user(self, channel_service, patched_pool):
        patched_pool.fetchval.return_value = False

        with pytest.raises(NotFoundError):
            await channel_service.watch_history(uuid4())
        patched_pool.fetch.assert_not_awaited()

    async def test_empty_history(self, channel_service, patched_pool):
        patched_pool.fetchval.return_value = True
        patched_pool.fetch.return_value = []

        assert await channel_service.watch_history(uuid4()) == []

    async def test_preserves_stored_order(self, channel_service, patched_pool):
        patched_pool.fetchval.return_value = True
        patched_pool.fetch.return_value = [_history_row("first"), _history_row("second")]

        history = await channel_service.watch_history(uuid4())

        assert [entry.title for entry in history] == ["first", "second"]
        assert "ORDER BY h.position" in patched_pool.fetch.call_args[0][0]

    async def test_owner_is_single_object(self, channel_service, patched_pool):
        patched_pool.fetchval.return_value = True
        patched_pool.fetch.return_value = [_history_row("clip")]

        entry = (await channel_service.watch_history(uuid4()))[0]

        assert entry.owner.username == "morpheus"
        dumped = entry.model_dump(by_alias=True)
        assert isinstance(dumped["owner"], dict)
        assert set(dumped["owner"]) == {"id", "username", "fullname", "avatar"}
        assert "videoFile" in dumped

    async def test_missing_owner_is_null(self, channel_service, patched_pool):
        patched_pool.fetchval.return_value = True
        patched_pool.fetch.return_value = [_history_row("orphan", owner=False)]

        entry = (await channel_service.watch_history(uuid4()))[0]

        assert entry.owner is None
