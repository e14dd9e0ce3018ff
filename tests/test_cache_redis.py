import json
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
import redis.asyncio as redis
from pydantic import BaseModel

from src.cache.redis import RELEASE_LOCK_SCRIPT, RedisClient


class CachedSnapshotInfo(BaseModel):
    last_snapshot: datetime
    next_snapshot: datetime
    snapshot_interval: str


class TestRedisClient:
    """Tests for the Redis caching client."""

    @pytest.mark.asyncio
    async def test_connect_success(self):
        """Test successful connection to Redis."""
        # Arrange
        mock_redis = AsyncMock()
        mock_redis.ping.return_value = True

        # Patch redis.from_url to return our mock
        with patch("redis.asyncio.from_url", return_value=mock_redis):
            client = RedisClient()

            # Act
            result = await client.connect()

            # Assert
            assert result is mock_redis
            assert client.client is mock_redis
            mock_redis.ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        """Test handling connection failures."""
        with patch(
            "redis.asyncio.from_url",
            side_effect=redis.ConnectionError("Connection refused"),
        ):
            client = RedisClient()
            client.max_retries = 1
            client.retry_delay = 0

            result = await client.connect()

            assert result is None
            assert client.client is None

    @pytest.mark.asyncio
    async def test_set_value_uses_default_ttl(self):
        mock_redis = AsyncMock()
        mock_redis.set.return_value = True

        client = RedisClient()
        client.client = mock_redis

        result = await client.set("test_key", "test_value")

        assert result is True
        mock_redis.set.assert_awaited_once_with(
            "test_key", "test_value", ex=client.default_ttl
        )

    @pytest.mark.asyncio
    async def test_get_returns_none_on_redis_error(self):
        mock_redis = AsyncMock()
        mock_redis.get.side_effect = redis.RedisError("boom")

        client = RedisClient()
        client.client = mock_redis

        assert await client.get("test_key") is None

    @pytest.mark.asyncio
    async def test_object_round_trip_through_model(self):
        """Test caching a Pydantic model and reading it back."""
        # Arrange
        mock_redis = AsyncMock()
        mock_redis.set.return_value = True
        client = RedisClient()
        client.client = mock_redis
        info = CachedSnapshotInfo(
            last_snapshot=datetime(2024, 3, 10, 0, 0),
            next_snapshot=datetime(2024, 3, 11, 0, 0),
            snapshot_interval="24 hours",
        )

        # Act
        await client.set_object("latest", info, ttl=60)
        stored = mock_redis.set.call_args.args[1]
        mock_redis.get.return_value = stored
        as_dict = await client.get_object("latest")
        as_model = await client.get_object("latest", CachedSnapshotInfo)

        # Assert
        assert json.loads(stored)["snapshot_interval"] == "24 hours"
        assert as_dict["next_snapshot"] == "2024-03-11T00:00:00"
        assert as_model == info

    @pytest.mark.asyncio
    async def test_acquire_lock(self):
        mock_redis = AsyncMock()
        mock_redis.set.return_value = True
        client = RedisClient()
        client.client = mock_redis

        token = await client.acquire_lock("lock:snapshot", ttl=30)

        assert token
        mock_redis.set.assert_awaited_once_with(
            "lock:snapshot", token, nx=True, ex=30
        )

    @pytest.mark.asyncio
    async def test_acquire_lock_already_held(self):
        mock_redis = AsyncMock()
        mock_redis.set.return_value = None
        client = RedisClient()
        client.client = mock_redis

        assert await client.acquire_lock("lock:snapshot", ttl=30) is None

    @pytest.mark.asyncio
    async def test_acquire_lock_without_redis(self):
        client = RedisClient()

        with patch.object(client, "connect", AsyncMock(return_value=None)):
            token = await client.acquire_lock("lock:snapshot", ttl=30)

        assert token == ""

    @pytest.mark.asyncio
    async def test_release_lock_checks_token(self):
        mock_redis = AsyncMock()
        mock_redis.eval.return_value = 1
        client = RedisClient()
        client.client = mock_redis

        released = await client.release_lock("lock:snapshot", "abc")

        assert released is True
        mock_redis.eval.assert_awaited_once_with(
            RELEASE_LOCK_SCRIPT, 1, "lock:snapshot", "abc"
        )

    @pytest.mark.asyncio
    async def test_release_lock_without_token(self):
        mock_redis = AsyncMock()
        client = RedisClient()
        client.client = mock_redis

        assert await client.release_lock("lock:snapshot", "") is False
        mock_redis.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lock_does_not_back_off_when_redis_is_down(self):
        """Lock calls fail fast instead of waiting through reconnects."""
        # Arrange
        client = RedisClient()
        sleep = AsyncMock()

        # Act
        with patch(
            "redis.asyncio.from_url",
            side_effect=redis.ConnectionError("Connection refused"),
        ) as from_url, patch("src.cache.redis.asyncio.sleep", sleep):
            token = await client.acquire_lock("lock:snapshot", ttl=30)
            released = await client.release_lock("lock:snapshot", "abc")

        # Assert
        assert token == ""
        assert released is False
        assert from_url.call_count == 2
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_without_retry_fails_fast(self):
        client = RedisClient()
        sleep = AsyncMock()

        with patch(
            "redis.asyncio.from_url",
            side_effect=redis.ConnectionError("Connection refused"),
        ) as from_url, patch("src.cache.redis.asyncio.sleep", sleep):
            deleted = await client.delete("snapshots:latest", retry=False)

        assert deleted == 0
        from_url.assert_called_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_retries_by_default(self):
        client = RedisClient()
        client.max_retries = 2
        sleep = AsyncMock()

        with patch(
            "redis.asyncio.from_url",
            side_effect=redis.ConnectionError("Connection refused"),
        ) as from_url, patch("src.cache.redis.asyncio.sleep", sleep):
            deleted = await client.delete("snapshots:latest")

        assert deleted == 0
        assert from_url.call_count == 3
        assert sleep.await_count == 2
