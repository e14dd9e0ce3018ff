import asyncio
import json
import logging
import uuid
from typing import Any, Optional, TypeVar, Union, cast

import redis.asyncio as redis
from pydantic import BaseModel

from src.config import Settings, settings


logger = logging.getLogger(__name__)

# Create a type variable for generic cache type
T = TypeVar("T", bound=BaseModel)

# Delete the lock only if it still holds our token
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisClient:
    """Redis client for caching and run locks, with connection retries."""

    def __init__(self, config: Settings = settings) -> None:
        self.redis_url = str(config.REDIS_URL)
        self.client: Optional[redis.Redis] = None
        self.default_ttl = config.CACHE_TTL
        self.max_retries = 3
        self.retry_delay = 0.5

    async def connect(self, retry: bool = True) -> Optional[redis.Redis]:
        """
        Connect to Redis with retry support.

        Args:
            retry: Whether to retry connection on failure

        Returns:
            Redis client or None if connection failed
        """
        if self.client is not None:
            return self.client

        retries = 0
        last_error: Optional[Exception] = None

        while retries <= self.max_retries:
            try:
                client = redis.from_url(  # type: ignore[no-untyped-call]
                    self.redis_url, decode_responses=True
                )

                if await client.ping():
                    logger.info("Connected to Redis successfully")
                    self.client = client
                    return client

                logger.warning("Redis ping failed, reconnecting...")
                retries += 1

            except (redis.ConnectionError, redis.TimeoutError) as e:
                last_error = e
                if not retry or retries >= self.max_retries:
                    break

                retries += 1
                wait_time = self.retry_delay * (2**retries)
                logger.warning(
                    "Failed to connect to Redis (attempt %s/%s): %s. "
                    "Retrying in %.2f seconds...",
                    retries,
                    self.max_retries,
                    str(e),
                    wait_time,
                )
                await asyncio.sleep(wait_time)

        logger.error(
            "Failed to connect to Redis after %s attempts: %s",
            retries,
            last_error,
        )
        return None

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self.client:
            try:
                await self.client.aclose()
                logger.info("Disconnected from Redis")
            except redis.RedisError as e:
                logger.error("Error disconnecting from Redis: %s", e)
            finally:
                self.client = None

    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found or error
        """
        client = await self.connect()
        if not client:
            logger.warning(
                "Redis connection not available, skipping cache get"
            )
            return None

        try:
            return await client.get(key)
        except redis.RedisError as e:
            logger.warning("Error getting value from Redis: %s", e)
            return None

    async def set(
        self, key: str, value: str, ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds

        Returns:
            True if value was set, False otherwise
        """
        client = await self.connect()
        if not client:
            logger.warning(
                "Redis connection not available, skipping cache set"
            )
            return False

        try:
            return bool(
                await client.set(key, value, ex=ttl or self.default_ttl)
            )
        except redis.RedisError as e:
            logger.warning("Error setting value in Redis: %s", e)
            return False

    async def delete(self, key: str, retry: bool = True) -> int:
        """
        Delete key from cache.

        Args:
            key: Cache key
            retry: Whether to retry connecting when Redis is unreachable

        Returns:
            Number of keys deleted
        """
        client = await self.connect(retry=retry)
        if not client:
            logger.warning(
                "Redis connection not available, skipping cache delete"
            )
            return 0

        try:
            return await client.delete(key)
        except redis.RedisError as e:
            logger.warning("Error deleting key from Redis: %s", e)
            return 0

    async def get_object(
        self, key: str, model_class: Optional[type[T]] = None
    ) -> Optional[Union[dict[str, Any], T]]:
        """
        Get object from cache and deserialize it.

        Args:
            key: Cache key
            model_class: Optional Pydantic model class to deserialize into

        Returns:
            Deserialized object or None if not found or error
        """
        json_str = await self.get(key)
        if not json_str:
            return None

        try:
            data = json.loads(json_str)
            if model_class:
                return model_class.model_validate(data)
            return cast(dict[str, Any], data)
        except ValueError as e:
            logger.warning("Error deserializing object from Redis: %s", e)
            return None

    async def set_object(
        self,
        key: str,
        value: Union[dict[str, Any], BaseModel],
        ttl: Optional[int] = None,
    ) -> bool:
        """Serialize object and set in cache with TTL."""
        if isinstance(value, BaseModel):
            json_str = value.model_dump_json()
        else:
            json_str = json.dumps(value, default=str)
        return await self.set(key, json_str, ttl)

    async def acquire_lock(self, key: str, ttl: int) -> Optional[str]:
        """
        Try to take an advisory lock.

        Args:
            key: Lock key
            ttl: Seconds before the lock expires on its own

        Returns:
            Lock token if acquired, "" if Redis is unavailable,
            None if another holder owns the lock
        """
        client = await self.connect(retry=False)
        if not client:
            logger.warning(
                "Redis connection not available, proceeding without lock %s",
                key,
            )
            return ""

        token = uuid.uuid4().hex
        try:
            acquired = await client.set(key, token, nx=True, ex=ttl)
        except redis.RedisError as e:
            logger.warning("Error acquiring lock %s: %s", key, e)
            return ""

        return token if acquired else None

    async def release_lock(self, key: str, token: str) -> bool:
        """Release a lock previously returned by acquire_lock."""
        if not token:
            return False

        client = await self.connect(retry=False)
        if not client:
            return False

        try:
            released = await client.eval(RELEASE_LOCK_SCRIPT, 1, key, token)
        except redis.RedisError as e:
            logger.warning("Error releasing lock %s: %s", key, e)
            return False

        return bool(released)


# Initialize global client instance
redis_client = RedisClient()
