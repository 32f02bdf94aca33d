"""Redis state store implementation."""

from datetime import timedelta
from typing import Any, Optional

import redis.asyncio as redis

from fastlypurge.infrastructure.serializers.json import JsonSerializer


class RedisStateStore:
    """Redis state store for multi-process deployments.

    Lets every worker share the generated site id and the cached
    credential state. Values are stored as JSON; entries without a TTL
    never expire. Concurrent writers race and the last one wins.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "fastlypurge",
        serializer: Optional[JsonSerializer] = None,
        client: Optional[redis.Redis] = None,
    ) -> None:
        """Initialize the Redis state store.

        Args:
            redis_url: Redis connection URL. Ignored if ``client`` is given.
            key_prefix: Prefix for all state keys.
            serializer: Serializer for values. Defaults to JSON.
            client: Optional existing Redis client.
        """
        self._redis: redis.Redis = client or redis.from_url(redis_url)  # type: ignore
        self._key_prefix = key_prefix
        self._serializer = serializer or JsonSerializer()

    async def get(self, key: str) -> Any | None:
        """Retrieve a stored value.

        Args:
            key: The state key.

        Returns:
            The stored value, or None if not set or expired.
        """
        data = await self._redis.get(self._prefixed_key(key))
        if data is None:
            return None
        return self._serializer.deserialize(data)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[timedelta] = None,
    ) -> None:
        """Store a value.

        Args:
            key: The state key.
            value: A JSON-compatible value.
            ttl: Optional time-to-live. If None, the value never expires.
        """
        prefixed_key = self._prefixed_key(key)
        data = self._serializer.serialize(value)

        if ttl is not None:
            await self._redis.setex(prefixed_key, max(1, int(ttl.total_seconds())), data)
        else:
            await self._redis.set(prefixed_key, data)

    async def delete(self, key: str) -> bool:
        """Delete a stored value.

        Returns:
            True if the key existed and was deleted, False otherwise.
        """
        result = await self._redis.delete(self._prefixed_key(key))
        return result > 0

    def _prefixed_key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._redis.aclose()

    async def __aenter__(self) -> "RedisStateStore":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.close()
