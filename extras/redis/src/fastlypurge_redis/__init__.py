"""Redis state store for fastlypurge."""

from fastlypurge_redis.store import RedisStateStore

__all__ = ["RedisStateStore"]
