"""In-memory state store implementation."""

import copy
from datetime import timedelta
from typing import Any

from cachetools import TTLCache  # type: ignore[import-untyped]


class InMemoryStateStore:
    """In-memory state store with optional per-entry expiry.

    Suitable for single-process deployments and tests. Entries stored
    without a TTL live in a plain dict; entries with a TTL are kept in
    a cachetools TTLCache, which applies a single TTL to all of them.
    """

    def __init__(
        self,
        maxsize: int = 1000,
        default_ttl: float = 300.0,
    ) -> None:
        """Initialize the in-memory state store.

        Args:
            maxsize: Maximum number of expiring entries.
            default_ttl: TTL in seconds applied to expiring entries.
        """
        self._maxsize = maxsize
        self._default_ttl = default_ttl
        self._values: dict[str, Any] = {}
        self._expiring: TTLCache[str, Any] = TTLCache(
            maxsize=maxsize,
            ttl=default_ttl,
        )

    async def get(self, key: str) -> Any | None:
        """Retrieve a stored value.

        Args:
            key: The state key.

        Returns:
            A copy of the stored value, or None if not set or expired.
        """
        if key in self._values:
            return copy.deepcopy(self._values[key])
        return copy.deepcopy(self._expiring.get(key))

    async def set(
        self,
        key: str,
        value: Any,
        ttl: timedelta | None = None,
    ) -> None:
        """Store a value.

        Note: TTLCache uses a global TTL, so a per-entry TTL only selects
        the expiring store; the store-wide ``default_ttl`` applies.

        Args:
            key: The state key.
            value: A JSON-compatible value.
            ttl: Optional time-to-live.
        """
        self._values.pop(key, None)
        self._expiring.pop(key, None)
        if ttl is None:
            self._values[key] = copy.deepcopy(value)
        else:
            self._expiring[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> bool:
        """Delete a stored value.

        Args:
            key: The state key.

        Returns:
            True if the key existed and was deleted, False otherwise.
        """
        existed = key in self._values or key in self._expiring
        self._values.pop(key, None)
        self._expiring.pop(key, None)
        return existed

    def __len__(self) -> int:
        """Return the number of stored entries."""
        return len(self._values) + len(self._expiring)
