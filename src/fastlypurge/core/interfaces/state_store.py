"""State store interface."""

from datetime import timedelta
from typing import Any, Protocol


class IStateStore(Protocol):
    """Contract for persisting small pieces of runtime state.

    Holds values such as the cached credential validity and the
    generated site id. Values must be JSON-compatible. Writes are
    last-writer-wins; implementations are not expected to lock.
    """

    async def get(self, key: str) -> Any | None:
        """Retrieve a stored value.

        Args:
            key: The state key.

        Returns:
            The stored value, or None if not set or expired.
        """
        ...

    async def set(
        self,
        key: str,
        value: Any,
        ttl: timedelta | None = None,
    ) -> None:
        """Store a value.

        Args:
            key: The state key.
            value: A JSON-compatible value.
            ttl: Optional time-to-live. If None, the value never expires.
        """
        ...

    async def delete(self, key: str) -> bool:
        """Delete a stored value.

        Args:
            key: The state key.

        Returns:
            True if the key existed and was deleted, False otherwise.
        """
        ...
