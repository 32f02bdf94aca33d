"""Credential validity state."""

from datetime import timedelta

from fastlypurge.core.interfaces.state_store import IStateStore

VALID_PURGE_CREDENTIALS = "fastly.state.valid_purge_credentials"


class PurgeState:
    """Tracks whether the configured credentials can purge.

    The value is cached in a state store so purges do not have to
    introspect the token on every invalidation. ``None`` means the
    credentials have not been checked yet.
    """

    def __init__(self, store: IStateStore, ttl: timedelta | None = None) -> None:
        """Initialize the state wrapper.

        Args:
            store: Where the validity flag is persisted.
            ttl: Optional lifetime of a cached result. Never expires if None.
        """
        self._store = store
        self._ttl = ttl

    async def get_purge_credentials_state(self) -> bool | None:
        """Get the cached validity, or None if never checked."""
        value = await self._store.get(VALID_PURGE_CREDENTIALS)
        return None if value is None else bool(value)

    async def set_purge_credentials_state(self, valid: bool) -> None:
        await self._store.set(VALID_PURGE_CREDENTIALS, bool(valid), self._ttl)

    async def clear_purge_credentials_state(self) -> None:
        """Forget the cached validity so the next purge re-checks it."""
        await self._store.delete(VALID_PURGE_CREDENTIALS)
