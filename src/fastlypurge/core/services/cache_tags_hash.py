"""Cache tag to surrogate key mapping."""

import logging
from collections.abc import Iterable

from fastlypurge.core.entities.purge_config import PurgeConfig
from fastlypurge.core.interfaces.state_store import IStateStore
from fastlypurge.utils.hashing import generate_site_id, hash_input

logger = logging.getLogger(__name__)

SITE_ID_STATE_KEY = "fastly.site_id"


class CacheTagsHash:
    """Maps cache tags to short, site-scoped surrogate keys.

    Each tag is prefixed with the site id and hashed, so several sites
    can share one Fastly service without purging each other's content,
    and long tag lists still fit in the Surrogate-Key header.

    A key is a pure function of (site id, tag, key length), which lets
    the response header generator and the invalidator agree on keys
    without talking to each other.
    """

    def __init__(self, config: PurgeConfig, store: IStateStore) -> None:
        """Initialize the mapper.

        Args:
            config: Supplies the key length and an optional fixed site id.
            store: Persists a generated site id when none is configured.
        """
        self._config = config
        self._store = store
        self._site_id: str | None = None

    @property
    def hash_length(self) -> int:
        return self._config.cache_tag_hash_length

    def hash_input(self, value: str) -> str:
        """Hash a string into a surrogate key of the configured length."""
        return hash_input(value, self._config.cache_tag_hash_length)

    async def get_site_id(self) -> str:
        """Get the site identifier.

        Returns the configured site id if there is one, then a previously
        persisted one. Otherwise a random id is generated and persisted
        once. Two processes racing on first use may both generate an id;
        the last write wins, and keys issued under the other id stop
        matching.

        Returns:
            The site identifier.
        """
        if self._site_id:
            return self._site_id

        site_id = self._config.site_id or await self._store.get(SITE_ID_STATE_KEY)
        if not site_id:
            site_id = generate_site_id()
            await self._store.set(SITE_ID_STATE_KEY, site_id)
            logger.info("Generated new Fastly site id %s", site_id)

        self._site_id = str(site_id)
        return self._site_id

    async def site_key(self) -> str:
        """Get the key shared by every response of this site."""
        return self.hash_input(await self.get_site_id())

    async def cache_tags_to_hashes(self, tags: Iterable[str]) -> list[str]:
        """Map cache tags to surrogate keys.

        Keys keep the order of their first tag; tags that hash to an
        already emitted key are folded into it.

        Args:
            tags: The cache tags.

        Returns:
            The surrogate keys, without the site key.
        """
        site_id = await self.get_site_id()
        hashes = (self.hash_input(f"{site_id}:{tag}") for tag in tags)
        return list(dict.fromkeys(hashes))

    async def tags_to_keys(self, tags: Iterable[str]) -> list[str]:
        """Map cache tags to the full key set of a response.

        The site key is appended last, also for an empty tag list, so
        purging it drops every response of the site. It is not repeated
        if a tag already hashed to the same key.

        Args:
            tags: The cache tags of the response.

        Returns:
            The per-tag keys followed by the site key.
        """
        keys = await self.cache_tags_to_hashes(tags)
        site_key = await self.site_key()
        if site_key not in keys:
            keys.append(site_key)
        return keys
