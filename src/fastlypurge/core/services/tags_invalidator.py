"""Cache tag invalidation entry point."""

import logging
from collections.abc import Iterable

from fastlypurge.core.entities.api_result import ApiResult
from fastlypurge.core.services.cache_tags_hash import CacheTagsHash
from fastlypurge.core.services.purger import FastlyPurger

logger = logging.getLogger(__name__)

EXTENSION_CHANGED_TAG = "config:core.extension"
OWN_CONFIG_TAG = "config:fastly.settings"


class CacheTagsInvalidator:
    """Turns changed cache tags into Fastly purges.

    Installing or removing an extension can change any rendered output,
    so a tag set containing ``extension_tag`` purges the whole service
    and nothing else. Changes to the purge configuration itself
    (``config_tag``) are never purged.

    Example:
        invalidator = CacheTagsInvalidator(purger, cache_tags_hash)
        await invalidator.invalidate_tags(["node:42", "node_list"])
    """

    def __init__(
        self,
        purger: FastlyPurger,
        cache_tags_hash: CacheTagsHash,
        extension_tag: str = EXTENSION_CHANGED_TAG,
        config_tag: str = OWN_CONFIG_TAG,
    ) -> None:
        """Initialize the invalidator.

        Args:
            purger: Sends the purge requests.
            cache_tags_hash: Maps tags to surrogate keys.
            extension_tag: Tag that triggers a service-wide purge.
            config_tag: Tag that is ignored.
        """
        self._purger = purger
        self._cache_tags_hash = cache_tags_hash
        self._extension_tag = extension_tag
        self._config_tag = config_tag

    async def invalidate_tags(self, tags: Iterable[str]) -> ApiResult:
        """Purge the surrogate keys of changed cache tags.

        Args:
            tags: The changed cache tags.

        Returns:
            The purge result. Succeeds without any request when no tag
            is left to purge.
        """
        tags = list(tags)

        if self._extension_tag in tags:
            logger.info("Extension change detected, purging the whole Fastly service.")
            return await self._purger.purge_all(site_only=False)

        purgeable = [tag for tag in tags if tag and tag != self._config_tag]
        if not purgeable:
            return ApiResult.ok("Nothing to purge.")

        keys = await self._cache_tags_hash.cache_tags_to_hashes(purgeable)
        logger.debug("Invalidating %d tag(s) as %d key(s)", len(purgeable), len(keys))
        return await self._purger.purge_keys(keys)
