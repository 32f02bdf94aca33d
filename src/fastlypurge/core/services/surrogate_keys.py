"""Response header generation for Fastly."""

from collections.abc import Iterable

from fastlypurge.core.entities.purge_config import PurgeConfig
from fastlypurge.core.services.cache_tags_hash import CacheTagsHash

SURROGATE_KEY_HEADER = "Surrogate-Key"
SURROGATE_CONTROL_HEADER = "Surrogate-Control"


class SurrogateKeyGenerator:
    """Builds the Surrogate-Key and Surrogate-Control headers of a response.

    Keys come from the same mapper the invalidator uses, so a purge of a
    tag always hits the responses that were tagged with it.
    """

    def __init__(self, cache_tags_hash: CacheTagsHash, config: PurgeConfig) -> None:
        self._cache_tags_hash = cache_tags_hash
        self._config = config

    async def surrogate_key_header(self, tags: Iterable[str]) -> str:
        """Build the Surrogate-Key value for a response.

        Args:
            tags: The cache tags of the response.

        Returns:
            The space-joined keys, ending with the site key.
        """
        keys = await self._cache_tags_hash.tags_to_keys(tag for tag in tags if tag)
        return " ".join(keys)

    def surrogate_control_header(self, cache_control: str | None) -> str:
        """Build the Surrogate-Control value from a Cache-Control value.

        Stale directives are appended when enabled in the configuration.

        Args:
            cache_control: The response's Cache-Control value, if any.

        Returns:
            The Surrogate-Control value. May be empty.
        """
        directives = [cache_control.strip()] if cache_control and cache_control.strip() else []
        if self._config.stale_while_revalidate:
            directives.append(
                f"stale-while-revalidate={self._config.stale_while_revalidate_value}"
            )
        if self._config.stale_if_error:
            directives.append(f"stale-if-error={self._config.stale_if_error_value}")
        return ", ".join(directives)

    async def headers(
        self,
        tags: Iterable[str],
        cache_control: str | None = None,
    ) -> dict[str, str]:
        """Build both Fastly headers for a response.

        Surrogate-Control is omitted when it would be empty.
        """
        result = {SURROGATE_KEY_HEADER: await self.surrogate_key_header(tags)}
        surrogate_control = self.surrogate_control_header(cache_control)
        if surrogate_control:
            result[SURROGATE_CONTROL_HEADER] = surrogate_control
        return result
