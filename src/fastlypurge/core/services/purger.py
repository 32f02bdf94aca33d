"""Fastly purger - batches and dispatches purge requests."""

import asyncio
import logging
from collections.abc import Iterable, Sequence

from fastlypurge.core.entities.api_result import ApiResult
from fastlypurge.core.entities.invalidation import (
    Invalidation,
    InvalidationState,
    InvalidationType,
)
from fastlypurge.core.entities.purge_config import PurgeConfig
from fastlypurge.core.interfaces.api_client import IFastlyApi
from fastlypurge.core.interfaces.notifier import INotifier
from fastlypurge.core.services.cache_tags_hash import CacheTagsHash
from fastlypurge.core.services.purge_state import PurgeState
from fastlypurge.utils.chunking import balanced_chunks
from fastlypurge.utils.urls import is_valid_purge_url

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid Fastly purge credentials."


class FastlyPurger:
    """Domain service that turns purge requests into Fastly API calls.

    All purges are gated on the cached credential state: when it says
    the credentials are invalid no request is sent. A purge rejected
    with 401/403 marks the credentials invalid until they are changed.

    Key purges are split into balanced batches of at most
    ``max_keys_per_request`` keys. Every batch is attempted even when an
    earlier one fails; the purge only succeeds if all batches do.
    """

    def __init__(
        self,
        api: IFastlyApi,
        cache_tags_hash: CacheTagsHash,
        state: PurgeState,
        config: PurgeConfig | None = None,
        notifier: INotifier | None = None,
    ) -> None:
        """Initialize the purger.

        Args:
            api: The Fastly API client.
            cache_tags_hash: Maps tags to keys and provides the site key.
            state: Cached credential validity.
            config: Batch size and concurrency. Uses defaults if not provided.
            notifier: Optional notifier for successful purges.
        """
        self._api = api
        self._cache_tags_hash = cache_tags_hash
        self._state = state
        self._config = config or PurgeConfig()
        self._notifier = notifier

    @property
    def config(self) -> PurgeConfig:
        return self._config

    async def credentials_valid(self) -> bool:
        """Check the purge credentials, using the cached state when set.

        Credentials that were never checked are validated once against
        the API and the outcome is cached.
        """
        cached = await self._state.get_purge_credentials_state()
        if cached is not None:
            return cached

        if not self._config.has_credentials:
            return False

        valid = await self._api.validate_purge_credentials()
        await self._state.set_purge_credentials_state(valid)
        return valid

    async def credentials_changed(self) -> None:
        """Forget the cached credential state after credentials are edited."""
        await self._state.clear_purge_credentials_state()

    async def purge_keys(self, keys: Sequence[str]) -> ApiResult:
        """Purge surrogate keys in balanced batches.

        Args:
            keys: The surrogate keys to purge.

        Returns:
            A successful result only if every batch succeeded.
        """
        keys = list(keys)
        if not keys:
            return ApiResult.failure("No keys to purge.")

        if not await self.credentials_valid():
            logger.warning("Unable to purge %d key(s) on Fastly, invalid credentials.", len(keys))
            return ApiResult.failure(INVALID_CREDENTIALS_MESSAGE)

        chunks = balanced_chunks(keys, self._config.max_keys_per_request)
        results = await self._purge_chunks(chunks)
        await self._check_auth(results)

        failed = sum(1 for result in results if not result)
        if failed:
            logger.error(
                "%d of %d Fastly purge request(s) failed for %d key(s).",
                failed,
                len(chunks),
                len(keys),
            )
            return ApiResult.failure(
                f"{failed} of {len(chunks)} purge request(s) failed.",
                data={"requests": len(chunks), "failed": failed},
            )

        await self._notify(
            f"Successfully purged {len(keys)} key(s) on service {self._config.service_id}.",
            "purge_keys",
        )
        return ApiResult.ok(
            f"Successfully purged {len(keys)} key(s) in {len(chunks)} request(s).",
            data={"requests": len(chunks), "failed": 0},
        )

    async def purge_all(self, site_only: bool = True) -> ApiResult:
        """Purge all content.

        Args:
            site_only: Purge only this site's content through the site
                key. If False, purge the whole service, including every
                other site sharing it.

        Returns:
            The purge result.
        """
        if not await self.credentials_valid():
            logger.warning("Unable to purge all on Fastly, invalid credentials.")
            return ApiResult.failure(INVALID_CREDENTIALS_MESSAGE)

        if site_only:
            return await self.purge_keys([await self._cache_tags_hash.site_key()])

        result = await self._api.purge_all_request()
        await self._check_auth([result])
        if result:
            await self._notify(
                f"Successfully purged all content on service {self._config.service_id}.",
                "purge_all",
            )
        return result

    async def purge_url(self, url: str) -> ApiResult:
        """Purge a single absolute URL.

        Malformed URLs are rejected before any request is sent.
        """
        if not is_valid_purge_url(url):
            return ApiResult.failure(f"Invalid URL: {url!r}")

        if not await self.credentials_valid():
            logger.warning("Unable to purge url %s on Fastly, invalid credentials.", url)
            return ApiResult.failure(INVALID_CREDENTIALS_MESSAGE)

        result = await self._api.purge_url_request(url)
        await self._check_auth([result])
        return result

    async def invalidate(self, invalidations: Iterable[Invalidation]) -> bool:
        """Process a batch of invalidations and update their states.

        Invalidations are grouped by type. All tags are purged together
        as hashed keys, URLs one request each, and EVERYTHING through
        the site key.

        Args:
            invalidations: The invalidations to process.

        Returns:
            True if every invalidation succeeded.
        """
        groups: dict[InvalidationType, list[Invalidation]] = {}
        for invalidation in invalidations:
            groups.setdefault(invalidation.type, []).append(invalidation)

        for invalidation_type, items in groups.items():
            _set_state(items, InvalidationState.PROCESSING)

            match invalidation_type:
                case InvalidationType.TAG:
                    tags = [item.expression for item in items if item.expression]
                    if not tags:
                        _set_state(items, InvalidationState.FAILED)
                        continue
                    keys = await self._cache_tags_hash.cache_tags_to_hashes(tags)
                    result = await self.purge_keys(keys)
                    _set_state(items, _state_for(result))

                case InvalidationType.URL:
                    for item in items:
                        result = await self.purge_url(item.expression or "")
                        item.state = _state_for(result)

                case InvalidationType.EVERYTHING:
                    result = await self.purge_all()
                    _set_state(items, _state_for(result))

        return all(
            item.state == InvalidationState.SUCCEEDED
            for items in groups.values()
            for item in items
        )

    async def _purge_chunks(self, chunks: list[list[str]]) -> list[ApiResult]:
        """Send one purge request per chunk, at most max_concurrency at once."""
        if self._config.max_concurrency == 1 or len(chunks) == 1:
            return [await self._purge_chunk(chunk) for chunk in chunks]

        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def bounded(chunk: list[str]) -> ApiResult:
            async with semaphore:
                return await self._purge_chunk(chunk)

        return list(await asyncio.gather(*(bounded(chunk) for chunk in chunks)))

    async def _purge_chunk(self, chunk: list[str]) -> ApiResult:
        try:
            result = await self._api.purge_keys_request(chunk)
        except Exception as e:
            logger.critical("Unable to purge following key(s): %s (%s)", " ".join(chunk), e)
            return ApiResult.failure(str(e))

        if not result:
            logger.error("Purge request failed for key(s): %s", " ".join(chunk))
        return result

    async def _check_auth(self, results: Iterable[ApiResult]) -> None:
        if any(result.is_auth_error for result in results):
            logger.warning("Fastly rejected the purge credentials, marking them invalid.")
            await self._state.set_purge_credentials_state(False)

    async def _notify(self, message: str, event: str) -> None:
        if self._notifier is not None:
            await self._notifier.send(message, event)


def _state_for(result: ApiResult) -> InvalidationState:
    return InvalidationState.SUCCEEDED if result else InvalidationState.FAILED


def _set_state(items: list[Invalidation], state: InvalidationState) -> None:
    for item in items:
        item.state = state
