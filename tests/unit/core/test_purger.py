"""Tests for FastlyPurger."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from fastlypurge import (
    ApiResult,
    FastlyPurger,
    Invalidation,
    InvalidationState,
    PurgeConfig,
    PurgeState,
)
from fastlypurge.core.services.cache_tags_hash import CacheTagsHash
from fastlypurge.core.services.purger import INVALID_CREDENTIALS_MESSAGE


@pytest.fixture
def purger(
    api: AsyncMock,
    cache_tags_hash: CacheTagsHash,
    purge_state: PurgeState,
    config: PurgeConfig,
) -> FastlyPurger:
    return FastlyPurger(api, cache_tags_hash, purge_state, config)


def _sent_chunks(api: AsyncMock) -> list[list[str]]:
    return [call.args[0] for call in api.purge_keys_request.await_args_list]


class TestCredentialGate:
    """Tests for the cached credential state."""

    @pytest.mark.asyncio
    async def test_unchecked_credentials_validated_once(
        self, purger: FastlyPurger, api: AsyncMock, purge_state: PurgeState
    ) -> None:
        await purger.purge_keys(["a"])
        await purger.purge_keys(["b"])

        api.validate_purge_credentials.assert_awaited_once()
        assert await purge_state.get_purge_credentials_state() is True

    @pytest.mark.asyncio
    async def test_invalid_state_short_circuits_everything(
        self, purger: FastlyPurger, api: AsyncMock, purge_state: PurgeState
    ) -> None:
        await purge_state.set_purge_credentials_state(False)

        results = [
            await purger.purge_keys(["a", "b"]),
            await purger.purge_all(),
            await purger.purge_all(site_only=False),
            await purger.purge_url("https://example.com/a"),
        ]

        assert all(not result for result in results)
        assert all(result.message == INVALID_CREDENTIALS_MESSAGE for result in results)
        api.validate_purge_credentials.assert_not_awaited()
        api.purge_keys_request.assert_not_awaited()
        api.purge_all_request.assert_not_awaited()
        api.purge_url_request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_validation_is_cached(
        self, purger: FastlyPurger, api: AsyncMock, purge_state: PurgeState
    ) -> None:
        api.validate_purge_credentials.return_value = False

        assert not await purger.purge_keys(["a"])
        assert not await purger.purge_keys(["a"])

        api.validate_purge_credentials.assert_awaited_once()
        api.purge_keys_request.assert_not_awaited()
        assert await purge_state.get_purge_credentials_state() is False

    @pytest.mark.asyncio
    async def test_missing_credentials_skip_validation(
        self, api: AsyncMock, cache_tags_hash: CacheTagsHash, purge_state: PurgeState
    ) -> None:
        purger = FastlyPurger(api, cache_tags_hash, purge_state, PurgeConfig(site_id="site1"))

        assert await purger.credentials_valid() is False
        api.validate_purge_credentials.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auth_error_marks_credentials_invalid(
        self, purger: FastlyPurger, api: AsyncMock, purge_state: PurgeState
    ) -> None:
        api.purge_keys_request.return_value = ApiResult.failure("Forbidden", status_code=403)

        assert not await purger.purge_keys(["a"])
        assert await purge_state.get_purge_credentials_state() is False

        assert not await purger.purge_keys(["b"])
        assert api.purge_keys_request.await_count == 1

    @pytest.mark.asyncio
    async def test_credentials_changed_clears_state(
        self, purger: FastlyPurger, api: AsyncMock, purge_state: PurgeState
    ) -> None:
        await purge_state.set_purge_credentials_state(False)

        await purger.credentials_changed()

        assert await purge_state.get_purge_credentials_state() is None
        assert await purger.purge_keys(["a"])
        api.validate_purge_credentials.assert_awaited_once()


class TestPurgeKeys:
    """Tests for batched key purging."""

    @pytest.mark.asyncio
    async def test_empty_keys_rejected_without_io(
        self, purger: FastlyPurger, api: AsyncMock
    ) -> None:
        result = await purger.purge_keys([])

        assert not result
        api.validate_purge_credentials.assert_not_awaited()
        api.purge_keys_request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_request(self, purger: FastlyPurger, api: AsyncMock) -> None:
        result = await purger.purge_keys(["a", "b"])

        assert result
        assert result.data == {"requests": 1, "failed": 0}
        api.purge_keys_request.assert_awaited_once_with(["a", "b"])

    @pytest.mark.asyncio
    async def test_300_keys_become_two_requests_of_150(
        self, purger: FastlyPurger, api: AsyncMock
    ) -> None:
        keys = [f"k{i}" for i in range(300)]

        result = await purger.purge_keys(keys)

        assert result
        chunks = _sent_chunks(api)
        assert [len(chunk) for chunk in chunks] == [150, 150]
        assert [key for chunk in chunks for key in chunk] == keys

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "count,max_keys", [(1, 256), (256, 256), (257, 256), (1000, 256), (23, 5)]
    )
    async def test_batching(
        self,
        api: AsyncMock,
        cache_tags_hash: CacheTagsHash,
        purge_state: PurgeState,
        count: int,
        max_keys: int,
    ) -> None:
        config = PurgeConfig(
            api_key="token", service_id="svc", site_id="site1", max_keys_per_request=max_keys
        )
        purger = FastlyPurger(api, cache_tags_hash, purge_state, config)
        keys = [f"k{i}" for i in range(count)]

        await purger.purge_keys(keys)

        chunks = _sent_chunks(api)
        sizes = [len(chunk) for chunk in chunks]
        assert len(chunks) == -(-count // max_keys)
        assert max(sizes) <= max_keys
        assert max(sizes) - min(sizes) <= 1
        assert sorted(key for chunk in chunks for key in chunk) == sorted(keys)

    @pytest.mark.asyncio
    async def test_partial_failure_attempts_every_chunk(
        self, purger: FastlyPurger, api: AsyncMock
    ) -> None:
        api.purge_keys_request.side_effect = [
            ApiResult.failure("Internal Server Error", status_code=500),
            ApiResult.ok(data={"k": "id"}),
        ]

        result = await purger.purge_keys([f"k{i}" for i in range(300)])

        assert not result
        assert api.purge_keys_request.await_count == 2
        assert result.data == {"requests": 2, "failed": 1}
        assert result.message == "1 of 2 purge request(s) failed."

    @pytest.mark.asyncio
    async def test_exception_in_chunk_becomes_failure(
        self, purger: FastlyPurger, api: AsyncMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        api.purge_keys_request.side_effect = RuntimeError("connection reset")

        result = await purger.purge_keys(["a"])

        assert not result
        assert any(record.levelname == "CRITICAL" for record in caplog.records)

    @pytest.mark.asyncio
    async def test_concurrent_chunks_respect_limit(
        self, api: AsyncMock, cache_tags_hash: CacheTagsHash, purge_state: PurgeState
    ) -> None:
        config = PurgeConfig(
            api_key="token",
            service_id="svc",
            site_id="site1",
            max_keys_per_request=2,
            max_concurrency=2,
        )
        purger = FastlyPurger(api, cache_tags_hash, purge_state, config)
        in_flight = 0
        peak = 0

        async def slow_purge(chunk: list[str]) -> ApiResult:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return ApiResult.ok(data={"k": "id"})

        api.purge_keys_request.side_effect = slow_purge

        result = await purger.purge_keys([f"k{i}" for i in range(10)])

        assert result
        assert api.purge_keys_request.await_count == 5
        assert peak == 2

    @pytest.mark.asyncio
    async def test_notifies_on_success(
        self,
        api: AsyncMock,
        cache_tags_hash: CacheTagsHash,
        purge_state: PurgeState,
        config: PurgeConfig,
    ) -> None:
        notifier = MagicMock()
        notifier.send = AsyncMock()
        purger = FastlyPurger(api, cache_tags_hash, purge_state, config, notifier)

        await purger.purge_keys(["a"])

        notifier.send.assert_awaited_once()
        assert notifier.send.await_args.args[1] == "purge_keys"


class TestPurgeAllAndUrl:
    """Tests for purge_all and purge_url."""

    @pytest.mark.asyncio
    async def test_purge_all_site_purges_site_key(
        self, purger: FastlyPurger, api: AsyncMock, cache_tags_hash: CacheTagsHash
    ) -> None:
        result = await purger.purge_all()

        assert result
        api.purge_keys_request.assert_awaited_once_with([await cache_tags_hash.site_key()])
        api.purge_all_request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_purge_all_service(self, purger: FastlyPurger, api: AsyncMock) -> None:
        result = await purger.purge_all(site_only=False)

        assert result
        api.purge_all_request.assert_awaited_once()
        api.purge_keys_request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_purge_url(self, purger: FastlyPurger, api: AsyncMock) -> None:
        assert await purger.purge_url("https://example.com/node/1")
        api.purge_url_request.assert_awaited_once_with("https://example.com/node/1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["not-a-url", "http://example.com/a b", "", "ftp://example.com/"])
    async def test_invalid_url_rejected_without_io(
        self, purger: FastlyPurger, api: AsyncMock, url: str
    ) -> None:
        result = await purger.purge_url(url)

        assert not result
        api.validate_purge_credentials.assert_not_awaited()
        api.purge_url_request.assert_not_awaited()


class TestInvalidate:
    """Tests for batch invalidation."""

    @pytest.mark.asyncio
    async def test_dispatches_by_type(
        self, purger: FastlyPurger, api: AsyncMock, cache_tags_hash: CacheTagsHash
    ) -> None:
        invalidations = [
            Invalidation.tag("node:1"),
            Invalidation.tag("node:2"),
            Invalidation.url("https://example.com/a"),
            Invalidation.everything(),
        ]

        assert await purger.invalidate(invalidations) is True

        assert all(item.state == InvalidationState.SUCCEEDED for item in invalidations)
        sent = _sent_chunks(api)
        assert sent[0] == await cache_tags_hash.cache_tags_to_hashes(["node:1", "node:2"])
        assert sent[1] == [await cache_tags_hash.site_key()]
        api.purge_url_request.assert_awaited_once_with("https://example.com/a")

    @pytest.mark.asyncio
    async def test_failed_items_marked(self, purger: FastlyPurger, api: AsyncMock) -> None:
        good = Invalidation.tag("node:1")
        bad = Invalidation.url("not-a-url")

        assert await purger.invalidate([good, bad]) is False

        assert good.state == InvalidationState.SUCCEEDED
        assert bad.state == InvalidationState.FAILED

    @pytest.mark.asyncio
    async def test_empty_batch(self, purger: FastlyPurger, api: AsyncMock) -> None:
        assert await purger.invalidate([]) is True
        api.purge_keys_request.assert_not_awaited()
