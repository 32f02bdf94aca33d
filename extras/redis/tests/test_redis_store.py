"""Tests for RedisStateStore."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from fastlypurge_redis import RedisStateStore


@pytest.fixture
def client() -> AsyncMock:
    client = AsyncMock()
    client.get.return_value = None
    client.delete.return_value = 0
    return client


@pytest.fixture
def store(client: AsyncMock) -> RedisStateStore:
    return RedisStateStore(client=client)


class TestRedisStateStore:
    """Tests for the Redis state store."""

    @pytest.mark.asyncio
    async def test_get_missing(self, store: RedisStateStore, client: AsyncMock) -> None:
        assert await store.get("fastly.site_id") is None
        client.get.assert_awaited_once_with("fastlypurge:fastly.site_id")

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, store: RedisStateStore, client: AsyncMock) -> None:
        client.get.return_value = b"false"

        assert await store.get("fastly.state.valid_purge_credentials") is False

    @pytest.mark.asyncio
    async def test_set_without_ttl(self, store: RedisStateStore, client: AsyncMock) -> None:
        await store.set("fastly.site_id", "abc")

        client.set.assert_awaited_once_with("fastlypurge:fastly.site_id", b'"abc"')
        client.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_set_with_ttl(self, store: RedisStateStore, client: AsyncMock) -> None:
        await store.set("k", True, ttl=timedelta(minutes=5))

        client.setex.assert_awaited_once_with("fastlypurge:k", 300, b"true")

    @pytest.mark.asyncio
    async def test_sub_second_ttl_rounds_up(
        self, store: RedisStateStore, client: AsyncMock
    ) -> None:
        await store.set("k", 1, ttl=timedelta(milliseconds=10))

        assert client.setex.await_args.args[1] == 1

    @pytest.mark.asyncio
    async def test_delete(self, store: RedisStateStore, client: AsyncMock) -> None:
        client.delete.return_value = 1

        assert await store.delete("k") is True
        client.delete.assert_awaited_once_with("fastlypurge:k")

    @pytest.mark.asyncio
    async def test_custom_prefix(self, client: AsyncMock) -> None:
        store = RedisStateStore(client=client, key_prefix="site-a")

        await store.get("k")

        client.get.assert_awaited_once_with("site-a:k")

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, client: AsyncMock) -> None:
        async with RedisStateStore(client=client):
            pass

        client.aclose.assert_awaited_once()
