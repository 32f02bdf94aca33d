"""Pytest configuration for fastlypurge tests."""

from unittest.mock import AsyncMock

import pytest

from fastlypurge import (
    ApiResult,
    InMemoryStateStore,
    PurgeConfig,
    PurgeState,
    SurrogateKeyGenerator,
)
from fastlypurge.core.services.cache_tags_hash import CacheTagsHash


@pytest.fixture(autouse=True)
def reset_decorator_config():
    """Reset decorator configuration before each test."""
    import fastlypurge.decorators

    # Store original value
    original_invalidator = fastlypurge.decorators._invalidator

    yield

    # Restore original value after test
    fastlypurge.decorators._invalidator = original_invalidator


@pytest.fixture
def config() -> PurgeConfig:
    """Config with credentials and a fixed site id."""
    return PurgeConfig(api_key="token", service_id="svc123", site_id="site1")


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def cache_tags_hash(config: PurgeConfig, store: InMemoryStateStore) -> CacheTagsHash:
    return CacheTagsHash(config, store)


@pytest.fixture
def purge_state(store: InMemoryStateStore) -> PurgeState:
    return PurgeState(store)


@pytest.fixture
def api() -> AsyncMock:
    """Fastly API double whose calls all succeed."""
    api = AsyncMock()
    api.validate_purge_credentials.return_value = True
    api.purge_keys_request.return_value = ApiResult.ok(data={"key": "id"})
    api.purge_url_request.return_value = ApiResult.ok(data={"status": "ok"})
    api.purge_all_request.return_value = ApiResult.ok(data={"status": "ok"})
    api.test_connection.return_value = ApiResult.ok("Connection to the Fastly API is working.")
    return api


@pytest.fixture
def generator(cache_tags_hash: CacheTagsHash, config: PurgeConfig) -> SurrogateKeyGenerator:
    return SurrogateKeyGenerator(cache_tags_hash, config)
