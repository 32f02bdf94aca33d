"""Tests for SurrogateKeyGenerator."""

import pytest

from fastlypurge import InMemoryStateStore, PurgeConfig, SurrogateKeyGenerator
from fastlypurge.core.services.cache_tags_hash import CacheTagsHash


def _generator(**options: object) -> tuple[SurrogateKeyGenerator, CacheTagsHash]:
    config = PurgeConfig(site_id="site1", **options)  # type: ignore[arg-type]
    cache_tags_hash = CacheTagsHash(config, InMemoryStateStore())
    return SurrogateKeyGenerator(cache_tags_hash, config), cache_tags_hash


class TestSurrogateKeyHeader:
    """Tests for the Surrogate-Key value."""

    @pytest.mark.asyncio
    async def test_header_ends_with_site_key(self) -> None:
        generator, cache_tags_hash = _generator()

        header = await generator.surrogate_key_header(["node:1", "node_list"])

        keys = header.split(" ")
        assert keys == await cache_tags_hash.tags_to_keys(["node:1", "node_list"])
        assert keys[-1] == await cache_tags_hash.site_key()

    @pytest.mark.asyncio
    async def test_empty_tags_are_skipped(self) -> None:
        generator, cache_tags_hash = _generator()

        assert await generator.surrogate_key_header(["", "node:1"]) == (
            await generator.surrogate_key_header(["node:1"])
        )
        assert await generator.surrogate_key_header([]) == await cache_tags_hash.site_key()

    @pytest.mark.asyncio
    async def test_matches_invalidated_keys(self) -> None:
        generator, cache_tags_hash = _generator()

        header = await generator.surrogate_key_header(["node:42"])
        purged = await cache_tags_hash.cache_tags_to_hashes(["node:42"])

        assert purged[0] in header.split(" ")


class TestSurrogateControlHeader:
    """Tests for the Surrogate-Control value."""

    def test_disabled_stale_directives(self) -> None:
        generator, _ = _generator()

        assert generator.surrogate_control_header("max-age=60") == "max-age=60"
        assert generator.surrogate_control_header(None) == ""

    def test_stale_directives(self) -> None:
        generator, _ = _generator(
            stale_while_revalidate=True,
            stale_while_revalidate_value=30,
            stale_if_error=True,
            stale_if_error_value=600,
        )

        assert generator.surrogate_control_header("max-age=60") == (
            "max-age=60, stale-while-revalidate=30, stale-if-error=600"
        )

    def test_no_leading_separator(self) -> None:
        generator, _ = _generator(stale_if_error=True, stale_if_error_value=10)

        assert generator.surrogate_control_header("  ") == "stale-if-error=10"


class TestHeaders:
    """Tests for the combined header mapping."""

    @pytest.mark.asyncio
    async def test_omits_empty_surrogate_control(self) -> None:
        generator, _ = _generator()

        headers = await generator.headers(["node:1"])

        assert set(headers) == {"Surrogate-Key"}

    @pytest.mark.asyncio
    async def test_both_headers(self) -> None:
        generator, _ = _generator()

        headers = await generator.headers(["node:1"], cache_control="max-age=300")

        assert headers["Surrogate-Control"] == "max-age=300"
        assert headers["Surrogate-Key"]
