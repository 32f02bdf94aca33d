"""Unit tests for SurrogateKeyGraphQLHTTPHandler."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

ariadne = pytest.importorskip("ariadne")

from ariadne.asgi.handlers import GraphQLHTTPHandler  # noqa: E402

from fastlypurge import SurrogateKeyGenerator  # noqa: E402
from fastlypurge.adapters.ariadne import (  # noqa: E402
    SurrogateKeyGraphQL,
    SurrogateKeyGraphQLHTTPHandler,
)
from fastlypurge.hints import CACHE_TAGS_CONTEXT_KEY  # noqa: E402


def _request() -> SimpleNamespace:
    return SimpleNamespace(state=SimpleNamespace())


def _executing(*tags: str, success: bool = True):
    """Stand-in for Ariadne's execution that tags the response."""

    async def execute(self, request, data, *, context_value=None, query_document=None):
        context_value[CACHE_TAGS_CONTEXT_KEY].add(*tags)
        return success, {"data": {"article": {"id": "1"}}}

    return execute


class TestExecuteGraphqlQuery:
    """Tests for execute_graphql_query."""

    @pytest.mark.asyncio
    async def test_stores_header_on_request_state(self, generator: SurrogateKeyGenerator) -> None:
        handler = SurrogateKeyGraphQLHTTPHandler(generator=generator)
        request = _request()

        with patch.object(
            GraphQLHTTPHandler, "execute_graphql_query", _executing("node:1", "node_list")
        ):
            success, result = await handler.execute_graphql_query(
                request, {"query": "{ article { id } }"}, context_value={}
            )

        assert success is True
        assert result == {"data": {"article": {"id": "1"}}}
        assert request.state.cache_tags == ["node:1", "node_list"]
        assert request.state.surrogate_key_header == (
            await generator.surrogate_key_header(["node:1", "node_list"])
        )

    @pytest.mark.asyncio
    async def test_failed_query_not_tagged(self, generator: SurrogateKeyGenerator) -> None:
        handler = SurrogateKeyGraphQLHTTPHandler(generator=generator)
        request = _request()

        with patch.object(
            GraphQLHTTPHandler, "execute_graphql_query", _executing("node:1", success=False)
        ):
            success, _ = await handler.execute_graphql_query(request, {}, context_value={})

        assert success is False
        assert not hasattr(request.state, "surrogate_key_header")

    @pytest.mark.asyncio
    async def test_untagged_response_gets_site_key(
        self, generator: SurrogateKeyGenerator
    ) -> None:
        handler = SurrogateKeyGraphQLHTTPHandler(generator=generator)
        request = _request()

        with patch.object(GraphQLHTTPHandler, "execute_graphql_query", _executing()):
            await handler.execute_graphql_query(request, {}, context_value={})

        assert request.state.surrogate_key_header == await generator.surrogate_key_header([])


class TestSurrogateKeyGraphQL:
    """Tests for the ASGI app wrapper."""

    def test_uses_surrogate_key_handler(self, generator: SurrogateKeyGenerator) -> None:
        schema = ariadne.make_executable_schema("type Query { hello: String }")

        app = SurrogateKeyGraphQL(schema, generator=generator)

        assert isinstance(app.http_handler, SurrogateKeyGraphQLHTTPHandler)
        assert app.generator is generator
