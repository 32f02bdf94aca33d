"""Surrogate-key HTTP handler for Ariadne GraphQL."""

import logging
from typing import Any

from ariadne.asgi.handlers import GraphQLHTTPHandler

from fastlypurge.core.services.surrogate_keys import SurrogateKeyGenerator
from fastlypurge.hints import inject_cache_tag_collector

logger = logging.getLogger(__name__)


class SurrogateKeyGraphQLHTTPHandler(GraphQLHTTPHandler):
    """HTTP handler that collects cache tags while a query executes.

    Installs a tag collector into the context before execution. After a
    successful query the Surrogate-Key value for the collected tags is
    stored on ``request.state.surrogate_key_header`` and the raw tags on
    ``request.state.cache_tags``, where SurrogateHeadersMiddleware
    writes them onto the response.
    """

    def __init__(self, generator: SurrogateKeyGenerator, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._generator = generator

    async def execute_graphql_query(
        self,
        request: Any,
        data: Any,
        *,
        context_value: Any = None,
        query_document: Any = None,
    ) -> tuple[bool, dict[str, Any]]:
        if context_value is None:
            context_value = await self.get_context_for_request(request, data)

        collector = None
        if isinstance(context_value, dict):
            collector = inject_cache_tag_collector(context_value)

        success, response = await super().execute_graphql_query(
            request, data, context_value=context_value, query_document=query_document
        )

        if success and collector is not None and hasattr(request, "state"):
            request.state.cache_tags = collector.tags
            request.state.surrogate_key_header = (
                await self._generator.surrogate_key_header(collector.tags)
            )
            logger.debug("Surrogate-Key: %s", request.state.surrogate_key_header)

        return success, response
