"""Strawberry extension that tags responses with surrogate keys."""

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from strawberry.extensions import SchemaExtension

from fastlypurge.core.services.surrogate_keys import (
    SURROGATE_KEY_HEADER,
    SurrogateKeyGenerator,
)
from fastlypurge.hints import CacheTagCollector, inject_cache_tag_collector

if TYPE_CHECKING:
    from strawberry.types import ExecutionContext

SURROGATE_KEY_CONTEXT_KEY = "surrogate_key_header"


class SurrogateKeyExtension:
    """Strawberry extension factory collecting cache tags per request.

    Resolvers record tags with ``add_cache_tags(info, ...)``. After a
    successful operation the Surrogate-Key value is stored in the
    context under ``"surrogate_key_header"`` and, when the context
    carries a ``response`` (as Strawberry's ASGI integration does), set
    on its headers. The hook is async, so the schema must be executed
    asynchronously.

    Usage:
        from strawberry import Schema
        from fastlypurge.adapters.strawberry import SurrogateKeyExtension

        schema = Schema(
            query=Query,
            extensions=[SurrogateKeyExtension(generator)],
        )
    """

    def __init__(self, generator: SurrogateKeyGenerator) -> None:
        """Initialize the extension factory.

        Args:
            generator: Builds the header value from the collected tags.
        """
        self._generator = generator

    def __call__(
        self,
        *,
        execution_context: "ExecutionContext | None" = None,
    ) -> "SurrogateKeyExtensionInstance":
        """Create an extension instance for a request.

        Current Strawberry releases call the factory without arguments
        and assign ``execution_context`` on the instance themselves.
        """
        instance = SurrogateKeyExtensionInstance(generator=self._generator)
        if execution_context is not None:
            instance.execution_context = execution_context
        return instance


class SurrogateKeyExtensionInstance(SchemaExtension):
    """Instance of SurrogateKeyExtension for a single request."""

    def __init__(self, generator: SurrogateKeyGenerator) -> None:
        self._generator = generator
        self._collector: CacheTagCollector | None = None

    async def on_operation(self) -> AsyncIterator[None]:
        """Install the collector, then build the header after execution."""
        context = _context_dict(self.execution_context.context)
        if context is not None:
            self._collector = inject_cache_tag_collector(context)

        yield  # Execution happens here

        if context is None or self._collector is None:
            return

        result = self.execution_context.result
        if result is not None and getattr(result, "errors", None):
            return

        header = await self._generator.surrogate_key_header(self._collector.tags)
        context[SURROGATE_KEY_CONTEXT_KEY] = header

        response = context.get("response")
        if response is not None and hasattr(response, "headers"):
            response.headers[SURROGATE_KEY_HEADER] = header


def _context_dict(context: Any) -> dict[str, Any] | None:
    if isinstance(context, dict):
        return context
    if hasattr(context, "__dict__"):
        ctx_dict: dict[str, Any] = context.__dict__
        return ctx_dict
    return None
