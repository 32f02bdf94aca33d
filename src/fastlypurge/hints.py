"""Cache tag hints for GraphQL resolvers.

Resolvers declare which content a response depends on; the framework
adapters turn the collected tags into the response's Surrogate-Key
header.

Usage with Ariadne:
    from fastlypurge.hints import add_cache_tags

    @query.field("article")
    async def resolve_article(_, info, id: str):
        add_cache_tags(info, f"node:{id}")
        return await get_article(id)

Usage with Strawberry:
    from fastlypurge.hints import add_cache_tags

    @strawberry.field
    async def articles(self, info: Info) -> list[Article]:
        add_cache_tags(info, "node_list")
        return await list_articles()
"""

from typing import Any

# Context key for the tag collector
CACHE_TAGS_CONTEXT_KEY = "_fastlypurge_cache_tags"


class CacheTagCollector:
    """Collects the cache tags of one request, keeping first-seen order."""

    def __init__(self) -> None:
        self._tags: dict[str, None] = {}

    def add(self, *tags: str) -> None:
        for tag in tags:
            if tag:
                self._tags[tag] = None

    @property
    def tags(self) -> list[str]:
        return list(self._tags)

    def __len__(self) -> int:
        return len(self._tags)


def get_cache_tag_collector(info: Any) -> CacheTagCollector | None:
    """Get the tag collector from GraphQL info.

    Args:
        info: The GraphQL resolver info object.

    Returns:
        The CacheTagCollector, or None if not available.
    """
    context = _get_context_dict(info)
    if context is None:
        return None
    return context.get(CACHE_TAGS_CONTEXT_KEY)


def add_cache_tags(info: Any, *tags: str) -> bool:
    """Tag the current response with cache tags.

    Args:
        info: The GraphQL resolver info object.
        *tags: Cache tags, e.g. ``"node:42"``.

    Returns:
        True if the tags were recorded, False if no collector is installed.

    Example:
        @query.field("user")
        async def resolve_user(_, info, id: str):
            add_cache_tags(info, "user_list", f"user:{id}")
            return await get_user(id)
    """
    collector = get_cache_tag_collector(info)
    if collector is None:
        return False

    collector.add(*tags)
    return True


def get_cache_tags(info: Any) -> list[str]:
    """Get the tags recorded so far for the current request."""
    collector = get_cache_tag_collector(info)
    return collector.tags if collector is not None else []


def _get_context_dict(info: Any) -> dict[str, Any] | None:
    """Extract the context dictionary from resolver info.

    Handles different GraphQL framework info structures.

    Args:
        info: The GraphQL resolver info object.

    Returns:
        The context dictionary, or None if not found.
    """
    # Ariadne/graphql-core style
    if hasattr(info, "context"):
        context = info.context
        if isinstance(context, dict):
            return context
        # Strawberry style (context is an object with attributes)
        if hasattr(context, "__dict__"):
            ctx_dict: dict[str, Any] = context.__dict__
            return ctx_dict

    return None


def inject_cache_tag_collector(
    context: dict[str, Any],
    collector: CacheTagCollector | None = None,
) -> CacheTagCollector:
    """Install a tag collector into a GraphQL context.

    This should be called when setting up the request context.

    Args:
        context: The GraphQL context dictionary.
        collector: The collector to install. A new one is created if None.

    Returns:
        The installed collector.
    """
    if collector is None:
        collector = CacheTagCollector()
    context[CACHE_TAGS_CONTEXT_KEY] = collector
    return collector
