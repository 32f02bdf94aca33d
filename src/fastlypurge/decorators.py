"""Framework-agnostic invalidation decorator.

Mutations decorated with ``@invalidates`` purge the surrogate keys of
the tags they touch once they complete. They work with any GraphQL
framework by using a configured CacheTagsInvalidator.
"""

import functools
import logging
import re
from collections.abc import Callable
from typing import Any, TypeVar

from fastlypurge.core.services.tags_invalidator import CacheTagsInvalidator

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Module-level invalidator reference
_invalidator: CacheTagsInvalidator | None = None


def configure(invalidator: CacheTagsInvalidator) -> None:
    """Configure the invalidator for decorators.

    Must be called before @invalidates has any effect.

    Args:
        invalidator: The invalidator instance to use.

    Example:
        invalidator = CacheTagsInvalidator(purger, cache_tags_hash)
        configure(invalidator)
    """
    global _invalidator
    _invalidator = invalidator


def get_invalidator() -> CacheTagsInvalidator | None:
    """Get the configured invalidator.

    Returns:
        The configured invalidator, or None if not configured.
    """
    return _invalidator


def invalidates(
    tags: list[str],
) -> Callable[[F], F]:
    """Decorator for purging cache tags after a mutation.

    Executes the decorated function and then invalidates the given
    tags. A failed purge is logged and never fails the mutation.

    Args:
        tags: Tags to invalidate. Supports {arg_name} interpolation.

    Returns:
        Decorated function.

    Example:
        @invalidates(tags=["node_list", "node:{id}"])
        async def update_article(id: str, data: dict) -> Article:
            return await db.update_article(id, data)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            # Execute function first
            result = await func(*args, **kwargs)

            if _invalidator is not None:
                resolved_tags = _resolve_tags(tags, kwargs)
                outcome = await _invalidator.invalidate_tags(resolved_tags)
                if not outcome:
                    logger.warning(
                        "Invalidation of %s failed: %s",
                        " ".join(resolved_tags),
                        outcome.message,
                    )

            return result

        return wrapper  # type: ignore

    return decorator


def _resolve_tags(tags: list[str], kwargs: dict[str, Any]) -> list[str]:
    """Resolve tags with argument interpolation.

    Args:
        tags: Tag patterns with optional {arg} placeholders.
        kwargs: Keyword arguments for interpolation.

    Returns:
        List of resolved tag strings.
    """
    return [_interpolate_string(tag, kwargs) for tag in tags]


def _interpolate_string(template: str, kwargs: dict[str, Any]) -> str:
    """Interpolate {arg_name} placeholders in string.

    Placeholders without a matching keyword argument are kept as-is.
    """
    pattern = r"\{(\w+)\}"

    def replacer(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in kwargs:
            return str(kwargs[name])
        return match.group(0)  # Keep original if not found

    return re.sub(pattern, replacer, template)
