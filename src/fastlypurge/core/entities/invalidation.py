"""Invalidation entities.

An invalidation is one request to drop content from the CDN. The kind of
invalidation decides which purge endpoint handles it.
"""

from dataclasses import dataclass
from enum import Enum


class InvalidationType(Enum):
    """Kinds of invalidation the purger understands.

    TAG: Purge responses carrying a cache tag (via its surrogate key).
    URL: Purge a single absolute URL.
    EVERYTHING: Purge all content of the current site.
    """

    TAG = "tag"
    URL = "url"
    EVERYTHING = "everything"


class InvalidationState(Enum):
    """Processing state of an invalidation."""

    FRESH = "fresh"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class Invalidation:
    """A single invalidation request.

    Attributes:
        type: The kind of invalidation.
        expression: The cache tag or URL. Ignored for EVERYTHING.
        state: Current processing state, updated by the purger.
    """

    type: InvalidationType
    expression: str | None = None
    state: InvalidationState = InvalidationState.FRESH

    @classmethod
    def tag(cls, tag: str) -> "Invalidation":
        """Create a cache tag invalidation."""
        return cls(type=InvalidationType.TAG, expression=tag)

    @classmethod
    def url(cls, url: str) -> "Invalidation":
        """Create a URL invalidation."""
        return cls(type=InvalidationType.URL, expression=url)

    @classmethod
    def everything(cls) -> "Invalidation":
        """Create an invalidation for all site content."""
        return cls(type=InvalidationType.EVERYTHING)
