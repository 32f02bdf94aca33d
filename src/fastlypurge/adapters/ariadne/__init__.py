"""Ariadne framework adapter for fastlypurge."""

from fastlypurge.adapters.ariadne.graphql import SurrogateKeyGraphQL
from fastlypurge.adapters.ariadne.handler import SurrogateKeyGraphQLHTTPHandler

__all__ = [
    "SurrogateKeyGraphQL",
    "SurrogateKeyGraphQLHTTPHandler",
]
