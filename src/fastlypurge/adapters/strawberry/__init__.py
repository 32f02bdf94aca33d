"""Strawberry framework adapter for fastlypurge."""

from fastlypurge.adapters.strawberry.extension import (
    SurrogateKeyExtension,
    SurrogateKeyExtensionInstance,
)

__all__ = [
    "SurrogateKeyExtension",
    "SurrogateKeyExtensionInstance",
]
