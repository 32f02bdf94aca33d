"""Core domain layer for fastlypurge."""

from fastlypurge.core.entities import ApiResult, Invalidation, PurgeConfig
from fastlypurge.core.interfaces import IFastlyApi, INotifier, IStateStore
from fastlypurge.core.services import (
    CacheTagsHash,
    CacheTagsInvalidator,
    FastlyPurger,
    VclHandler,
)

__all__ = [
    # Entities
    "ApiResult",
    "Invalidation",
    "PurgeConfig",
    # Interfaces
    "IFastlyApi",
    "INotifier",
    "IStateStore",
    # Services
    "CacheTagsHash",
    "CacheTagsInvalidator",
    "FastlyPurger",
    "VclHandler",
]
