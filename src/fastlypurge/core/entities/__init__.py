"""Domain entities for fastlypurge."""

from fastlypurge.core.entities.api_result import ApiResult
from fastlypurge.core.entities.invalidation import (
    Invalidation,
    InvalidationState,
    InvalidationType,
)
from fastlypurge.core.entities.purge_config import (
    ConfigurationError,
    FastlyPurgeError,
    PurgeConfig,
    PurgeMethod,
)
from fastlypurge.core.entities.service_version import (
    Condition,
    RequestSetting,
    ResponseObject,
    ServiceVersion,
    VclRequest,
    VclSnippet,
    VersionState,
)

__all__ = [
    "ApiResult",
    "PurgeConfig",
    "PurgeMethod",
    "FastlyPurgeError",
    "ConfigurationError",
    "Invalidation",
    "InvalidationState",
    "InvalidationType",
    "ServiceVersion",
    "VersionState",
    "VclSnippet",
    "Condition",
    "RequestSetting",
    "ResponseObject",
    "VclRequest",
]
