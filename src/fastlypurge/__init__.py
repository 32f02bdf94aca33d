"""fastlypurge - Fastly cache tag purging for Python web applications.

Maps the cache tags of changed content to short, site-scoped surrogate
keys, purges them on Fastly in batches, and tags responses with the
matching Surrogate-Key header. Also manages versioned VCL edits such as
maintenance pages and edge modules.

Example:
    import httpx
    from fastlypurge import (
        CacheTagsHash,
        CacheTagsInvalidator,
        FastlyApiClient,
        FastlyPurger,
        InMemoryStateStore,
        PurgeConfig,
        PurgeState,
    )

    config = PurgeConfig.from_env()
    store = InMemoryStateStore()
    cache_tags_hash = CacheTagsHash(config, store)

    async with FastlyApiClient(config) as api:
        purger = FastlyPurger(api, cache_tags_hash, PurgeState(store), config)
        invalidator = CacheTagsInvalidator(purger, cache_tags_hash)
        await invalidator.invalidate_tags(["node:42", "node_list"])

Tagging GraphQL responses with Ariadne:
    from fastlypurge.adapters.ariadne import SurrogateKeyGraphQL
    from fastlypurge.hints import add_cache_tags

    @query.field("article")
    async def resolve_article(_, info, id: str):
        add_cache_tags(info, f"node:{id}")
        return await get_article(id)

    app = SurrogateKeyGraphQL(schema, generator=SurrogateKeyGenerator(cache_tags_hash, config))
"""

from fastlypurge.core.entities import (
    ApiResult,
    Condition,
    ConfigurationError,
    FastlyPurgeError,
    Invalidation,
    InvalidationState,
    InvalidationType,
    PurgeConfig,
    PurgeMethod,
    RequestSetting,
    ResponseObject,
    ServiceVersion,
    VclSnippet,
    VersionState,
)
from fastlypurge.core.interfaces import IFastlyApi, INotifier, IStateStore
from fastlypurge.core.services import (
    CacheTagsHash,
    CacheTagsInvalidator,
    CredentialCheck,
    FastlyPurger,
    PurgeState,
    SurrogateKeyGenerator,
    VclHandler,
)
from fastlypurge.decorators import configure, invalidates
from fastlypurge.hints import add_cache_tags
from fastlypurge.infrastructure import (
    FastlyApiClient,
    InMemoryStateStore,
    JsonFileStateStore,
    JsonSerializer,
    WebhookNotifier,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core entities
    "ApiResult",
    "PurgeConfig",
    "PurgeMethod",
    "Invalidation",
    "InvalidationState",
    "InvalidationType",
    "FastlyPurgeError",
    "ConfigurationError",
    # VCL entities
    "ServiceVersion",
    "VersionState",
    "VclSnippet",
    "Condition",
    "RequestSetting",
    "ResponseObject",
    # Core interfaces
    "IFastlyApi",
    "INotifier",
    "IStateStore",
    # Core services
    "CacheTagsHash",
    "CacheTagsInvalidator",
    "CredentialCheck",
    "FastlyPurger",
    "PurgeState",
    "SurrogateKeyGenerator",
    "VclHandler",
    # Infrastructure implementations
    "FastlyApiClient",
    "WebhookNotifier",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "JsonSerializer",
    # Decorators and hints
    "invalidates",
    "configure",
    "add_cache_tags",
]
