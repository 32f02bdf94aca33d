"""Purge configuration entity."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any

# Keys live in the first 22 characters of a base64-encoded MD5 digest
MIN_CACHE_TAG_HASH_LENGTH = 4
MAX_CACHE_TAG_HASH_LENGTH = 22
DEFAULT_CACHE_TAG_HASH_LENGTH = 4

# Fastly rejects purge requests listing more surrogate keys than this
MAX_KEYS_PER_REQUEST = 256

DEFAULT_API_HOST = "https://api.fastly.com"

WEBHOOK_EVENTS = ("purge_keys", "purge_all", "vcl_update", "maintenance_page")


class FastlyPurgeError(Exception):
    """Base class for fastlypurge errors."""

    pass


class ConfigurationError(FastlyPurgeError, ValueError):
    """Raised when a configuration value is missing or out of range."""

    pass


class PurgeMethod(Enum):
    """How Fastly should treat purged objects.

    INSTANT: Evict the object immediately.
    SOFT: Mark the object stale so it can still be served while revalidating.
    """

    INSTANT = "instant"
    SOFT = "soft"


@dataclass
class PurgeConfig:
    """Settings for talking to the Fastly API.

    Every recognised option is enumerated here with its default. Values
    normally come from a persisted mapping (see ``from_mapping``) with
    environment variables taking precedence (see ``from_env``).

    Cache tag hashing:
        ``cache_tag_hash_length`` trades header size for collisions.
        Four base64 characters give 16.7M distinct keys; collisions only
        ever cause over-purging.
    """

    api_key: str = ""
    service_id: str = ""
    purge_method: PurgeMethod = PurgeMethod.INSTANT
    cache_tag_hash_length: int = DEFAULT_CACHE_TAG_HASH_LENGTH
    site_id: str | None = None
    purge_logging: bool = True

    # HTTP settings
    api_host: str = DEFAULT_API_HOST
    connect_timeout: float = 5.0
    max_keys_per_request: int = MAX_KEYS_PER_REQUEST
    max_concurrency: int = 1  # Chunks in flight at once (1 = sequential)

    # Token owners with a "global" scope must hold one of these roles
    allowed_global_roles: tuple[str, ...] = ("engineer", "superuser")

    # Webhook notifications
    webhook_url: str = ""
    webhook_enabled: bool = False
    webhook_notifications: tuple[str, ...] = ()
    webhook_connect_timeout: float = 2.0

    # Surrogate-Control stale directives
    stale_while_revalidate: bool = False
    stale_while_revalidate_value: int = 604800
    stale_if_error: bool = False
    stale_if_error_value: int = 604800

    def __post_init__(self) -> None:
        """Coerce loosely typed values and validate ranges."""
        if isinstance(self.purge_method, str):
            try:
                self.purge_method = PurgeMethod(self.purge_method.lower())
            except ValueError as e:
                raise ConfigurationError(
                    f"Unknown purge method: {self.purge_method!r}"
                ) from e

        for name in _INT_OPTIONS:
            self._coerce(name, int)
        for name in _FLOAT_OPTIONS:
            self._coerce(name, float)

        if not (
            MIN_CACHE_TAG_HASH_LENGTH
            <= self.cache_tag_hash_length
            <= MAX_CACHE_TAG_HASH_LENGTH
        ):
            raise ConfigurationError(
                f"cache_tag_hash_length must be between "
                f"{MIN_CACHE_TAG_HASH_LENGTH} and {MAX_CACHE_TAG_HASH_LENGTH}, "
                f"got {self.cache_tag_hash_length}"
            )

        if self.max_keys_per_request < 1:
            raise ConfigurationError("max_keys_per_request must be at least 1")
        if self.max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be at least 1")
        if self.connect_timeout <= 0:
            raise ConfigurationError("connect_timeout must be positive")

        self.allowed_global_roles = tuple(self.allowed_global_roles)
        self.webhook_notifications = tuple(self.webhook_notifications)
        unknown = set(self.webhook_notifications) - set(WEBHOOK_EVENTS)
        if unknown:
            raise ConfigurationError(
                f"Unknown webhook events: {', '.join(sorted(unknown))}"
            )

        if not self.site_id:
            self.site_id = None
        self.api_host = self.api_host.rstrip("/")

    def _coerce(self, name: str, type_: type) -> None:
        value = getattr(self, name)
        if isinstance(value, bool):
            raise ConfigurationError(f"{name} must be a number, got {value!r}")
        try:
            setattr(self, name, type_(value))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{name} must be a number, got {value!r}") from e

    @property
    def has_credentials(self) -> bool:
        """Check if both an API key and a service id are configured."""
        return bool(self.api_key) and bool(self.service_id)

    @property
    def is_soft_purge(self) -> bool:
        """Check if purges should be sent as soft purges."""
        return self.purge_method == PurgeMethod.SOFT

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PurgeConfig":
        """Create a config from a persisted key/value mapping.

        Args:
            data: Mapping of option names to values.

        Returns:
            A new PurgeConfig instance.

        Raises:
            ConfigurationError: If the mapping holds unknown options.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration options: {', '.join(sorted(unknown))}"
            )
        return cls(**dict(data))

    @classmethod
    def from_env(
        cls,
        base: "PurgeConfig | None" = None,
        environ: Mapping[str, str] | None = None,
    ) -> "PurgeConfig":
        """Apply environment overrides on top of a base config.

        Args:
            base: Config to start from. Uses defaults if not provided.
            environ: Environment mapping. Uses ``os.environ`` if not provided.

        Returns:
            A new PurgeConfig with environment values taking precedence.
        """
        env = os.environ if environ is None else environ
        config = base or cls()

        overrides: dict[str, Any] = {}
        for var, name in _ENV_OVERRIDES.items():
            value = env.get(var)
            if value:
                overrides[name] = value

        return replace(config, **overrides) if overrides else config


_ENV_OVERRIDES = {
    "FASTLY_API_TOKEN": "api_key",
    "FASTLY_API_SERVICE": "service_id",
    "FASTLY_PURGE_METHOD": "purge_method",
    "FASTLY_CACHE_TAG_HASH_LENGTH": "cache_tag_hash_length",
    "FASTLY_SITE_ID": "site_id",
    "FASTLY_API_HOST": "api_host",
}

_INT_OPTIONS = (
    "cache_tag_hash_length",
    "max_keys_per_request",
    "max_concurrency",
    "stale_while_revalidate_value",
    "stale_if_error_value",
)
_FLOAT_OPTIONS = ("connect_timeout", "webhook_connect_timeout")
