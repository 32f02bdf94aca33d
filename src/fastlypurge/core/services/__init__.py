"""Domain services for fastlypurge."""

from fastlypurge.core.services.cache_tags_hash import CacheTagsHash
from fastlypurge.core.services.credential_check import (
    CredentialCheck,
    DiagnosticResult,
    Severity,
)
from fastlypurge.core.services.edge_modules import (
    EDGE_MODULE_PREFIX,
    MODULES,
    EdgeModule,
    EdgeModuleError,
    EdgeModuleStatus,
    edge_module_status,
    get_edge_module,
    render_edge_module,
)
from fastlypurge.core.services.purge_state import PurgeState
from fastlypurge.core.services.purger import FastlyPurger
from fastlypurge.core.services.surrogate_keys import SurrogateKeyGenerator
from fastlypurge.core.services.tags_invalidator import CacheTagsInvalidator
from fastlypurge.core.services.vcl_handler import VclHandler

__all__ = [
    # Purging
    "CacheTagsHash",
    "CacheTagsInvalidator",
    "FastlyPurger",
    "PurgeState",
    "SurrogateKeyGenerator",
    # Diagnostics
    "CredentialCheck",
    "DiagnosticResult",
    "Severity",
    # VCL
    "VclHandler",
    "EDGE_MODULE_PREFIX",
    "MODULES",
    "EdgeModule",
    "EdgeModuleError",
    "EdgeModuleStatus",
    "edge_module_status",
    "get_edge_module",
    "render_edge_module",
]
