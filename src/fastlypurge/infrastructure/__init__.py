"""Infrastructure layer implementations for fastlypurge."""

from fastlypurge.infrastructure.api import FastlyApiClient
from fastlypurge.infrastructure.notifiers import WebhookNotifier
from fastlypurge.infrastructure.serializers import JsonSerializer
from fastlypurge.infrastructure.state import InMemoryStateStore, JsonFileStateStore

__all__ = [
    "FastlyApiClient",
    "WebhookNotifier",
    "JsonSerializer",
    "InMemoryStateStore",
    "JsonFileStateStore",
]
