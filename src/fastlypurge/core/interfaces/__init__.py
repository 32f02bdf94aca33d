"""Core interfaces (Protocol classes) for fastlypurge."""

from fastlypurge.core.interfaces.api_client import IFastlyApi
from fastlypurge.core.interfaces.notifier import INotifier
from fastlypurge.core.interfaces.state_store import IStateStore

__all__ = [
    "IFastlyApi",
    "INotifier",
    "IStateStore",
]
