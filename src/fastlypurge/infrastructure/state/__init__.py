"""State store implementations."""

from fastlypurge.infrastructure.state.json_file import JsonFileStateStore
from fastlypurge.infrastructure.state.memory import InMemoryStateStore

__all__ = ["InMemoryStateStore", "JsonFileStateStore"]
