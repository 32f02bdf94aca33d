"""JSON file state store implementation."""

import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Any

from fastlypurge.infrastructure.serializers.json import (
    JsonSerializer,
    SerializationError,
)

logger = logging.getLogger(__name__)


class JsonFileStateStore:
    """State store persisted as a single JSON document on disk.

    Used by the command line tool so the generated site id and the
    credential check survive between invocations. Every write rewrites
    the whole file; concurrent writers race and the last one wins.

    The document maps each key to ``{"value": ..., "expires_at": ...}``.
    """

    def __init__(
        self,
        path: str | Path,
        serializer: JsonSerializer | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON document. Created on first write.
            serializer: Serializer for the document. Defaults to JSON.
        """
        self._path = Path(path)
        self._serializer = serializer or JsonSerializer()

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> Any | None:
        entry = self._load().get(key)
        if not isinstance(entry, dict):
            return None
        expires_at = entry.get("expires_at")
        if expires_at is not None and time.time() >= expires_at:
            return None
        return entry.get("value")

    async def set(
        self,
        key: str,
        value: Any,
        ttl: timedelta | None = None,
    ) -> None:
        data = self._load()
        data[key] = {
            "value": value,
            "expires_at": time.time() + ttl.total_seconds() if ttl else None,
        }
        self._save(data)

    async def delete(self, key: str) -> bool:
        data = self._load()
        if key not in data:
            return False
        del data[key]
        self._save(data)
        return True

    def _load(self) -> dict[str, Any]:
        """Read the document. A missing file is an empty store.

        Raises:
            SerializationError: If the file exists but is not a JSON
                object. It holds the persisted site id, so it is never
                replaced by a fresh document.
        """
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return {}

        try:
            data = self._serializer.deserialize(raw)
        except SerializationError as e:
            logger.critical("Unreadable state file %s: %s", self._path, e)
            raise SerializationError(
                f"State file {self._path} is unreadable, fix or remove it: {e}"
            ) from e

        if not isinstance(data, dict):
            raise SerializationError(
                f"State file {self._path} must contain a JSON object, fix or remove it"
            )
        return data

    def _save(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_bytes(self._serializer.serialize(data))
        tmp_path.replace(self._path)
