"""Tests for JsonSerializer."""

import pytest

from fastlypurge import JsonSerializer
from fastlypurge.infrastructure.serializers.json import SerializationError


class TestJsonSerializer:
    """Tests for JsonSerializer."""

    def test_serialize_sorts_keys(self) -> None:
        assert JsonSerializer().serialize({"b": 1, "a": True}) == b'{"a": true, "b": 1}'

    def test_deserialize(self) -> None:
        assert JsonSerializer().deserialize(b'{"value": "abc"}') == {"value": "abc"}

    def test_unserializable_value(self) -> None:
        with pytest.raises(SerializationError):
            JsonSerializer().serialize({"value": object()})

    @pytest.mark.parametrize("data", [b"{broken", b"\xff\xfe"])
    def test_bad_data(self, data: bytes) -> None:
        with pytest.raises(SerializationError):
            JsonSerializer().deserialize(data)
