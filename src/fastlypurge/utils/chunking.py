"""Helpers for splitting key lists into request-sized batches."""

import math
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def balanced_chunks(items: Sequence[T], max_size: int) -> list[list[T]]:
    """Split items into the fewest chunks of at most ``max_size``.

    Chunk sizes differ by at most one, so 300 items with a limit of 256
    become two chunks of 150 rather than 256 + 44. Order is preserved.

    Args:
        items: The items to split.
        max_size: Maximum number of items per chunk.

    Returns:
        The chunks, or an empty list if there are no items.
    """
    if max_size < 1:
        raise ValueError("max_size must be at least 1")

    total = len(items)
    if total == 0:
        return []

    parts = math.ceil(total / max_size)
    size, remainder = divmod(total, parts)

    chunks: list[list[T]] = []
    start = 0
    for index in range(parts):
        end = start + size + (1 if index < remainder else 0)
        chunks.append(list(items[start:end]))
        start = end

    return chunks
