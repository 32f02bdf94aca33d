"""Hashing utilities for surrogate key generation."""

import base64
import hashlib
import secrets
import string

from fastlypurge.core.entities.purge_config import (
    MAX_CACHE_TAG_HASH_LENGTH,
    MIN_CACHE_TAG_HASH_LENGTH,
)


def hash_input(value: str, length: int) -> str:
    """Compress a string into a short, stable surrogate key.

    The key is the first ``length`` characters of the base64-encoded MD5
    digest of ``value``. This is lossy compression, not an integrity
    check: distinct inputs may share a key, which only causes extra
    purging.

    Args:
        value: The string to hash. May be empty.
        length: Number of characters to keep. Clamped to the 4..22 range.

    Returns:
        A key of exactly the (clamped) length.
    """
    length = max(MIN_CACHE_TAG_HASH_LENGTH, min(length, MAX_CACHE_TAG_HASH_LENGTH))
    digest = hashlib.md5(value.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")[:length]


def generate_site_id(length: int = 8) -> str:
    """Generate a random lowercase site identifier.

    The identifier starts with a letter and continues with letters and
    digits, so it is safe to use inside cache tags and headers.

    Args:
        length: Number of characters.

    Returns:
        A new random identifier.
    """
    first = secrets.choice(string.ascii_lowercase)
    rest = "".join(
        secrets.choice(string.ascii_lowercase + string.digits)
        for _ in range(length - 1)
    )
    return first + rest
