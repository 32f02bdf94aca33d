"""URL validation for URL-based purges."""

from urllib.parse import urlsplit

_ALLOWED_SCHEMES = {"http", "https"}


def is_valid_purge_url(url: str) -> bool:
    """Check that a URL can be purged.

    The URL must be absolute (scheme and host), use http or https, and
    contain no whitespace.

    Args:
        url: The URL to check.

    Returns:
        True if the URL is well formed, False otherwise.
    """
    if not url or any(char.isspace() for char in url):
        return False

    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    return parts.scheme.lower() in _ALLOWED_SCHEMES and bool(parts.hostname)
