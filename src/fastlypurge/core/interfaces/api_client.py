"""Fastly API client interface."""

from typing import Any, Protocol

import httpx

from fastlypurge.core.entities.api_result import ApiResult


class IFastlyApi(Protocol):
    """Contract for the calls the purge and VCL services make.

    Implementations never raise for transport or CDN failures; they
    report them through the returned ApiResult.
    """

    async def validate_purge_credentials(self, api_key: str | None = None) -> bool:
        """Check the token can purge the configured service.

        Args:
            api_key: Token to check. Uses the configured token if None.

        Returns:
            True if the token has purge rights on the service.
        """
        ...

    async def purge_keys_request(self, keys: list[str]) -> ApiResult:
        """Purge a batch of surrogate keys in one request."""
        ...

    async def purge_url_request(self, url: str) -> ApiResult:
        """Purge a single absolute URL."""
        ...

    async def purge_all_request(self) -> ApiResult:
        """Purge the whole service."""
        ...

    async def test_connection(self) -> ApiResult:
        """Check the API is reachable with the configured token."""
        ...

    async def vcl_query(
        self,
        uri: str,
        method: str = "GET",
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response | None:
        """Send a raw request against the configuration API.

        Returns:
            The response, or None if the request could not be sent.
        """
        ...
