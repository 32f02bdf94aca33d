"""Fastly API client implementation."""

import logging
from typing import Any
from urllib.parse import urlsplit

import httpx

from fastlypurge.core.entities.api_result import ApiResult
from fastlypurge.core.entities.purge_config import PurgeConfig
from fastlypurge.utils.urls import is_valid_purge_url

logger = logging.getLogger(__name__)

DEFAULT_READ_TIMEOUT = 30.0

VCL_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


class FastlyApiClient:
    """Stateless wrapper around the Fastly REST API.

    Every call attaches the ``Fastly-Key`` header and honours the
    configured connect timeout. Transport errors, non-2xx responses and
    malformed JSON are logged at critical level and reported as a failed
    ApiResult; nothing raises into the caller.
    """

    def __init__(
        self,
        config: PurgeConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Credentials, host and timeouts.
            http_client: Optional HTTP client to send requests through.
                A private client is created (and closed by ``aclose``)
                if not provided.
        """
        self._config = config
        self._client = http_client or httpx.AsyncClient()
        self._owns_client = http_client is None
        self._timeout = httpx.Timeout(
            DEFAULT_READ_TIMEOUT,
            connect=config.connect_timeout,
        )

    @property
    def config(self) -> PurgeConfig:
        return self._config

    async def get_services(self) -> ApiResult:
        """List the services of the current customer."""
        return await self._get_json("service")

    async def get_service_metadata(self, service_id: str | None = None) -> ApiResult:
        """Get a service by id. Uses the configured service if None."""
        return await self._get_json(f"service/{service_id or self._config.service_id}")

    async def get_service_details(self, service_id: str | None = None) -> ApiResult:
        """Get a service with its version details."""
        sid = service_id or self._config.service_id
        return await self._get_json(f"service/{sid}/details")

    async def get_current_token_info(self, api_key: str | None = None) -> ApiResult:
        """Introspect the API token."""
        return await self._get_json("tokens/self", api_key=api_key)

    async def get_current_user(self, api_key: str | None = None) -> ApiResult:
        """Get the user owning the API token."""
        return await self._get_json("current_user", api_key=api_key)

    async def validate_api_key(self, api_key: str | None = None) -> bool:
        """Check the token belongs to a customer account.

        Args:
            api_key: Token to check. Uses the configured token if None.

        Returns:
            True if ``/current_customer`` reports an owner.
        """
        result = await self._get_json("current_customer", api_key=api_key)
        return bool(result) and isinstance(result.data, dict) and bool(
            result.data.get("owner_id")
        )

    async def test_connection(self) -> ApiResult:
        """Check the API is reachable with the configured credentials."""
        if not self._config.has_credentials:
            return ApiResult.failure("Invalid credentials: API token or service id missing.")
        if not await self.validate_api_key():
            return ApiResult.failure("Invalid credentials: API token was rejected.")
        return ApiResult.ok("Connection to the Fastly API is working.")

    async def validate_purge_credentials(self, api_key: str | None = None) -> bool:
        """Check the token can purge the configured service.

        The token needs both the ``purge_select`` and ``purge_all``
        scopes, or the ``global`` scope on a user whose role is in
        ``allowed_global_roles``. It must also have access to the
        configured service.

        Args:
            api_key: Token to check. Uses the configured token if None.

        Returns:
            True if the token has purge rights on the service.
        """
        key = api_key or self._config.api_key
        service_id = self._config.service_id
        if not key or not service_id:
            return False

        token = await self.get_current_token_info(api_key=key)
        if not token or not isinstance(token.data, dict):
            return False

        scopes = _token_scopes(token.data)
        if "purge_select" in scopes and "purge_all" in scopes:
            has_purge_scope = True
        elif "global" in scopes:
            user = await self.get_current_user(api_key=key)
            role = user.data.get("role") if user and isinstance(user.data, dict) else None
            has_purge_scope = role in self._config.allowed_global_roles
        else:
            has_purge_scope = False

        if not has_purge_scope:
            logger.warning(
                "Fastly API token lacks purge scopes (scopes: %s)",
                " ".join(sorted(scopes)) or "none",
            )
            return False

        services = token.data.get("services") or []
        if services:
            has_access = service_id in services
        else:
            has_access = bool(await self.get_service_metadata(service_id))

        if not has_access:
            logger.warning("Fastly API token has no access to service %s", service_id)
        return has_access

    async def purge_keys_request(self, keys: list[str]) -> ApiResult:
        """Purge a batch of surrogate keys in one request.

        Args:
            keys: Surrogate keys, sent space-joined in one header.

        Returns:
            A successful result if Fastly answered with a purge id map.
        """
        if not keys:
            return ApiResult.failure("No keys to purge.")
        if not self._config.service_id:
            return ApiResult.failure("No Fastly service id configured.")

        joined = " ".join(keys)
        response = await self._query(
            f"service/{self._config.service_id}/purge",
            method="POST",
            headers={"Surrogate-Key": joined, **self._purge_headers()},
        )
        if response is None:
            logger.critical("Unable to purge following key(s): %s", joined)
            return ApiResult.failure("Purge request could not be sent.")

        data = self._json(response) if response.is_success else None
        if not data:
            logger.critical(
                "Unable to purge following key(s): %s. Response status: %s",
                joined,
                response.status_code,
            )
            return ApiResult.failure(
                f"Unable to purge key(s), HTTP {response.status_code}.",
                status_code=response.status_code,
            )

        if self._config.purge_logging:
            logger.info(
                "Successfully purged following key(s): %s. Purge method: %s",
                joined,
                self._config.purge_method.value,
            )
        return ApiResult.ok(
            "Successfully purged key(s).",
            data=data,
            status_code=response.status_code,
        )

    async def purge_url_request(self, url: str) -> ApiResult:
        """Purge a single URL.

        Malformed URLs (relative, non-http, containing whitespace) are
        rejected without a request.

        Args:
            url: Absolute http(s) URL of the cached object.

        Returns:
            A successful result if Fastly reported status "ok".
        """
        if not is_valid_purge_url(url):
            return ApiResult.failure(f"Invalid URL: {url!r}")

        parts = urlsplit(url)
        target = parts.netloc + (parts.path or "/")
        if parts.query:
            target += "?" + parts.query

        response = await self._query(
            f"purge/{target}",
            method="POST",
            headers=self._purge_headers(),
        )
        result = self._status_result(response, f"url {url}")
        if result and self._config.purge_logging:
            logger.info(
                "Successfully purged url %s. Purge method: %s",
                url,
                self._config.purge_method.value,
            )
        return result

    async def purge_all_request(self) -> ApiResult:
        """Purge every object of the service, for all sites sharing it."""
        if not self._config.service_id:
            return ApiResult.failure("No Fastly service id configured.")

        response = await self._query(
            f"service/{self._config.service_id}/purge_all",
            method="POST",
        )
        result = self._status_result(response, "all")
        if result and self._config.purge_logging:
            logger.info("Successfully purged all on Fastly.")
        return result

    async def vcl_query(
        self,
        uri: str,
        method: str = "GET",
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response | None:
        """Send a raw request against the configuration API.

        POST, PUT and PATCH bodies are sent form-encoded.

        Args:
            uri: Path relative to the API host.
            method: HTTP method.
            data: Optional form fields.
            headers: Optional extra headers.

        Returns:
            The response, or None if the request could not be sent.
        """
        method = method.upper()
        if method not in VCL_METHODS:
            logger.critical("Method %s is not valid for the Fastly API.", method)
            return None

        return await self._query(
            uri,
            method=method,
            headers=headers,
            data=data if method in {"POST", "PUT", "PATCH"} and data else None,
        )

    async def _query(
        self,
        uri: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        data: dict[str, Any] | None = None,
        api_key: str | None = None,
    ) -> httpx.Response | None:
        """Send a request to the Fastly API.

        Args:
            uri: Path relative to the API host.
            method: HTTP method.
            headers: Extra headers, merged over the defaults.
            data: Optional form fields.
            api_key: Token to authenticate with. Uses the configured one if None.

        Returns:
            The response, or None on transport errors.
        """
        url = f"{self._config.api_host}/{uri.lstrip('/')}"
        request_headers = {
            "Accept": "application/json",
            "Fastly-Key": api_key or self._config.api_key,
        }
        if headers:
            request_headers.update(headers)

        logger.debug("Fastly API %s %s", method, url)
        try:
            return await self._client.request(
                method,
                url,
                headers=request_headers,
                data=data,
                timeout=self._timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as e:
            # Non-ASCII tokens fail while encoding headers, before any I/O
            logger.critical("Fastly API %s %s failed: %s", method, uri, e)
            return None

    async def _get_json(self, uri: str, api_key: str | None = None) -> ApiResult:
        response = await self._query(uri, api_key=api_key)
        if response is None:
            return ApiResult.failure(f"Request to {uri} could not be sent.")

        if not response.is_success:
            logger.critical(
                "Fastly API GET %s returned HTTP %s", uri, response.status_code
            )
            return ApiResult.failure(
                f"Request to {uri} returned HTTP {response.status_code}.",
                status_code=response.status_code,
            )

        data = self._json(response)
        if data is None:
            return ApiResult.failure(
                f"Malformed response from {uri}.",
                status_code=response.status_code,
            )
        return ApiResult.ok(data=data, status_code=response.status_code)

    def _status_result(self, response: httpx.Response | None, target: str) -> ApiResult:
        """Interpret a purge response carrying ``{"status": "ok"}``."""
        if response is None:
            return ApiResult.failure(f"Unable to purge {target}: request could not be sent.")

        data = self._json(response) if response.is_success else None
        status = data.get("status") if isinstance(data, dict) else None
        if status != "ok":
            logger.critical(
                "Unable to purge %s on Fastly. HTTP %s, response status: %s",
                target,
                response.status_code,
                status,
            )
            return ApiResult.failure(
                f"Unable to purge {target}.",
                data=data,
                status_code=response.status_code,
            )

        return ApiResult.ok(
            f"Successfully purged {target}.",
            data=data,
            status_code=response.status_code,
        )

    def _json(self, response: httpx.Response) -> Any | None:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.critical(
                "Malformed JSON from Fastly API (HTTP %s): %s",
                response.status_code,
                e,
            )
            return None

    def _purge_headers(self) -> dict[str, str]:
        if self._config.is_soft_purge:
            return {"Fastly-Soft-Purge": "1"}
        return {}

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FastlyApiClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.aclose()


def _token_scopes(token: dict[str, Any]) -> set[str]:
    """Read the scopes of a ``/tokens/self`` response.

    The API reports them as a space separated ``scope`` string; a
    ``scopes`` list is accepted as well.
    """
    scopes = token.get("scopes") or token.get("scope") or []
    if isinstance(scopes, str):
        scopes = scopes.split()
    return {str(scope) for scope in scopes}
