"""Versioned VCL configuration workflow."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from fastlypurge.core.entities.purge_config import PurgeConfig
from fastlypurge.core.entities.service_version import (
    Condition,
    RequestSetting,
    ResponseObject,
    ServiceVersion,
    VclRequest,
    VclSnippet,
    VersionState,
)
from fastlypurge.core.interfaces.api_client import IFastlyApi
from fastlypurge.core.interfaces.notifier import INotifier
from fastlypurge.core.services.edge_modules import (
    EdgeModuleError,
    get_edge_module,
    is_edge_module_snippet,
    render_edge_module,
)

logger = logging.getLogger(__name__)

ERROR_PAGE_CONDITION = Condition(
    name="fastlypurge_error_page_condition",
    statement='req.http.ResponseObject == "970"',
    type="REQUEST",
)
ERROR_PAGE_RESPONSE_OBJECT = "fastlypurge_error_page_response_object"
ERROR_PAGE_SNIPPET = VclSnippet(
    name="fastlypurge_error_page_deliver",
    type="deliver",
    content=(
        "if (resp.status >= 500 && resp.status < 600 && !req.http.ResponseObject) {\n"
        '  set req.http.ResponseObject = "970";\n'
        "  restart;\n"
        "}"
    ),
)

REQUEST_FAILED_MESSAGE = (
    "Some of the API requests failed, enable debugging and check logs for "
    "more information."
)


class VclHandler:
    """Edits a Fastly service through a cloned version.

    Every edit session follows the same path: clone the active version,
    apply snippet, condition and setting edits to the clone, validate it
    and finally activate it. A failing step stops the session and leaves
    the clone behind as an inactive draft. Failures are collected in
    ``errors``; nothing raises for CDN-side problems.

    Example:
        handler = VclHandler(api, config)
        if not await handler.upload_maintenance_page("<h1>Back soon</h1>"):
            print(handler.errors)
    """

    def __init__(
        self,
        api: IFastlyApi,
        config: PurgeConfig,
        notifier: INotifier | None = None,
        base_url: str = "",
    ) -> None:
        """Initialize the handler.

        Args:
            api: The Fastly API client.
            config: Supplies the service id.
            notifier: Optional notifier for VCL and maintenance page events.
            base_url: Host name of the site, used in notifications.
        """
        self._api = api
        self._config = config
        self._notifier = notifier
        self._base_url = base_url

        self.errors: list[str] = []
        self.state = VersionState.NONE
        self.last_version: ServiceVersion | None = None
        self.last_cloned_version: int | None = None
        self.next_cloned_version_num: int | None = None
        self._initialized = False
        self._session_started = False

    @property
    def version_base_url(self) -> str:
        return f"service/{self._config.service_id}/version"

    def add_error(self, message: str) -> None:
        logger.error(message)
        self.errors.append(message)

    async def initialize(self) -> bool:
        """Check the connection and load the active version.

        Runs once per handler; later calls return the first outcome.
        """
        if self._initialized:
            return self.last_version is not None
        self._initialized = True

        connection = await self._api.test_connection()
        if not connection:
            self.add_error(connection.message)
            return False

        self.last_version = await self.get_last_version()
        if self.last_version is None:
            self.add_error("Last version does not exist")
            return False
        return True

    async def get_last_version(self) -> ServiceVersion | None:
        """Fetch the active version of the service.

        Also records the number the next clone is expected to get.
        """
        data = await self._get_json(self.version_base_url)
        if not isinstance(data, list):
            return None

        self.next_cloned_version_num = len(data) + 1
        for version_data in data:
            if version_data.get("active"):
                return ServiceVersion.from_api(version_data)
        return None

    async def clone_last_active_version(self) -> int | None:
        """Clone the active version, starting a new edit session.

        A handler that already ran a session forgets its state and
        errors, and re-reads the active version before cloning.

        Returns:
            The number of the clone, or None if cloning failed.
        """
        if self._session_started and self.last_version is not None:
            self.state = VersionState.NONE
            self.errors = []
            self.last_cloned_version = None
            self.last_version = await self.get_last_version()
            if self.last_version is None:
                self.add_error("Last version does not exist")
                return None

        self._session_started = True
        if not await self.initialize() or self.last_version is None:
            return None

        response = await self._send(
            VclRequest(
                url=f"{self.version_base_url}/{self.last_version.number}/clone",
                method="PUT",
            )
        )
        data = _json(response)
        number = data.get("number") if isinstance(data, dict) else None
        if number is None:
            self.add_error("Unable to clone last version")
            return None

        self.last_cloned_version = int(number)
        self.state = VersionState.CLONED
        logger.debug("Cloned version %s into %s", self.last_version.number, number)
        return self.last_cloned_version

    async def validate_version(self) -> bool:
        """Validate the cloned version."""
        response = await self._send(
            VclRequest(url=f"{self._cloned_url}/validate", method="GET")
        )
        data = _json(response)
        if response is None or not response.is_success or (
            isinstance(data, dict) and (data.get("errors") or data.get("status") == "error")
        ):
            self.add_error(f"Failed to validate service version: {self.last_cloned_version}")
            return False

        self.state = VersionState.VALIDATED
        return True

    async def activate_version(self) -> bool:
        """Activate the cloned version in place of the current one."""
        response = await self._send(
            VclRequest(url=f"{self._cloned_url}/activate", method="PUT")
        )
        if response is None or not response.is_success:
            self.add_error(REQUEST_FAILED_MESSAGE)
            logger.critical(
                "Activation of new version failed: %s",
                response.text if response is not None else "no response",
            )
            return False

        self.state = VersionState.ACTIVATED
        logger.info("VCL updated, version %s activated", self.last_cloned_version)
        return True

    async def check_if_vcl_exists(self, name: str) -> bool:
        data = await self._get_json(f"{self._cloned_url}/snippet/{name}")
        return isinstance(data, dict) and bool(data.get("content"))

    async def prepare_single_vcl(self, snippet: VclSnippet) -> VclRequest:
        """Prepare an insert or update request for a snippet."""
        if await self.check_if_vcl_exists(snippet.name):
            return self.prepare_update_vcl(snippet)
        return self.prepare_insert_vcl(snippet)

    def prepare_update_vcl(self, snippet: VclSnippet) -> VclRequest:
        return VclRequest(
            url=f"{self._cloned_url}/snippet/{snippet.name}",
            method="PUT",
            data=snippet.to_form(),
        )

    def prepare_insert_vcl(self, snippet: VclSnippet) -> VclRequest:
        return VclRequest(
            url=f"{self._cloned_url}/snippet",
            method="POST",
            data=snippet.to_form(),
        )

    async def get_all_snippets(self, version: int | None = None) -> list[dict[str, Any]]:
        """List the snippets of a version. Uses the active version if None."""
        if version is None:
            if not await self.initialize() or self.last_version is None:
                return []
            version = self.last_version.number

        data = await self._get_json(f"{self.version_base_url}/{version}/snippet")
        return data if isinstance(data, list) else []

    async def remove_snippet(self, version: int, name: str) -> bool:
        response = await self._send(
            VclRequest(
                url=f"{self.version_base_url}/{version}/snippet/{name}",
                method="DELETE",
            )
        )
        return response is not None and response.is_success

    async def get_condition(self, name: str) -> httpx.Response | None:
        return await self._send(
            VclRequest(url=f"{self._cloned_url}/condition/{name}", method="GET")
        )

    async def check_condition(self, name: str) -> bool:
        data = _json(await self.get_condition(name))
        return isinstance(data, dict) and bool(data.get("version"))

    async def insert_condition(self, condition: Condition) -> bool:
        """Insert a condition right away.

        Settings reference conditions by name, so a new condition has to
        exist before the requests that use it are sent.
        """
        response = await self._send(
            VclRequest(
                url=f"{self._cloned_url}/condition",
                method="POST",
                data=condition.to_form(),
            )
        )
        return response is not None and response.is_success

    async def prepare_condition(self, condition: Condition) -> VclRequest | None:
        """Prepare an update request, or insert a new condition immediately.

        Returns:
            The update request, or None if the condition was inserted.
        """
        if await self.check_condition(condition.name):
            return VclRequest(
                url=f"{self._cloned_url}/condition/{condition.name}",
                method="PUT",
                data=condition.to_form(),
            )

        if not await self.insert_condition(condition):
            self.add_error(f"Unable to insert new condition {condition.name}")
        return None

    async def get_setting(self, name: str) -> bool:
        data = await self._get_json(f"{self._cloned_url}/request_settings/{name}")
        return isinstance(data, dict) and bool(data.get("version"))

    async def prepare_setting(self, setting: RequestSetting) -> VclRequest:
        if await self.get_setting(setting.name):
            return VclRequest(
                url=f"{self._cloned_url}/request_settings/{setting.name}",
                method="PUT",
                data=setting.to_form(),
            )
        return VclRequest(
            url=f"{self._cloned_url}/request_settings",
            method="POST",
            data=setting.to_form(),
        )

    async def get_response(self, version: int, name: str) -> httpx.Response | None:
        return await self._send(
            VclRequest(
                url=f"{self.version_base_url}/{version}/response_object/{name}",
                method="GET",
            )
        )

    async def create_response(self, version: int, response_object: ResponseObject) -> bool:
        """Create or replace a response object on a version."""
        url = f"{self.version_base_url}/{version}/response_object"
        existing = await self.get_response(version, response_object.name)

        if existing is not None and existing.is_success:
            request = VclRequest(
                url=f"{url}/{response_object.name}",
                method="PUT",
                data=response_object.to_form(),
            )
        else:
            request = VclRequest(url=url, method="POST", data=response_object.to_form())

        response = await self._send(request)
        return response is not None and response.is_success

    async def execute(
        self,
        snippets: Iterable[VclSnippet] = (),
        conditions: Iterable[Condition] = (),
        settings: Iterable[RequestSetting] = (),
        activate: bool = False,
    ) -> bool:
        """Apply edits to a clone of the active version.

        Args:
            snippets: Snippets to insert or update.
            conditions: Conditions to insert or update.
            settings: Request settings to insert or update.
            activate: Activate the clone once it validates.

        Returns:
            True if every edit was applied (and activated if requested).
        """
        snippets, conditions, settings = list(snippets), list(conditions), list(settings)
        if not snippets and not conditions and not settings:
            self.add_error("No update data set, please specify, vcl, condition or setting data")
            return False

        if await self.clone_last_active_version() is None:
            return False

        requests: list[VclRequest] = []
        for snippet in snippets:
            requests.append(await self.prepare_single_vcl(snippet))

        error_count = len(self.errors)
        for condition in conditions:
            request = await self.prepare_condition(condition)
            if request is not None:
                requests.append(request)
        if len(self.errors) > error_count:
            return False

        for setting in settings:
            requests.append(await self.prepare_setting(setting))

        if not await self._send_all(requests):
            return False

        if not await self.validate_version():
            return False

        if not activate:
            logger.info("VCL updated, but not activated.")
            return True

        if not await self.activate_version():
            return False

        await self._notify(
            f"VCL updated and activated on {self._base_url or self._config.service_id}",
            "vcl_update",
        )
        return True

    async def upload_maintenance_page(self, html: str) -> bool:
        """Serve ``html`` whenever the backend answers with a 5xx.

        Installs a condition, a 503 response object carrying the page,
        and a deliver snippet that routes backend errors to it.
        """
        version = await self.clone_last_active_version()
        if version is None:
            return False

        condition = await self.get_condition(ERROR_PAGE_CONDITION.name)
        if condition is None or condition.status_code == 404:
            if not await self.insert_condition(ERROR_PAGE_CONDITION):
                self.add_error("Failed to create the error page condition.")
                return False

        response_object = ResponseObject(
            name=ERROR_PAGE_RESPONSE_OBJECT,
            content=html,
            request_condition=ERROR_PAGE_CONDITION.name,
        )
        if not await self.create_response(version, response_object):
            self.add_error("Failed to create a RESPONSE object.")
            return False

        if not await self._send_all([await self.prepare_single_vcl(ERROR_PAGE_SNIPPET)]):
            return False

        if not await self.validate_version() or not await self.activate_version():
            return False

        await self._notify(
            f"New Error/Maintenance page has updated and activated under config version {version}",
            "maintenance_page",
        )
        return True

    async def upload_edge_module(self, name: str, values: Mapping[str, Any]) -> bool:
        """Render an edge module and activate it on a new version."""
        try:
            snippets = render_edge_module(name, values)
        except EdgeModuleError as e:
            self.add_error(str(e))
            return False

        if await self.clone_last_active_version() is None:
            return False

        requests = [await self.prepare_single_vcl(snippet) for snippet in snippets]
        if not await self._send_all(requests):
            return False

        if not await self.validate_version() or not await self.activate_version():
            return False

        await self._notify(f"Edge module {name} uploaded and activated.", "vcl_update")
        return True

    async def remove_edge_module(self, name: str) -> bool:
        """Delete an edge module's snippets and activate the result."""
        try:
            module = get_edge_module(name)
        except EdgeModuleError as e:
            self.add_error(str(e))
            return False

        version = await self.clone_last_active_version()
        if version is None:
            return False

        for snippet in await self.get_all_snippets(version):
            snippet_name = str(snippet.get("name", ""))
            if is_edge_module_snippet(snippet_name, module):
                if not await self.remove_snippet(version, snippet_name):
                    self.add_error(f"Unable to remove snippet {snippet_name}")
                    return False

        return await self.validate_version() and await self.activate_version()

    async def get_all_acls(self) -> list[dict[str, Any]]:
        return await self._list_active("acl")

    async def get_all_dictionaries(self) -> list[dict[str, Any]]:
        return await self._list_active("dictionary")

    async def get_io_settings(self) -> dict[str, Any]:
        """Image optimization defaults of the active version."""
        if not await self.initialize() or self.last_version is None:
            return {}
        data = await self._get_json(
            f"{self.version_base_url}/{self.last_version.number}/io_settings"
        )
        return data if isinstance(data, dict) else {}

    async def update_io_settings(self, settings: Mapping[str, Any]) -> bool:
        """Patch image optimization defaults on a clone and activate it."""
        if not settings:
            self.add_error("No image optimization settings given.")
            return False

        if await self.clone_last_active_version() is None:
            return False

        request = VclRequest(f"{self._cloned_url}/io_settings", "PATCH", dict(settings))
        if not await self._send_all([request]):
            return False

        return await self.validate_version() and await self.activate_version()

    @property
    def _cloned_url(self) -> str:
        return f"{self.version_base_url}/{self.last_cloned_version}"

    async def _list_active(self, resource: str) -> list[dict[str, Any]]:
        if not await self.initialize() or self.last_version is None:
            return []
        data = await self._get_json(
            f"{self.version_base_url}/{self.last_version.number}/{resource}"
        )
        return data if isinstance(data, list) else []

    async def _send(self, request: VclRequest) -> httpx.Response | None:
        return await self._api.vcl_query(request.url, request.method, request.data or None)

    async def _send_all(self, requests: list[VclRequest]) -> bool:
        """Send prepared requests in order, stopping at the first failure."""
        for request in requests:
            response = await self._send(request)
            if response is None or not response.is_success:
                self.add_error(REQUEST_FAILED_MESSAGE)
                logger.critical(
                    "VCL update failed: %s %s: %s",
                    request.method,
                    request.url,
                    response.text if response is not None else "no response",
                )
                return False
        return True

    async def _get_json(self, uri: str) -> Any | None:
        response = await self._api.vcl_query(uri)
        if response is None or not response.is_success:
            return None
        return _json(response)

    async def _notify(self, message: str, event: str) -> None:
        if self._notifier is not None:
            await self._notifier.send(message, event)


def _json(response: httpx.Response | None) -> Any | None:
    if response is None or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        logger.critical("Malformed JSON from Fastly API (HTTP %s)", response.status_code)
        return None
