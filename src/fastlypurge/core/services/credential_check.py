"""Diagnostic check for the purge credentials."""

from dataclasses import dataclass
from enum import Enum

from fastlypurge.core.entities.purge_config import PurgeConfig
from fastlypurge.core.interfaces.api_client import IFastlyApi
from fastlypurge.core.services.purge_state import PurgeState

INVALID_RECOMMENDATION = (
    "Invalid Api credentials. Make sure the token you are trying has at "
    "least global:read, purge_select, and purge_all scopes."
)
VALID_RECOMMENDATION = "Valid Api credentials detected."


class Severity(Enum):
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class DiagnosticResult:
    """Outcome of a diagnostic check."""

    severity: Severity
    recommendation: str

    @property
    def is_ok(self) -> bool:
        return self.severity == Severity.OK


class CredentialCheck:
    """Reports whether purging can work with the configured credentials.

    The cached state is trusted when it says the credentials are valid.
    Otherwise, if a token and a service id are configured, they are
    validated again and the outcome is cached.
    """

    def __init__(self, api: IFastlyApi, state: PurgeState, config: PurgeConfig) -> None:
        self._api = api
        self._state = state
        self._config = config

    async def run(self) -> DiagnosticResult:
        valid = await self._state.get_purge_credentials_state()

        if not valid and self._config.has_credentials:
            valid = await self._api.validate_purge_credentials()
            await self._state.set_purge_credentials_state(valid)

        if not valid:
            return DiagnosticResult(Severity.ERROR, INVALID_RECOMMENDATION)
        return DiagnosticResult(Severity.OK, VALID_RECOMMENDATION)
