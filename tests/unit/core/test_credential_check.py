"""Tests for CredentialCheck."""

from unittest.mock import AsyncMock

import pytest

from fastlypurge import CredentialCheck, PurgeConfig, PurgeState
from fastlypurge.core.services.credential_check import (
    INVALID_RECOMMENDATION,
    VALID_RECOMMENDATION,
    Severity,
)


class TestCredentialCheck:
    """Tests for the credential diagnostic."""

    @pytest.mark.asyncio
    async def test_cached_valid_state_is_trusted(
        self, api: AsyncMock, purge_state: PurgeState, config: PurgeConfig
    ) -> None:
        await purge_state.set_purge_credentials_state(True)

        result = await CredentialCheck(api, purge_state, config).run()

        assert result.is_ok
        assert result.recommendation == VALID_RECOMMENDATION
        api.validate_purge_credentials.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_revalidates_invalid_state(
        self, api: AsyncMock, purge_state: PurgeState, config: PurgeConfig
    ) -> None:
        await purge_state.set_purge_credentials_state(False)

        result = await CredentialCheck(api, purge_state, config).run()

        assert result.is_ok
        api.validate_purge_credentials.assert_awaited_once()
        assert await purge_state.get_purge_credentials_state() is True

    @pytest.mark.asyncio
    async def test_invalid_credentials(
        self, api: AsyncMock, purge_state: PurgeState, config: PurgeConfig
    ) -> None:
        api.validate_purge_credentials.return_value = False

        result = await CredentialCheck(api, purge_state, config).run()

        assert result.severity == Severity.ERROR
        assert result.recommendation == INVALID_RECOMMENDATION
        assert await purge_state.get_purge_credentials_state() is False

    @pytest.mark.asyncio
    async def test_missing_credentials(self, api: AsyncMock, purge_state: PurgeState) -> None:
        result = await CredentialCheck(api, purge_state, PurgeConfig()).run()

        assert not result.is_ok
        api.validate_purge_credentials.assert_not_awaited()
