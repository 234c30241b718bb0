"""Tests for the Netatmo bridge wiring."""

import asyncio
from typing import Any
from unittest.mock import Mock

import httpx
import pytest
from pytest_httpx import HTTPXMock

from netatmo_mqtt import NetatmoBridge
from netatmo_mqtt.config import validate_config
from netatmo_mqtt.const import BASE_URL
from netatmo_mqtt.coordinator import NetatmoPoller
from netatmo_mqtt.models import Token

TOKEN_URL = f"{BASE_URL}/oauth2/token"
STATIONS_URL = f"{BASE_URL}/api/getstationsdata?get_favorites=false"
HOMECOACHS_URL = f"{BASE_URL}/api/gethomecoachsdata"


@pytest.fixture
def bridge_config() -> dict[str, Any]:
    """Create a validated bridge configuration."""
    return validate_config({"client_id": "id", "client_secret": "secret"})


def _store(token: Token | None) -> Mock:
    store = Mock()
    store.load.return_value = token
    return store


def _bridge(
    config: dict[str, Any],
    session: httpx.AsyncClient,
    store: Mock,
    publish: Mock | None = None,
    mock_poller: bool = True,
) -> NetatmoBridge:
    bridge = NetatmoBridge(config, store, publish or Mock(), session=session)
    if mock_poller:
        bridge.poller = Mock(spec=NetatmoPoller)
    return bridge


class TestNetatmoBridgeSetup:
    """Tests for NetatmoBridge.async_setup."""

    @pytest.mark.asyncio
    async def test_valid_saved_token(
        self, bridge_config: dict[str, Any], valid_token: Token
    ) -> None:
        """Test that a valid saved token connects without refreshing."""
        store = _store(valid_token)
        async with httpx.AsyncClient() as session:
            bridge = _bridge(bridge_config, session, store)
            assert await bridge.async_setup() is True

        assert bridge.connected
        store.update.assert_not_called()
        bridge.poller.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_saved_token_is_refreshed(
        self,
        bridge_config: dict[str, Any],
        httpx_mock: HTTPXMock,
        expired_token: Token,
        sample_token_response: dict[str, Any],
    ) -> None:
        """Test that an expired saved token is refreshed and persisted."""
        httpx_mock.add_response(
            method="POST", url=TOKEN_URL, json=sample_token_response
        )
        store = _store(expired_token)
        async with httpx.AsyncClient() as session:
            bridge = _bridge(bridge_config, session, store)
            assert await bridge.async_setup() is True

        store.update.assert_called_once()
        saved = store.update.call_args.args[0]
        assert saved.access_token == "new_access"
        assert saved.refresh_token == "new_refresh"

    @pytest.mark.asyncio
    async def test_rejected_refresh(
        self,
        bridge_config: dict[str, Any],
        httpx_mock: HTTPXMock,
        expired_token: Token,
    ) -> None:
        """Test that a rejected refresh leaves the bridge disconnected."""
        httpx_mock.add_response(
            method="POST",
            url=TOKEN_URL,
            status_code=400,
            json={"error": "invalid_grant"},
        )
        store = _store(expired_token)
        async with httpx.AsyncClient() as session:
            bridge = _bridge(bridge_config, session, store)
            bridge.handle_transport_ready()
            assert await bridge.async_setup() is False

        assert not bridge.connected
        assert bridge.has_refresh_token
        store.update.assert_not_called()
        bridge.poller.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_saved_token(self, bridge_config: dict[str, Any]) -> None:
        """Test that without any token the bridge cannot connect."""
        async with httpx.AsyncClient() as session:
            bridge = _bridge(bridge_config, session, _store(None))
            assert await bridge.async_setup() is False

        assert not bridge.has_refresh_token

    @pytest.mark.asyncio
    async def test_generated_token(
        self, bridge_config: dict[str, Any], sample_token_response: dict[str, Any]
    ) -> None:
        """Test that a generated token is used and saved."""
        store = _store(None)
        async with httpx.AsyncClient() as session:
            bridge = _bridge(bridge_config, session, store)
            result = await bridge.async_use_generated_token(sample_token_response)

        assert result is True
        store.update.assert_called_once()
        assert bridge.token_manager.access_token == "new_access"

    @pytest.mark.asyncio
    async def test_invalid_generated_token(
        self, bridge_config: dict[str, Any]
    ) -> None:
        """Test that an incomplete generated token is rejected."""
        store = _store(None)
        async with httpx.AsyncClient() as session:
            bridge = _bridge(bridge_config, session, store)
            result = await bridge.async_use_generated_token({"access_token": "a"})

        assert result is False
        store.update.assert_not_called()
        assert not bridge.connected


class TestNetatmoBridgePolling:
    """Tests for when the bridge starts polling."""

    @pytest.mark.asyncio
    async def test_polling_waits_for_transport(
        self, bridge_config: dict[str, Any], valid_token: Token
    ) -> None:
        """Test that polling starts only once the transport is ready."""
        async with httpx.AsyncClient() as session:
            bridge = _bridge(bridge_config, session, _store(valid_token))

            await bridge.async_setup()
            bridge.poller.start.assert_not_called()

            bridge.handle_transport_ready()
            bridge.poller.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_polling_waits_for_api(
        self, bridge_config: dict[str, Any], valid_token: Token
    ) -> None:
        """Test that a ready transport alone does not start polling."""
        async with httpx.AsyncClient() as session:
            bridge = _bridge(bridge_config, session, _store(valid_token))

            bridge.handle_transport_ready()
            bridge.poller.start.assert_not_called()

            await bridge.async_setup()
            bridge.poller.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_publishes_first_cycle_and_shuts_down(
        self,
        bridge_config: dict[str, Any],
        httpx_mock: HTTPXMock,
        valid_token: Token,
        sample_stations_response: dict[str, Any],
        sample_homecoach_response: dict[str, Any],
    ) -> None:
        """Test a full cycle from API responses to published records."""
        httpx_mock.add_response(url=HOMECOACHS_URL, json=sample_homecoach_response)
        httpx_mock.add_response(url=STATIONS_URL, json=sample_stations_response)
        publish = Mock()
        bridge = _bridge(
            bridge_config,
            httpx.AsyncClient(),
            _store(valid_token),
            publish,
            mock_poller=False,
        )

        await bridge.async_setup()
        bridge.handle_transport_ready()
        for _ in range(100):
            if publish.call_count >= 4:
                break
            await asyncio.sleep(0.01)

        await bridge.async_shutdown()

        assert [call.args[0]["id"] for call in publish.call_args_list] == [
            "H1",
            "S1",
            "M1",
            "M2",
        ]
        assert not bridge.poller.running
        assert bridge.session.is_closed
        for request in httpx_mock.get_requests():
            assert request.headers["Authorization"] == "Bearer valid_access"
