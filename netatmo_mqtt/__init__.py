"""Bridge between the Netatmo weather API and an MQTT broker."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from . import api
from .const import (
    CONF_CLIENT_ID,
    CONF_CLIENT_SECRET,
    CONF_GET_FAVORITES,
    CONF_REQUEST_TIMEOUT,
)
from .coordinator import NetatmoPoller, NetatmoTokenManager

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from .models import Measurement
    from .store import TokenStore

_LOGGER = logging.getLogger(__name__)


class NetatmoBridge:
    """Wires the token manager, API client and poller together.

    Polling starts once both the Netatmo API is connected and the
    publishing transport has reported it is ready.
    """

    def __init__(
        self,
        config: dict[str, Any],
        token_store: TokenStore,
        publish: Callable[[Measurement], None],
        session: httpx.AsyncClient | None = None,
    ) -> None:
        self.token_store = token_store
        self.session = session or api.create_session_client(
            config[CONF_REQUEST_TIMEOUT]
        )
        self.token_manager = NetatmoTokenManager(
            self.session,
            config[CONF_CLIENT_ID],
            config[CONF_CLIENT_SECRET],
            token=token_store.load(),
            on_token_update=token_store.update,
        )
        self.client = api.NetatmoApiClient(self.session, self.token_manager)
        self.poller = NetatmoPoller(
            self.client,
            publish,
            get_favorites=config[CONF_GET_FAVORITES],
        )
        self.connected = False
        self._transport_ready = False

    @property
    def has_refresh_token(self) -> bool:
        """Return True if a token that can be refreshed is held."""
        token = self.token_manager.token
        return token is not None and bool(token.refresh_token)

    async def async_setup(self, generated_token: dict[str, Any] | None = None) -> bool:
        """Validate the saved or generated token against the Netatmo API.

        Args:
            generated_token: Token response from the authorization flow,
                used instead of the saved token when given.

        Returns:
            True if a valid access token is held.

        """
        _LOGGER.debug(
            "Attempting connection to Netatmo using %s refresh token",
            "generated" if generated_token else "saved",
        )
        try:
            if generated_token is not None:
                self.token_manager.set_token(generated_token)
            self.connected = await self.token_manager.async_ensure_valid()
        except api.NetatmoApiClientError as err:
            _LOGGER.error("Failed to connect to Netatmo API: %s", err)
            self.connected = False

        if not self.connected:
            _LOGGER.warning("Failed to connect to Netatmo API, a new token may be required")
            return False

        _LOGGER.info("Connected to Netatmo API")
        self._maybe_start_polling()
        return True

    async def async_use_generated_token(self, token_response: dict[str, Any]) -> bool:
        """Reconnect using a token delivered by the authorization flow."""
        return await self.async_setup(token_response)

    def handle_transport_ready(self) -> None:
        """Start polling once the publishing transport is connected."""
        self._transport_ready = True
        _LOGGER.info("MQTT connection established, processing Netatmo")
        self._maybe_start_polling()

    async def async_shutdown(self) -> None:
        """Stop polling and close the HTTP session."""
        await self.poller.async_stop()
        await self.session.aclose()
        _LOGGER.info("Netatmo bridge shut down")

    def _maybe_start_polling(self) -> None:
        if self.connected and self._transport_ready:
            self.poller.start()
