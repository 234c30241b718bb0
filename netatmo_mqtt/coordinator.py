"""Token lifecycle and polling for the Netatmo MQTT bridge."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from . import api, normalizer
from .const import POLL_INTERVAL
from .models import Measurement, Token

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

_LOGGER = logging.getLogger(__name__)


class NetatmoTokenManager:
    """Holds the Netatmo token and refreshes it when it expires.

    The manager is the only producer of new tokens. Every new token, whether
    refreshed or injected from an authorization callback, replaces the held
    one wholesale and is handed to the ``on_token_update`` callback for
    persistence.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        token: Token | None = None,
        on_token_update: Callable[[Token], None] | None = None,
        time_func: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the token manager.

        Args:
            session: HTTP client session.
            client_id: Netatmo application client id.
            client_secret: Netatmo application client secret.
            token: Last known token, typically loaded from the token store.
            on_token_update: Called with every newly obtained token.
            time_func: Returns the current time in epoch seconds.

        """
        self._session = session
        self._client_id = client_id
        self._client_secret = client_secret
        self._token = token
        self._on_token_update = on_token_update
        self._time = time_func

    @property
    def token(self) -> Token | None:
        """Return the currently held token."""
        return self._token

    @property
    def access_token(self) -> str | None:
        """Return the currently held access token, if any."""
        return self._token.access_token if self._token else None

    def set_token(self, token_response: dict[str, Any]) -> Token:
        """Accept a freshly generated token from outside the refresh flow.

        Raises:
            NetatmoInvalidTokenError: If the response lacks required fields.

        """
        token = api.extract_token(token_response, self._time())
        self._update_token(token)
        _LOGGER.debug("Using generated Netatmo token")
        return token

    def invalidate_access_token(self) -> None:
        """Drop the access token so the next validity check refreshes it."""
        if self._token is not None:
            self._token = replace(self._token, access_token=None)

    async def async_ensure_valid(self) -> bool:
        """Return True once a non-expired access token is held.

        Refreshes the token when it has expired and a refresh token is held.

        Raises:
            NetatmoApiClientError: If the refresh exchange fails.

        """
        if self._token is not None and self._token.is_valid(self._time()):
            _LOGGER.debug("Access token valid")
            return True

        _LOGGER.info("Access token expired")
        if self._token is None or not self._token.refresh_token:
            return False

        await self.async_refresh(self._token.refresh_token)
        return True

    async def async_refresh(self, refresh_token: str) -> Token:
        """Exchange the refresh token for a new token pair.

        The held token is only replaced when the response is complete.

        Raises:
            NetatmoInvalidTokenError: If the response lacks required fields.
            NetatmoApiClientError: If the token exchange is rejected.

        """
        data = await api.async_refresh_token(
            self._session,
            self._client_id,
            self._client_secret,
            refresh_token,
        )
        token = api.extract_token(data, self._time())
        self._update_token(token)
        _LOGGER.info("Successfully refreshed Netatmo access token")
        return token

    def _update_token(self, token: Token) -> None:
        self._token = token
        if self._on_token_update is not None:
            self._on_token_update(token)


class NetatmoPoller:
    """Runs a fetch-and-publish cycle on a fixed interval.

    ``start`` is idempotent: a transport that reconnects may call it again
    without arming a second timer. ``stop`` only affects future ticks; a
    cycle already in flight runs to completion, and a following ``start``
    waits for it before running its first cycle. Ticks are a fixed
    ``interval`` apart, measured from the start of each cycle. Cycle
    errors are not handled here, they end the polling task and are raised
    from ``async_wait``.
    """

    def __init__(
        self,
        client: api.NetatmoApiClient,
        publish: Callable[[Measurement], None],
        get_favorites: bool = False,
        interval: float = POLL_INTERVAL,
    ) -> None:
        self._client = client
        self._publish = publish
        self._get_favorites = get_favorites
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._stopping_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        self._failure: asyncio.Future[None] | None = None

    @property
    def running(self) -> bool:
        """Return True if the polling timer is armed."""
        return self._task is not None

    def start(self) -> None:
        """Run a cycle now and then every interval, unless already running."""
        if self._task is not None:
            _LOGGER.debug("Netatmo poller already running")
            return

        previous = self._stopping_task
        self._stopping_task = None
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._task = asyncio.create_task(
            self._async_poll_loop(stop_event, previous)
        )
        self._task.add_done_callback(self._handle_task_done)
        _LOGGER.info("Netatmo poller started")

    def stop(self) -> None:
        """Cancel future ticks. Safe to call when already stopped."""
        if self._task is None:
            return

        if self._stop_event is not None:
            self._stop_event.set()
        if not self._task.done():
            self._stopping_task = self._task
        self._task = None
        self._stop_event = None
        _LOGGER.info("Netatmo poller stopped")

    async def async_stop(self) -> None:
        """Stop polling and wait for an in-flight cycle to finish.

        A failure that nobody is waiting for any more is logged here.
        """
        task = self._task or self._stopping_task
        self.stop()
        if task is not None and not task.done():
            await asyncio.wait([task])
        self._stopping_task = None

        failure, self._failure = self._failure, None
        if failure is not None and failure.done() and not failure.cancelled():
            _LOGGER.warning(
                "Netatmo poll cycle failed while stopping: %s", failure.exception()
            )

    async def async_wait(self) -> None:
        """Wait until a poll cycle fails and raise its error."""
        failure = self._get_failure()
        try:
            await asyncio.shield(failure)
        finally:
            if failure.done() and self._failure is failure:
                self._failure = None

    async def async_poll(self) -> None:
        """Fetch all devices once and publish their measurements."""
        _LOGGER.debug("Get Netatmo devices data")

        homecoaches = await self._client.async_get_homecoach_data()
        for homecoach in homecoaches:
            _LOGGER.debug("Home coach data: %s", homecoach)
            self._publish(normalizer.process_homecoach(homecoach))

        stations = await self._client.async_get_stations_data(
            get_favorites=self._get_favorites
        )
        for station in stations:
            _LOGGER.debug("Station data: %s", station)
            for measurement in normalizer.process_station(station):
                self._publish(measurement)

    async def _async_poll_loop(
        self,
        stop_event: asyncio.Event,
        previous: asyncio.Task[None] | None,
    ) -> None:
        if previous is not None and not previous.done():
            _LOGGER.debug("Waiting for the previous Netatmo poll cycle to finish")
            await asyncio.wait([previous])

        loop = asyncio.get_running_loop()
        while not stop_event.is_set():
            started = loop.time()
            await self.async_poll()
            delay = max(0.0, self._interval - (loop.time() - started))
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue

    def _handle_task_done(self, task: asyncio.Task[None]) -> None:
        if self._task is task:
            self._task = None
            self._stop_event = None
        if self._stopping_task is task:
            self._stopping_task = None

        if task.cancelled():
            return

        err = task.exception()
        if err is None:
            return

        failure = self._get_failure()
        if not failure.done():
            failure.set_exception(err)

    def _get_failure(self) -> asyncio.Future[None]:
        if self._failure is None:
            self._failure = asyncio.get_running_loop().create_future()
        return self._failure
