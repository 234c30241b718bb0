"""API client for the Netatmo cloud.

This module provides functions to interact with the Netatmo API,
including token exchange, authenticated requests with a single
re-authentication retry, and parsing of station and home coach data.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from .const import (
    BASE_URL,
    ERROR_CODE_ACCESS_TOKEN_EXPIRED,
    GRANT_TYPE_REFRESH_TOKEN,
    HTTP_GET,
    HTTP_POST,
    PATH_AUTH,
    PATH_HOMECOACHS_DATA,
    PATH_STATIONS_DATA,
    TOKEN_ACCESS_TOKEN,
    TOKEN_EXPIRES_IN,
    TOKEN_REFRESH_TOKEN,
)
from .models import FavoriteStation, HomeCoach, Module, OwnedStation, Station, Token

if TYPE_CHECKING:
    from .coordinator import NetatmoTokenManager

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403


class NetatmoApiClientError(Exception):
    """Base exception for Netatmo API client errors."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.path = path


class NetatmoApiAuthError(NetatmoApiClientError):
    """Exception raised when the vendor reports an expired access token."""


class NetatmoApiConnectionError(NetatmoApiClientError):
    """Exception raised when no HTTP response was received."""


class NetatmoTokenMissingError(NetatmoApiClientError):
    """Exception raised when a request needs an access token and none is held."""


class NetatmoInvalidTokenError(NetatmoApiClientError):
    """Exception raised when a token response lacks required fields."""


def create_headers(access_token: str | None = None) -> dict[str, str]:
    """Create HTTP headers for Netatmo API requests.

    Args:
        access_token: Optional bearer token to include in headers.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    headers = {"accept": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error."""
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates an authentication error.

    Args:
        status: HTTP status code to check.

    Returns:
        True if status code is 401 or 403, False otherwise.

    """
    return status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN)


def is_token_expired_error(status: int, data: dict[str, Any]) -> bool:
    """Check if an error response reports an expired access token.

    Args:
        status: HTTP status code of the response.
        data: Parsed error payload.

    Returns:
        True if the status is 401/403 and the vendor error code is 3.

    """
    if not is_auth_error(status):
        return False
    error = data.get("error")
    return isinstance(error, dict) and error.get("code") == ERROR_CODE_ACCESS_TOKEN_EXPIRED


def extract_error_detail(data: dict[str, Any]) -> str | None:
    """Extract the most descriptive error text from a vendor error payload.

    The OAuth endpoint answers with ``error_description``, the data
    endpoints with ``{"error": {"code": ..., "message": ...}}``.
    """
    if data.get("error_description"):
        return str(data["error_description"])
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if error:
        return json.dumps(error)
    return None


def _parse_error_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def validate_response(response: httpx.Response, path: str) -> dict[str, Any]:
    """Validate HTTP response and return parsed JSON data.

    Args:
        response: HTTP response object to validate.
        path: API path, used in error messages.

    Returns:
        Parsed JSON data from response.

    Raises:
        NetatmoApiAuthError: If the access token has expired.
        NetatmoApiClientError: If any other API error is detected.

    """
    status = response.status_code
    if is_http_error(status):
        data = _parse_error_payload(response)
        detail = extract_error_detail(data) or response.reason_phrase
        message = f"HTTP request {path} failed: {detail} ({status})"
        if is_token_expired_error(status, data):
            raise NetatmoApiAuthError(message, status, path)
        raise NetatmoApiClientError(message, status, path)

    try:
        return response.json()
    except ValueError as err:
        message = f"HTTP request {path} failed: invalid JSON response ({status})"
        raise NetatmoApiClientError(message, status, path) from err


def extract_token(data: dict[str, Any], now: float | None = None) -> Token:
    """Build a Token from a token endpoint response.

    Args:
        data: Response containing access_token, refresh_token and expires_in.
        now: Reference time in epoch seconds, defaults to the current time.

    Returns:
        Token with an absolute expiration timestamp.

    Raises:
        NetatmoInvalidTokenError: If any required field is missing or empty.

    """
    access_token = data.get(TOKEN_ACCESS_TOKEN)
    refresh_token = data.get(TOKEN_REFRESH_TOKEN)
    expires_in = data.get(TOKEN_EXPIRES_IN)

    if not access_token or not refresh_token or not expires_in or expires_in <= 0:
        error_msg = "Invalid Netatmo token"
        raise NetatmoInvalidTokenError(error_msg, path=PATH_AUTH)

    if now is None:
        now = time.time()
    return Token(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=int(now) + int(expires_in),
    )


def _extract_module(data: dict[str, Any]) -> Module:
    return Module(
        id=data["_id"],
        name=data.get("module_name"),
        type=data.get("type"),
        reachable=bool(data.get("reachable")),
        rf_status=data.get("rf_status"),
        battery_percent=data.get("battery_percent"),
        dashboard_data=data.get("dashboard_data"),
    )


def extract_station(data: dict[str, Any]) -> Station:
    """Build an OwnedStation or FavoriteStation from a raw device entry."""
    modules = [_extract_module(m) for m in data.get("modules") or []]

    if data.get("favorite"):
        return FavoriteStation(
            id=data["_id"],
            name=(data.get("place") or {}).get("city"),
            type=data.get("type"),
            reachable=bool(data.get("reachable")),
            dashboard_data=data.get("dashboard_data"),
            modules=modules,
        )

    return OwnedStation(
        id=data["_id"],
        name=data.get("station_name"),
        type=data.get("type"),
        reachable=bool(data.get("reachable")),
        wifi_status=data.get("wifi_status"),
        home_name=data.get("home_name"),
        dashboard_data=data.get("dashboard_data"),
        modules=modules,
    )


def extract_stations(data: dict[str, Any]) -> list[Station]:
    """Extract weather stations from a getstationsdata response.

    Args:
        data: API response data dictionary.

    Returns:
        List of OwnedStation and FavoriteStation objects.

    """
    devices = data.get("body", {}).get("devices", [])
    return [extract_station(d) for d in devices]


def extract_homecoaches(data: dict[str, Any]) -> list[HomeCoach]:
    """Extract home coaches from a gethomecoachsdata response."""
    devices = data.get("body", {}).get("devices", [])
    return [
        HomeCoach(
            id=d["_id"],
            name=d.get("station_name"),
            type=d.get("type"),
            module_name=d.get("module_name"),
            reachable=bool(d.get("reachable")),
            wifi_status=d.get("wifi_status"),
            dashboard_data=d.get("dashboard_data"),
        )
        for d in devices
    ]


def create_session_client(timeout: float | None) -> httpx.AsyncClient:
    """Create HTTP client for the Netatmo API.

    Args:
        timeout: Per-request timeout in seconds, None to wait indefinitely.

    Returns:
        Configured httpx AsyncClient.

    """
    return httpx.AsyncClient(timeout=timeout)


async def async_request(
    session: httpx.AsyncClient,
    method: str,
    path: str,
    params: dict[str, Any] | None = None,
    data: dict[str, Any] | None = None,
    access_token: str | None = None,
) -> dict[str, Any]:
    """Send a single request to the Netatmo API.

    Args:
        session: HTTP client session.
        method: HTTP method ("GET", "POST").
        path: API path (example: "/api/getstationsdata").
        params: Parameters sent as query string, None values are dropped.
        data: Fields sent as a form-url-encoded body.
        access_token: Bearer token for authenticated calls.

    Returns:
        Parsed JSON response.

    Raises:
        NetatmoApiAuthError: If the access token has expired.
        NetatmoApiConnectionError: If no response was received.
        NetatmoApiClientError: If the API rejected the request.

    """
    url = f"{BASE_URL}{path}"
    query = {k: v for k, v in params.items() if v is not None} if params else None

    try:
        response = await session.request(
            method,
            url,
            params=query,
            data=data,
            headers=create_headers(access_token),
        )
    except httpx.RequestError as err:
        message = f"HTTP request {path} failed: {str(err) or type(err).__name__}"
        raise NetatmoApiConnectionError(message, path=path) from err

    return validate_response(response, path)


async def async_refresh_token(
    session: httpx.AsyncClient,
    client_id: str,
    client_secret: str,
    refresh_token: str,
) -> dict[str, Any]:
    """Exchange a refresh token for a new token pair.

    Returns:
        Raw token endpoint response.

    Raises:
        NetatmoApiClientError: If the token exchange is rejected.

    """
    _LOGGER.debug("Requesting new token from Netatmo API")
    return await async_request(
        session,
        HTTP_POST,
        PATH_AUTH,
        data={
            "grant_type": GRANT_TYPE_REFRESH_TOKEN,
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
        },
    )


class NetatmoApiClient:
    """Authenticated Netatmo API client.

    Every call goes through ``async_request`` which attaches the current
    access token and, when the vendor reports it expired, refreshes it
    through the token manager and retries the call exactly once.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        token_manager: NetatmoTokenManager,
    ) -> None:
        self._session = session
        self._token_manager = token_manager

    async def async_request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        *,
        is_retry: bool = False,
    ) -> dict[str, Any]:
        """Send an authenticated request, re-authenticating once on token expiry.

        Raises:
            NetatmoTokenMissingError: If no access token is held.
            NetatmoApiAuthError: If the token is still rejected after the retry.
            NetatmoApiConnectionError: If no response was received.
            NetatmoApiClientError: If the API rejected the request.

        """
        access_token = None
        if path != PATH_AUTH:
            access_token = self._token_manager.access_token
            if not access_token:
                error_msg = "Access token must be provided"
                raise NetatmoTokenMissingError(error_msg, path=path)

        try:
            return await async_request(
                self._session, method, path, params, data, access_token
            )
        except NetatmoApiAuthError:
            if is_retry:
                raise
            _LOGGER.info("Access token expired, refreshing before retrying %s", path)
            self._token_manager.invalidate_access_token()
            await self._token_manager.async_ensure_valid()
            return await self.async_request(method, path, params, data, is_retry=True)

    async def async_get_stations_data(
        self,
        device_id: str | None = None,
        get_favorites: bool = False,
    ) -> list[Station]:
        """Fetch the user's weather stations.

        Args:
            device_id: Optional weather station MAC address.
            get_favorites: Also return the user's favorite stations.

        Returns:
            List of OwnedStation and FavoriteStation objects.

        """
        params = {"device_id": device_id, "get_favorites": get_favorites}
        data = await self.async_request(HTTP_GET, PATH_STATIONS_DATA, params)
        stations = extract_stations(data)
        _LOGGER.debug("Retrieved %d stations from Netatmo API", len(stations))
        return stations

    async def async_get_homecoach_data(
        self,
        device_id: str | None = None,
    ) -> list[HomeCoach]:
        """Fetch the user's Healthy Home Coach devices.

        Args:
            device_id: Optional home coach MAC address.

        Returns:
            List of HomeCoach objects.

        """
        params = {"device_id": device_id}
        data = await self.async_request(HTTP_GET, PATH_HOMECOACHS_DATA, params)
        homecoaches = extract_homecoaches(data)
        _LOGGER.debug("Retrieved %d home coaches from Netatmo API", len(homecoaches))
        return homecoaches
