"""Data models for the Netatmo MQTT bridge."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Flat record published for one device, module or favorite station
Measurement = dict[str, Any]


@dataclass(frozen=True)
class Token:
    """Represents an OAuth2 token pair with its absolute expiration timestamp."""

    access_token: str | None
    refresh_token: str | None
    expires_at: int

    def is_valid(self, now: float) -> bool:
        """Return True if the access token is held and not yet expired."""
        return bool(self.access_token) and self.expires_at > now


@dataclass(frozen=True)
class Module:
    """Represents a module attached to an owned or favorite weather station."""

    id: str
    name: str | None
    type: str | None
    reachable: bool
    rf_status: int | None
    battery_percent: int | None
    dashboard_data: dict[str, Any] | None


@dataclass(frozen=True)
class OwnedStation:
    """Represents a weather station belonging to the authenticated user."""

    id: str
    name: str | None
    type: str | None
    reachable: bool
    wifi_status: int | None
    home_name: str | None
    dashboard_data: dict[str, Any] | None
    modules: list[Module] = field(default_factory=list)


@dataclass(frozen=True)
class FavoriteStation:
    """Represents a publicly shared station another user owns.

    Its name is the public location label rather than a user-assigned name.
    """

    id: str
    name: str | None
    type: str | None
    reachable: bool
    dashboard_data: dict[str, Any] | None
    modules: list[Module] = field(default_factory=list)


@dataclass(frozen=True)
class HomeCoach:
    """Represents a Healthy Home Coach indoor air quality monitor."""

    id: str
    name: str | None
    type: str | None
    module_name: str | None
    reachable: bool
    wifi_status: int | None
    dashboard_data: dict[str, Any] | None


Station = OwnedStation | FavoriteStation
