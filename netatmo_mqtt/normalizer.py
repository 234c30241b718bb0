"""Normalization of Netatmo device payloads into flat measurements.

Netatmo reports sensor values in a per-device ``dashboard_data`` object
whose keys vary with the device kind (indoor station, outdoor, rain and
wind modules, home coach). ``normalize_dashboard`` maps the known keys
to the canonical measurement names published on MQTT. The ``process_*``
functions walk the device tree and attach device information.

Owned stations yield one measurement for the station and one per module.
Favorite stations yield a single measurement merging every module with
the station itself.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from .models import FavoriteStation, HomeCoach, Measurement, OwnedStation, Station

_LOGGER = logging.getLogger(__name__)

# (vendor key, canonical key, secondary (vendor key, canonical key) pairs)
# Secondary pairs are only read when the primary key is present.
FIELD_TABLE: list[tuple[str, str, tuple[tuple[str, str], ...]]] = [
    # Temperature
    ("Temperature", "temperature", ()),
    ("temp_trend", "temptrend", ()),
    ("min_temp", "mintemp", (("date_min_temp", "mintemputc"),)),
    ("max_temp", "maxtemp", (("date_max_temp", "maxtemputc"),)),
    # Pressure
    ("Pressure", "pressure", ()),
    ("AbsolutePressure", "pressureabs", ()),
    ("pressure_trend", "pressuretrend", ()),
    ("Humidity", "humidity", ()),
    ("CO2", "co2", ()),
    ("Noise", "noise", ()),
    # Rain
    ("Rain", "rain", ()),
    ("sum_rain_1", "sumrain1", ()),
    ("sum_rain_24", "sumrain24", ()),
    # Wind
    ("WindStrength", "windstrength", ()),
    ("WindAngle", "windangle", ()),
    (
        "max_wind_str",
        "windstrenghtmax",
        (("max_wind_angle", "windanglemax"), ("date_max_wind_str", "windmaxutc")),
    ),
    ("GustStrength", "guststrength", ()),
    ("GustAngle", "gustangle", ()),
    # Home coach
    ("health_idx", "healthidx", ()),
    ("time_utc", "timeutc", ()),
]


def normalize_dashboard(dashboard_data: dict[str, Any] | None) -> Measurement:
    """Map a device dashboard snapshot to canonical measurement fields.

    Args:
        dashboard_data: Raw ``dashboard_data`` object, may be None.

    Returns:
        Measurement holding only the known fields present in the snapshot.

    """
    measurement: Measurement = {}
    if dashboard_data is None:
        return measurement

    for vendor_key, canonical_key, secondary in FIELD_TABLE:
        if vendor_key not in dashboard_data:
            continue
        measurement[canonical_key] = dashboard_data[vendor_key]
        for secondary_vendor_key, secondary_canonical_key in secondary:
            if secondary_vendor_key in dashboard_data:
                measurement[secondary_canonical_key] = dashboard_data[
                    secondary_vendor_key
                ]

    return measurement


def _attach(measurement: Measurement, **fields: Any) -> Measurement:
    """Add device information to a measurement, skipping missing values."""
    measurement.update({k: v for k, v in fields.items() if v is not None})
    return measurement


def process_homecoach(homecoach: HomeCoach) -> Measurement:
    """Build the measurement of a Healthy Home Coach."""
    return _attach(
        normalize_dashboard(homecoach.dashboard_data),
        id=homecoach.id,
        name=homecoach.name,
        type=homecoach.type,
        module=homecoach.module_name,
        online=1 if homecoach.reachable else 0,
        wifistatus=homecoach.wifi_status,
    )


def process_owned_station(station: OwnedStation) -> Iterator[Measurement]:
    """Yield the station measurement followed by one per module."""
    yield _attach(
        normalize_dashboard(station.dashboard_data),
        id=station.id,
        name=station.name,
        type=station.type,
        online=1 if station.reachable else 0,
        wifistatus=station.wifi_status,
        favorite=0,
    )

    if not station.modules:
        _LOGGER.warning("Station %s has no modules", station.name)
        return

    for module in station.modules:
        yield _attach(
            normalize_dashboard(module.dashboard_data),
            id=module.id,
            type=module.type,
            online=1 if module.reachable else 0,
            name=module.name,
            home=station.home_name,
            rfstatus=module.rf_status,
            battery=module.battery_percent,
        )


def process_favorite_station(station: FavoriteStation) -> Measurement:
    """Merge a favorite station and its modules into one measurement.

    Later modules overwrite earlier ones, the station's own fields
    overwrite every module.
    """
    station_measurement = _attach(
        normalize_dashboard(station.dashboard_data),
        id=station.id,
        name=station.name,
        type=station.type,
        online=1 if station.reachable else 0,
        favorite=1,
    )

    if not station.modules:
        _LOGGER.warning("Station %s has no modules", station.name)

    merged: Measurement = {}
    for module in station.modules:
        merged.update(normalize_dashboard(module.dashboard_data))
    merged.update(station_measurement)
    return merged


def process_station(station: Station) -> Iterator[Measurement]:
    """Yield the measurements published for an owned or favorite station."""
    if isinstance(station, FavoriteStation):
        yield process_favorite_station(station)
    else:
        yield from process_owned_station(station)
