"""Pytest configuration and fixtures for Netatmo MQTT bridge tests."""

import time

import pytest

from netatmo_mqtt.models import Token


@pytest.fixture
def valid_token() -> Token:
    """Fixture providing a token that expires in one hour."""
    return Token(
        access_token="valid_access",
        refresh_token="valid_refresh",
        expires_at=int(time.time()) + 3600,
    )


@pytest.fixture
def expired_token() -> Token:
    """Fixture providing a token that expired one minute ago."""
    return Token(
        access_token="expired_access",
        refresh_token="expired_refresh",
        expires_at=int(time.time()) - 60,
    )


@pytest.fixture
def sample_token_response() -> dict:
    """Fixture providing a sample token endpoint response."""
    return {
        "access_token": "new_access",
        "refresh_token": "new_refresh",
        "expires_in": 10800,
        "scope": ["read_station", "read_homecoach"],
    }


@pytest.fixture
def sample_expired_token_error() -> dict:
    """Fixture providing the vendor error for an expired access token."""
    return {"error": {"code": 3, "message": "Access token expired"}}


@pytest.fixture
def sample_stations_response() -> dict:
    """Fixture providing an owned station with two modules.

    Returns:
        A dictionary representing a getstationsdata API response.

    """
    return {
        "body": {
            "devices": [
                {
                    "_id": "S1",
                    "station_name": "Home",
                    "home_name": "Home",
                    "type": "NAMain",
                    "reachable": True,
                    "wifi_status": 56,
                    "dashboard_data": {
                        "time_utc": 1700000000,
                        "Temperature": 21.5,
                        "CO2": 650,
                        "Humidity": 45,
                        "Noise": 38,
                        "Pressure": 1013.2,
                        "AbsolutePressure": 1001.1,
                        "min_temp": 20.1,
                        "date_min_temp": 1699990000,
                        "temp_trend": "stable",
                    },
                    "modules": [
                        {
                            "_id": "M1",
                            "module_name": "Outdoor",
                            "type": "NAModule1",
                            "reachable": True,
                            "rf_status": 70,
                            "battery_percent": 80,
                            "dashboard_data": {
                                "time_utc": 1700000010,
                                "Temperature": 7.3,
                                "Humidity": 88,
                            },
                        },
                        {
                            "_id": "M2",
                            "module_name": "Rain gauge",
                            "type": "NAModule3",
                            "reachable": False,
                            "rf_status": 90,
                            "battery_percent": 55,
                            "dashboard_data": {
                                "time_utc": 1700000020,
                                "Rain": 0.2,
                                "sum_rain_1": 0.4,
                                "sum_rain_24": 3.1,
                            },
                        },
                    ],
                },
            ],
        },
    }


@pytest.fixture
def sample_favorite_station() -> dict:
    """Fixture providing a raw favorite station entry with two modules."""
    return {
        "_id": "F1",
        "station_name": "Someone else's station",
        "favorite": True,
        "type": "NAMain",
        "reachable": True,
        "place": {"city": "Lyon", "country": "FR"},
        "dashboard_data": {"time_utc": 1700000100, "Pressure": 1015.0},
        "modules": [
            {
                "_id": "F1-M1",
                "type": "NAModule1",
                "reachable": True,
                "dashboard_data": {"time_utc": 1700000090, "Temperature": 9.0},
            },
            {
                "_id": "F1-M2",
                "type": "NAModule2",
                "reachable": True,
                "dashboard_data": {
                    "time_utc": 1700000095,
                    "WindStrength": 12,
                    "WindAngle": 270,
                },
            },
        ],
    }


@pytest.fixture
def sample_homecoach_response() -> dict:
    """Fixture providing a sample gethomecoachsdata API response."""
    return {
        "body": {
            "devices": [
                {
                    "_id": "H1",
                    "station_name": "Bedroom",
                    "module_name": "Bedroom coach",
                    "type": "NHC",
                    "reachable": True,
                    "wifi_status": 42,
                    "dashboard_data": {
                        "time_utc": 1700000200,
                        "Temperature": 19.8,
                        "CO2": 900,
                        "Humidity": 50,
                        "Noise": 35,
                        "Pressure": 1012.0,
                        "AbsolutePressure": 1000.0,
                        "health_idx": 1,
                    },
                },
            ],
        },
    }
