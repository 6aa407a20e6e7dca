"""Pytest configuration for ridebot tests."""

import os
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from ridebot.config import get_settings
from ridebot.models import RideCandidate

BERLIN = ZoneInfo("Europe/Berlin")

# Monday
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=BERLIN)

LEIPZIG = (51.3397, 12.3731)


@pytest.fixture(autouse=True)
def reset_env():
    """Reset environment variables and cached settings between tests."""
    original = os.environ.copy()
    get_settings.cache_clear()
    yield
    os.environ.clear()
    os.environ.update(original)
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    """Fixed clock: Monday 2026-10-19 10:00 Europe/Berlin."""
    return NOW


@pytest.fixture
def make_ride():
    """Factory for RideCandidate built from upstream-style camelCase payloads."""

    def _make(ride_id: str = "ride-1", **overrides: Any) -> RideCandidate:
        payload: dict[str, Any] = {
            "id": ride_id,
            "title": f"Ride {ride_id}",
            "description": None,
            "date": "2026-10-24T09:00:00+02:00",
            "locationName": "Augustusplatz",
            "locationAddress": "Augustusplatz, Leipzig",
            "latitude": LEIPZIG[0],
            "longitude": LEIPZIG[1],
            "attendeeCount": 3,
        }
        payload.update(overrides)
        return RideCandidate.model_validate(payload)

    return _make
