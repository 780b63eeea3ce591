# tests/conftest.py
import os
import sys

import pytest

# Add the project root directory to sys.path so that "import horiohop" works
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from horiohop.core.config import Settings  # noqa: E402

# Canonical encoded polyline: (38.5, -120.2), (40.7, -120.95), (43.252, -126.453)
REFERENCE_POLYLINE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


def make_leg(mode="BUS", points=None, **overrides):
    leg = {
        "mode": mode,
        "from": {"name": "Nicosia Solomou", "lat": 35.1697, "lon": 33.3591, "stopId": "nic-1"},
        "to": {"name": "Lefkara", "lat": 34.8667, "lon": 33.3, "stopId": "lef-1"},
        "startTime": "2026-01-24T08:00:00Z",
        "endTime": "2026-01-24T09:00:00Z",
        "duration": 3600,
        "distance": 42000.5,
        "routeShortName": "110",
        "routeLongName": "Nicosia - Lefkara",
        "agencyName": "Intercity Buses",
        "headsign": "Lefkara",
    }
    if points is not None:
        leg["legGeometry"] = {"points": points}
    leg.update(overrides)
    return leg


def make_itinerary(legs, **overrides):
    itinerary = {
        "duration": sum(leg.get("duration", 0) for leg in legs),
        "startTime": "2026-01-24T07:50:00Z",
        "endTime": "2026-01-24T09:00:00Z",
        "walkDistance": 600.0,
        "legs": legs,
    }
    itinerary.update(overrides)
    return itinerary


def walk_then_bus():
    return make_itinerary(
        [
            make_leg(mode="WALK", duration=600, routeShortName=None),
            make_leg(mode="BUS", points=REFERENCE_POLYLINE),
        ]
    )


@pytest.fixture
def config(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        ROUTING_BASE_URL="http://motis.test",
        DEMAND_STORE_DIR=str(tmp_path / "store"),
        DEBUG_MODE=True,
    )
