# horiohop/models/routing.py

from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """
    Simple latitude/longitude coordinate.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)

    def as_place_param(self) -> str:
        """Routing engine place format: "lat,lng", plain decimals."""
        return f"{_plain_decimal(self.lat)},{_plain_decimal(self.lng)}"


def _plain_decimal(value: float) -> str:
    # Shortest round-trip digits, never in exponent form: 5e-05 -> "0.00005", 33.0 -> "33"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


class Place(BaseModel):
    """
    Endpoint of a leg as reported by the routing engine.
    """
    model_config = ConfigDict(frozen=True)

    name: str = "Unknown"
    lat: float = 0.0
    lng: float = 0.0
    stop_id: Optional[str] = None


class LegMode(str, Enum):
    WALK = "WALK"
    TRANSIT = "TRANSIT"


class Leg(BaseModel):
    """
    One uninterrupted segment of an itinerary in a single mode.

    polyline is a list of (lat, lng) pairs, either empty (no geometry)
    or with at least two points.
    """
    model_config = ConfigDict(frozen=True)

    mode: LegMode
    from_place: Place
    to_place: Place
    departure_time: str = ""
    arrival_time: str = ""
    duration: int = Field(default=0, ge=0)
    distance: Optional[float] = None
    route_short_name: Optional[str] = None
    route_long_name: Optional[str] = None
    agency_name: Optional[str] = None
    headsign: Optional[str] = None
    polyline: List[Tuple[float, float]] = []


class Itinerary(BaseModel):
    """
    One complete proposed journey composed of ordered legs.
    """
    model_config = ConfigDict(frozen=True)

    duration: int = Field(default=0, ge=0)
    start_time: str = ""
    end_time: str = ""
    walk_distance: float = Field(default=0.0, ge=0)
    transfers: int = Field(default=0, ge=0)
    legs: List[Leg] = []


class PlanStatus(str, Enum):
    SUCCESS = "success"
    NO_ROUTE = "no_route"
    TRANSIENT_FAILURE = "transient_failure"


class PlanResult(BaseModel):
    """
    Outcome of one journey-planning query.

    NO_ROUTE and TRANSIENT_FAILURE both carry an empty itinerary list;
    the status only tells them apart for logging and diagnostics.
    """
    status: PlanStatus
    itineraries: List[Itinerary] = []
    detail: Optional[str] = None
