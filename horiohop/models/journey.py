# horiohop/models/journey.py

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from horiohop.models.routing import Coordinate, Itinerary


class PointOfInterest(BaseModel):
    """
    Reference to a selectable destination (a village).
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)


class Direction(str, Enum):
    FORWARD = "forward"
    RETURN = "return"


class RouteSelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    direction: Direction
    index: int = Field(ge=0)


class OriginSource(str, Enum):
    DEVICE = "device"
    CITY = "city"
    NONE = "none"


class JourneyPhase(str, Enum):
    NO_ORIGIN = "no_origin"
    NO_SELECTION = "no_selection"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class JourneySnapshot(BaseModel):
    """
    Read-only view of the journey session state.

    routes_forward go from the origin to the selected point of interest,
    routes_return come back.
    """
    model_config = ConfigDict(frozen=True)

    phase: JourneyPhase
    origin: Optional[Coordinate] = None
    origin_source: OriginSource = OriginSource.NONE
    selected_city: Optional[str] = None
    location_error: Optional[str] = None
    selected_point_of_interest: Optional[PointOfInterest] = None
    routes_forward: List[Itinerary] = []
    routes_return: List[Itinerary] = []
    loading: bool = False
    error: Optional[str] = None
    selected_route: Optional[RouteSelection] = None


class LocationReport(BaseModel):
    """
    Outcome of the client's one-shot geolocation query: a position or an error reason.
    """
    lat: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    lng: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    error: Optional[str] = None

    @model_validator(mode="after")
    def _position_or_error(self) -> "LocationReport":
        has_position = self.lat is not None and self.lng is not None
        if has_position == (self.error is not None):
            raise ValueError("Provide either lat and lng, or an error reason")
        return self


class CitySelection(BaseModel):
    city: Optional[str] = None
