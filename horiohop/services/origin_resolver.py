# horiohop/services/origin_resolver.py

from typing import Dict, Optional, Protocol

from horiohop.core.logger import logger
from horiohop.models.journey import OriginSource
from horiohop.models.routing import Coordinate

# Fallback origins when the device position is unavailable
REFERENCE_CITIES: Dict[str, Coordinate] = {
    "Nicosia": Coordinate(lat=35.1856, lng=33.3823),
    "Limassol": Coordinate(lat=34.6823, lng=33.0464),
    "Larnaca": Coordinate(lat=34.9229, lng=33.6233),
    "Paphos": Coordinate(lat=34.7754, lng=32.4245),
}


class GeolocationError(Exception):
    """The device position could not be obtained (denied, failed, unsupported)."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnknownCityError(ValueError):
    pass


class GeolocationProvider(Protocol):
    async def current_position(self) -> Coordinate: ...


class FixedGeolocation:
    """A position already known, e.g. reported by the client or configured."""

    def __init__(self, coordinate: Coordinate) -> None:
        self.coordinate = coordinate

    async def current_position(self) -> Coordinate:
        return self.coordinate


class UnavailableGeolocation:
    def __init__(self, reason: str = "Geolocation not supported") -> None:
        self.reason = reason

    async def current_position(self) -> Coordinate:
        raise GeolocationError(self.reason)


class OriginResolver:
    """
    Decides where journeys start.

    The device position is queried once per session and then held fixed.
    A chosen reference city is only used while no device position exists.
    """

    def __init__(self) -> None:
        self.device_location: Optional[Coordinate] = None
        self.location_error: Optional[str] = None
        self.selected_city: Optional[str] = None
        self.attempted = False

    @property
    def origin(self) -> Optional[Coordinate]:
        if self.device_location is not None:
            return self.device_location
        if self.selected_city is not None:
            return REFERENCE_CITIES[self.selected_city]
        return None

    @property
    def source(self) -> OriginSource:
        if self.device_location is not None:
            return OriginSource.DEVICE
        if self.selected_city is not None:
            return OriginSource.CITY
        return OriginSource.NONE

    async def resolve_device_location(self, provider: GeolocationProvider) -> Optional[Coordinate]:
        """
        Query the device position. Only the first call per session does anything.
        """
        if self.attempted:
            logger.debug("Device location already resolved for this session; ignoring")
            return self.device_location

        self.attempted = True
        try:
            position = await provider.current_position()
        except GeolocationError as exc:
            self.location_error = exc.reason
            logger.info(f"Device location unavailable: {exc.reason}")
            return None

        self.device_location = position
        self.location_error = None
        logger.info(f"Device location resolved to ({position.lat:.5f}, {position.lng:.5f})")
        return position

    def choose_city(self, city: Optional[str]) -> None:
        """
        Pick a reference city as fallback origin, or None to drop the choice.
        """
        if city is not None and city not in REFERENCE_CITIES:
            raise UnknownCityError(f"Unknown city '{city}'. Known cities: {', '.join(REFERENCE_CITIES)}")
        self.selected_city = city
