# horiohop/services/routing_client.py

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

from horiohop.core.config import Settings, settings as default_settings
from horiohop.core.logger import logger
from horiohop.models.routing import (
    Coordinate,
    Itinerary,
    Leg,
    LegMode,
    Place,
    PlanResult,
    PlanStatus,
)
from horiohop.services.polyline import decode_polyline_list

# Status the routing engine uses when no connection exists between the places.
NO_ROUTE_STATUS = 404
WALK_MARKER = "WALK"


class RoutingClient:
    """
    Journey-planning client for the routing engine:
    - builds the /plan query for origin, destination and departure time
    - maps the raw itineraries into the internal Itinerary model
    - never raises; failures come back as an empty itinerary list
    """

    def __init__(
        self,
        config: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or default_settings
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            base_url=self.config.ROUTING_BASE_URL,
            timeout=self.config.ROUTING_TIMEOUT_S,
        )
        logger.info(f"RoutingClient initialised for {self.config.ROUTING_BASE_URL}")

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def plan(
        self,
        origin: Coordinate,
        destination: Coordinate,
        departure_time: datetime,
    ) -> List[Itinerary]:
        """
        Itineraries from origin to destination leaving at departure_time.

        An empty list means either that no route exists or that the query
        failed; use plan_result() to tell the two apart.
        """
        result = await self.plan_result(origin, destination, departure_time)
        return result.itineraries

    async def plan_result(
        self,
        origin: Coordinate,
        destination: Coordinate,
        departure_time: datetime,
    ) -> PlanResult:
        params = self.build_params(origin, destination, departure_time)

        try:
            response = await self.http_client.get(self.config.ROUTING_PLAN_PATH, params=params)
        except httpx.HTTPError as exc:
            logger.error(f"Routing engine request failed: {exc!r}")
            return PlanResult(status=PlanStatus.TRANSIENT_FAILURE, detail=str(exc) or type(exc).__name__)

        if response.status_code == NO_ROUTE_STATUS:
            logger.info(
                f"No route from {params['fromPlace']} to {params['toPlace']} "
                f"(routing engine returned {response.status_code})"
            )
            return PlanResult(status=PlanStatus.NO_ROUTE)

        if not response.is_success:
            logger.error(
                f"Routing engine error: status={response.status_code}, body={response.text[:500]!r}"
            )
            return PlanResult(
                status=PlanStatus.TRANSIENT_FAILURE,
                detail=f"Routing engine error: {response.status_code}",
            )

        try:
            data = response.json()
        except ValueError as exc:
            logger.error(f"Routing engine returned invalid JSON: {exc}")
            return PlanResult(status=PlanStatus.TRANSIENT_FAILURE, detail="Invalid JSON response")

        if not isinstance(data, dict):
            logger.error(f"Routing engine returned unexpected payload type {type(data).__name__}")
            return PlanResult(status=PlanStatus.TRANSIENT_FAILURE, detail="Unexpected response shape")

        raw_itineraries = data.get("itineraries")
        if not raw_itineraries:
            logger.info(f"Routing engine returned no itineraries for {params['fromPlace']} -> {params['toPlace']}")
            return PlanResult(status=PlanStatus.NO_ROUTE)

        try:
            itineraries = [parse_itinerary(raw) for raw in raw_itineraries]
        except Exception as exc:
            logger.exception(f"Failed to map routing engine response: {exc}")
            return PlanResult(status=PlanStatus.TRANSIENT_FAILURE, detail="Malformed itinerary data")

        logger.info(
            f"Planned {len(itineraries)} itineraries {params['fromPlace']} -> {params['toPlace']}"
        )
        return PlanResult(status=PlanStatus.SUCCESS, itineraries=itineraries)

    def build_params(
        self,
        origin: Coordinate,
        destination: Coordinate,
        departure_time: datetime,
    ) -> Dict[str, str]:
        return {
            "fromPlace": origin.as_place_param(),
            "toPlace": destination.as_place_param(),
            "time": format_departure_time(departure_time),
            "arriveBy": "false",
            "numItineraries": str(self.config.ROUTING_NUM_ITINERARIES),
            "pedestrianProfile": self.config.ROUTING_PEDESTRIAN_PROFILE,
            "detailed": "true",
        }

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self.http_client.aclose()


# ---------------------------------------------------------------------- #
# Response mapping
# ---------------------------------------------------------------------- #

def format_departure_time(value: datetime) -> str:
    """
    UTC ISO-8601 with milliseconds and a Z suffix. Naive values are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_itinerary(raw: Dict[str, Any]) -> Itinerary:
    legs = [parse_leg(leg) for leg in raw.get("legs") or []]

    transfers = raw.get("transfers")
    if transfers is None:
        transit_legs = sum(1 for leg in legs if leg.mode is LegMode.TRANSIT)
        transfers = max(0, transit_legs - 1)

    return Itinerary(
        duration=_non_negative_int(raw.get("duration")),
        start_time=raw.get("startTime") or "",
        end_time=raw.get("endTime") or "",
        walk_distance=max(0.0, float(raw.get("walkDistance") or 0)),
        transfers=_non_negative_int(transfers),
        legs=legs,
    )


def parse_leg(raw: Dict[str, Any]) -> Leg:
    geometry = raw.get("legGeometry") or {}
    points = geometry.get("points")

    distance = raw.get("distance")

    return Leg(
        mode=LegMode.WALK if raw.get("mode") == WALK_MARKER else LegMode.TRANSIT,
        from_place=_parse_place(raw.get("from")),
        to_place=_parse_place(raw.get("to")),
        departure_time=raw.get("startTime") or raw.get("departureTime") or "",
        arrival_time=raw.get("endTime") or raw.get("arrivalTime") or "",
        duration=_non_negative_int(raw.get("duration")),
        distance=max(0.0, float(distance)) if distance is not None else None,
        route_short_name=raw.get("routeShortName"),
        route_long_name=raw.get("routeLongName"),
        agency_name=raw.get("agencyName"),
        headsign=raw.get("headsign"),
        polyline=_decode_leg_geometry(points) if isinstance(points, str) and points else [],
    )


def _parse_place(raw: Optional[Dict[str, Any]]) -> Place:
    raw = raw or {}
    stop_id = raw.get("stopId")
    return Place(
        name=raw.get("name") or "Unknown",
        lat=float(raw.get("lat") or 0),
        lng=float(raw.get("lon") or 0),
        stop_id=str(stop_id) if stop_id is not None else None,
    )


def _decode_leg_geometry(points: str) -> List[Tuple[float, float]]:
    """
    Decode a leg's encoded geometry, dropping it when the result is not a usable line.
    """
    polyline = decode_polyline_list(points)

    if len(polyline) < 2:
        logger.warning(f"Discarding leg geometry with {len(polyline)} point(s)")
        return []

    for lat, lng in polyline:
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
            logger.warning(f"Discarding leg geometry with out-of-range point ({lat}, {lng})")
            return []

    return polyline


def _non_negative_int(value: Any) -> int:
    if not value:
        return 0
    return max(0, int(round(float(value))))
