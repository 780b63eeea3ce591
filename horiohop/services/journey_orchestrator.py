# horiohop/services/journey_orchestrator.py

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set

from horiohop.core.logger import logger
from horiohop.models.journey import (
    Direction,
    JourneyPhase,
    JourneySnapshot,
    PointOfInterest,
    RouteSelection,
)
from horiohop.models.routing import Coordinate, Itinerary
from horiohop.services.origin_resolver import GeolocationProvider, OriginResolver
from horiohop.services.routing_client import RoutingClient


class InvalidRouteSelection(ValueError):
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JourneyOrchestrator:
    """
    Owns the journey state of one session:
    - tracks the origin (through the OriginResolver) and the selected point of interest
    - fetches forward and return itineraries whenever either of them changes
    - exposes a single selected itinerary for display

    Actions must be called from the running event loop; fetches run as
    background tasks. Each fetch is tagged with a generation number and the
    (point of interest, origin) it was issued for, and its result is dropped
    if a newer selection or origin superseded it in the meantime.
    """

    def __init__(
        self,
        routing_client: RoutingClient,
        origin_resolver: OriginResolver | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.routing_client = routing_client
        self.origin_resolver = origin_resolver or OriginResolver()
        self.clock = clock

        self._point_of_interest: Optional[PointOfInterest] = None
        self._routes_forward: List[Itinerary] = []
        self._routes_return: List[Itinerary] = []
        self._loading = False
        self._error: Optional[str] = None
        self._selected_route: Optional[RouteSelection] = None

        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------ #
    # Read API
    # ------------------------------------------------------------------ #

    @property
    def origin(self) -> Optional[Coordinate]:
        return self.origin_resolver.origin

    @property
    def phase(self) -> JourneyPhase:
        if self._point_of_interest is None:
            return JourneyPhase.NO_SELECTION
        if self.origin is None:
            return JourneyPhase.NO_ORIGIN
        if self._loading:
            return JourneyPhase.LOADING
        if self._error is not None:
            return JourneyPhase.ERROR
        return JourneyPhase.READY

    def routes(self, direction: Direction) -> List[Itinerary]:
        if direction is Direction.FORWARD:
            return list(self._routes_forward)
        return list(self._routes_return)

    def selected_itinerary(self) -> Optional[Itinerary]:
        if self._selected_route is None:
            return None
        return self.routes(self._selected_route.direction)[self._selected_route.index]

    def snapshot(self) -> JourneySnapshot:
        resolver = self.origin_resolver
        return JourneySnapshot(
            phase=self.phase,
            origin=self.origin,
            origin_source=resolver.source,
            selected_city=resolver.selected_city,
            location_error=resolver.location_error,
            selected_point_of_interest=self._point_of_interest,
            routes_forward=list(self._routes_forward),
            routes_return=list(self._routes_return),
            loading=self._loading,
            error=self._error,
            selected_route=self._selected_route,
        )

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    async def report_device_location(self, provider: GeolocationProvider) -> None:
        before = self.origin
        await self.origin_resolver.resolve_device_location(provider)
        self._on_origin_changed(before)

    def choose_city(self, city: Optional[str]) -> None:
        before = self.origin
        self.origin_resolver.choose_city(city)
        self._on_origin_changed(before)

    def select_point_of_interest(self, poi: Optional[PointOfInterest]) -> None:
        """
        Select a destination, or None to clear the selection.

        With a known origin this starts fetching routes in both directions.
        """
        self._point_of_interest = poi
        self._invalidate()

        if poi is None:
            logger.info("Point of interest cleared")
            return

        if self.origin is None:
            logger.info(f"Selected {poi.id} but no origin is known yet; waiting for one")
            return

        self._start_fetch()

    def toggle_route(self, direction: Direction, index: int) -> Optional[RouteSelection]:
        """
        Select an itinerary for display. Selecting the current one again deselects it.
        """
        routes = self._routes_forward if direction is Direction.FORWARD else self._routes_return
        if not 0 <= index < len(routes):
            raise InvalidRouteSelection(
                f"No {direction.value} itinerary at index {index} ({len(routes)} available)"
            )

        selection = RouteSelection(direction=direction, index=index)
        if self._selected_route == selection:
            self._selected_route = None
        else:
            self._selected_route = selection
        return self._selected_route

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.routing_client.aclose()
        logger.info("Journey session closed")

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _on_origin_changed(self, before: Optional[Coordinate]) -> None:
        origin = self.origin
        if origin == before:
            return

        logger.info(f"Origin changed from {before} to {origin}")
        if self._point_of_interest is None:
            return

        if origin is None:
            self._invalidate()
        else:
            self._start_fetch()

    def _invalidate(self) -> None:
        # Bumping the generation makes any in-flight fetch stale
        self._generation += 1
        self._routes_forward = []
        self._routes_return = []
        self._selected_route = None
        self._loading = False
        self._error = None

    def _start_fetch(self) -> None:
        self._invalidate()
        self._loading = True

        poi = self._point_of_interest
        origin = self.origin
        generation = self._generation

        task = asyncio.get_running_loop().create_task(self._fetch_routes(generation, poi, origin))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _is_current(self, generation: int, poi: PointOfInterest, origin: Coordinate) -> bool:
        return (
            generation == self._generation
            and self._point_of_interest == poi
            and self.origin == origin
        )

    async def _fetch_routes(self, generation: int, poi: PointOfInterest, origin: Coordinate) -> None:
        destination = poi.coordinate
        departure_time = self.clock()
        logger.info(f"Fetching routes for {poi.id} (generation {generation})")

        try:
            routes_forward, routes_return = await asyncio.gather(
                self.routing_client.plan(origin, destination, departure_time),
                self.routing_client.plan(destination, origin, departure_time),
            )
        except Exception as exc:
            if not self._is_current(generation, poi, origin):
                logger.info(f"Discarding failed stale fetch for {poi.id} (generation {generation})")
                return
            logger.exception(f"Route fetch for {poi.id} failed: {exc}")
            self._routes_forward = []
            self._routes_return = []
            self._loading = False
            self._error = str(exc) or "Failed to fetch routes"
            return

        if not self._is_current(generation, poi, origin):
            logger.info(
                f"Discarding stale routes for {poi.id} "
                f"(generation {generation}, current {self._generation})"
            )
            return

        self._routes_forward = list(routes_forward)
        self._routes_return = list(routes_return)
        self._loading = False
        self._error = None
        logger.info(
            f"Routes ready for {poi.id}: {len(self._routes_forward)} forward, "
            f"{len(self._routes_return)} return"
        )
