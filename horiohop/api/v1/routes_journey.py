# horiohop/api/v1/routes_journey.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from horiohop.api.deps import get_orchestrator
from horiohop.models.journey import (
    CitySelection,
    JourneySnapshot,
    LocationReport,
    PointOfInterest,
    RouteSelection,
)
from horiohop.models.routing import Coordinate, Itinerary
from horiohop.services.journey_orchestrator import InvalidRouteSelection, JourneyOrchestrator
from horiohop.services.origin_resolver import (
    FixedGeolocation,
    UnavailableGeolocation,
    UnknownCityError,
)

router = APIRouter(
    prefix="/journey",
    tags=["journey"],
)


@router.get("/", response_model=JourneySnapshot, summary="Current journey state")
async def get_journey(
    wait: bool = False,
    journey: JourneyOrchestrator = Depends(get_orchestrator),
) -> JourneySnapshot:
    """
    Current journey state. With wait=true, answers once no fetch is in flight.
    """
    if wait:
        await journey.wait_idle()
    return journey.snapshot()


@router.post("/location", response_model=JourneySnapshot, summary="Report the device position")
async def report_location(
    report: LocationReport,
    journey: JourneyOrchestrator = Depends(get_orchestrator),
) -> JourneySnapshot:
    """
    Report the result of the client's geolocation query.

    Only the first report of a session is used; the device position is
    then held fixed.
    """
    if report.error is not None:
        provider = UnavailableGeolocation(report.error)
    else:
        provider = FixedGeolocation(Coordinate(lat=report.lat, lng=report.lng))
    await journey.report_device_location(provider)
    return journey.snapshot()


@router.post("/city", response_model=JourneySnapshot, summary="Choose a reference city as origin")
async def choose_city(
    selection: CitySelection,
    journey: JourneyOrchestrator = Depends(get_orchestrator),
) -> JourneySnapshot:
    try:
        journey.choose_city(selection.city)
    except UnknownCityError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return journey.snapshot()


@router.put("/selection", response_model=JourneySnapshot, summary="Select a point of interest")
async def select_point_of_interest(
    poi: PointOfInterest,
    journey: JourneyOrchestrator = Depends(get_orchestrator),
) -> JourneySnapshot:
    journey.select_point_of_interest(poi)
    return journey.snapshot()


@router.delete("/selection", response_model=JourneySnapshot, summary="Clear the point of interest")
async def clear_point_of_interest(
    journey: JourneyOrchestrator = Depends(get_orchestrator),
) -> JourneySnapshot:
    journey.select_point_of_interest(None)
    return journey.snapshot()


@router.post("/route-selection", response_model=JourneySnapshot, summary="Toggle the displayed itinerary")
async def toggle_route(
    selection: RouteSelection,
    journey: JourneyOrchestrator = Depends(get_orchestrator),
) -> JourneySnapshot:
    try:
        journey.toggle_route(selection.direction, selection.index)
    except InvalidRouteSelection as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return journey.snapshot()


@router.get(
    "/selected-itinerary",
    response_model=Optional[Itinerary],
    summary="The itinerary currently selected for display",
)
async def selected_itinerary(
    journey: JourneyOrchestrator = Depends(get_orchestrator),
) -> Optional[Itinerary]:
    return journey.selected_itinerary()
