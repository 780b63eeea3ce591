# horiohop/api/v1/routes_routing.py
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from horiohop.api.deps import get_routing_client
from horiohop.models.routing import Coordinate, PlanResult
from horiohop.services.routing_client import RoutingClient

router = APIRouter(
    prefix="/route",
    tags=["routing"],
)


@router.get(
    "/plan",
    response_model=PlanResult,
    summary="Plan itineraries between two points",
)
async def plan_route(
    from_lat: float = Query(ge=-90.0, le=90.0),
    from_lng: float = Query(ge=-180.0, le=180.0),
    to_lat: float = Query(ge=-90.0, le=90.0),
    to_lng: float = Query(ge=-180.0, le=180.0),
    time: Optional[datetime] = None,
    routing_client: RoutingClient = Depends(get_routing_client),
) -> PlanResult:
    """
    Query the routing engine directly, bypassing the journey session.

    Always answers 200: the status field tells "no route" apart from a
    failed query.
    """
    return await routing_client.plan_result(
        Coordinate(lat=from_lat, lng=from_lng),
        Coordinate(lat=to_lat, lng=to_lng),
        time or datetime.now(timezone.utc),
    )
