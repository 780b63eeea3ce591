# horiohop/api/v1/routes_demand.py
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from horiohop.api.deps import get_config, get_ledger
from horiohop.core.config import Settings
from horiohop.models.demand import DemandOverviewQuery, DemandRecord, DemandRequest, VillageDemandSummary
from horiohop.services.demand_ledger import DemandLedger, DemandStorageError

# Ten years
MAX_WINDOW_DAYS = 3650

router = APIRouter(
    prefix="/demand",
    tags=["demand"],
)


@router.get("/", response_model=List[DemandRecord], summary="All logged shuttle requests")
async def list_demand(ledger: DemandLedger = Depends(get_ledger)) -> List[DemandRecord]:
    return ledger.list_records()


@router.post(
    "/",
    response_model=DemandRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Log a shuttle request",
)
async def submit_demand(
    request: DemandRequest,
    ledger: DemandLedger = Depends(get_ledger),
) -> DemandRecord:
    try:
        return ledger.add(request)
    except DemandStorageError as exc:
        raise HTTPException(status_code=status.HTTP_507_INSUFFICIENT_STORAGE, detail=str(exc))


@router.get("/counts", response_model=Dict[str, int], summary="Recent requests per village")
async def demand_counts(
    window_days: Optional[int] = Query(default=None, ge=1, le=MAX_WINDOW_DAYS),
    ledger: DemandLedger = Depends(get_ledger),
) -> Dict[str, int]:
    return ledger.counts_by_entity(window_days)


@router.get("/counts/{village_id}", summary="Recent requests for one village")
async def demand_count_for_village(
    village_id: str,
    window_days: Optional[int] = Query(default=None, ge=1, le=MAX_WINDOW_DAYS),
    ledger: DemandLedger = Depends(get_ledger),
):
    return {"village_id": village_id, "count": ledger.count_for(village_id, window_days)}


@router.get(
    "/summary/{village_id}",
    response_model=VillageDemandSummary,
    summary="Requests for one village grouped by origin city",
)
async def demand_summary(
    village_id: str,
    desired_date: Optional[date] = None,
    ticket_price: float = Query(default=0.0, ge=0.0),
    ledger: DemandLedger = Depends(get_ledger),
) -> VillageDemandSummary:
    return ledger.summarize(village_id, desired_date=desired_date, ticket_price=ticket_price)


@router.post(
    "/summary",
    response_model=List[VillageDemandSummary],
    summary="Villages ranked by demand, with nearby villages for grouping",
)
async def demand_overview(
    query: DemandOverviewQuery,
    ledger: DemandLedger = Depends(get_ledger),
) -> List[VillageDemandSummary]:
    return ledger.overview(
        query.villages,
        ticket_price=query.ticket_price,
        proximity_km=query.proximity_km,
        desired_date=query.desired_date,
    )


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT, summary="Erase all requests (debug only)")
async def clear_demand(
    ledger: DemandLedger = Depends(get_ledger),
    config: Settings = Depends(get_config),
) -> Response:
    if not config.DEBUG_MODE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Clearing demand requires DEBUG_MODE")
    try:
        ledger.clear()
    except DemandStorageError as exc:
        raise HTTPException(status_code=status.HTTP_507_INSUFFICIENT_STORAGE, detail=str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
