# horiohop/models/demand.py

from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from horiohop.models.journey import PointOfInterest


class DemandRequest(BaseModel):
    """
    A user's request for shuttle service to a village, before it is logged.

    Field aliases are camelCase, matching the persisted JSON format.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    village_id: str = Field(min_length=1)
    origin_city: str = Field(min_length=1)
    desired_date: date
    party_size: int = Field(ge=1, le=8)
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email_has_at_sign(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and "@" not in value:
            raise ValueError("email must contain '@'")
        return value


class DemandRecord(DemandRequest):
    """
    A logged demand request. Created once, never edited.
    """
    id: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Timestamps written without an offset are UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class CityDemand(BaseModel):
    """
    Demand for one village coming from one origin city.
    """
    city: str
    total_people: int
    requests: int
    projected_payout: float = 0.0


class NearbyVillage(BaseModel):
    village_id: str
    name: str = ""
    distance_km: float


class VillageDemandSummary(BaseModel):
    """
    Demand for one village grouped by origin city, busiest city first.

    nearby_villages is only filled by the ledger overview: villages within
    the proximity radius, closest first.
    """
    village_id: str
    name: str = ""
    total_people: int
    requests: int
    projected_payout: float = 0.0
    by_city: List[CityDemand] = []
    nearby_villages: List[NearbyVillage] = []


class DemandOverviewQuery(BaseModel):
    """
    Villages to rank by demand, with the payout and grouping parameters.
    """
    villages: List[PointOfInterest]
    ticket_price: float = Field(default=0.0, ge=0.0)
    proximity_km: float = Field(default=10.0, ge=0.0)
    desired_date: Optional[date] = None
