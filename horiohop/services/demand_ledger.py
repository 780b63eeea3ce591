# horiohop/services/demand_ledger.py

import json
import random
import uuid
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from horiohop.core.config import Settings, settings as default_settings
from horiohop.core.logger import logger
from horiohop.models.demand import (
    CityDemand,
    DemandRecord,
    DemandRequest,
    NearbyVillage,
    VillageDemandSummary,
)
from horiohop.models.journey import PointOfInterest
from horiohop.services.geo import haversine_distance_m, round_km
from horiohop.services.origin_resolver import REFERENCE_CITIES
from horiohop.services.storage import KeyValueStore


class DemandStorageError(Exception):
    """Raised when the demand collection could not be written."""
    pass


class SeedingDisabledError(RuntimeError):
    """Raised when demo seeding is requested on a ledger that does not allow it."""
    pass


class DemandLedger:
    """
    Device-local, append-only log of shuttle demand.

    The whole collection lives as one JSON array under a single storage key
    and is read and replaced as a unit. Records are never edited or removed
    one by one; clear() drops everything. All counts are computed on read.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Settings | None = None,
        allow_seed: bool = False,
    ) -> None:
        self.store = store
        self.config = config or default_settings
        self.key = self.config.DEMAND_STORAGE_KEY
        self.allow_seed = allow_seed

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def list_records(self) -> List[DemandRecord]:
        """
        All stored records. A missing, unreadable or corrupt store reads as empty.
        """
        try:
            stored = self.store.get(self.key)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error(f"Failed to read demand store '{self.key}': {exc}")
            return []

        if not stored:
            return []

        try:
            raw_records = json.loads(stored)
        except (ValueError, RecursionError) as exc:
            logger.error(f"Failed to parse stored demands: {exc}")
            return []

        if not isinstance(raw_records, list):
            logger.error(f"Stored demands are a {type(raw_records).__name__}, expected a list")
            return []

        records: List[DemandRecord] = []
        skipped = 0
        for raw in raw_records:
            try:
                records.append(DemandRecord.model_validate(raw))
            except ValidationError:
                skipped += 1

        if skipped:
            logger.warning(f"Skipped {skipped} invalid demand record(s) in '{self.key}'")

        return records

    def add(self, request: DemandRequest) -> DemandRecord:
        """
        Log a new demand request and persist the whole collection.

        Raises DemandStorageError if the write fails; in that case nothing
        was recorded.
        """
        record = DemandRecord(
            **request.model_dump(),
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
        )
        records = self.list_records()
        records.append(record)
        self._write(records)

        logger.info(
            f"Logged demand {record.id} for village={record.village_id} "
            f"from {record.origin_city}, party of {record.party_size}"
        )
        return record

    def count_for(
        self,
        village_id: str,
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Number of requests for village_id logged within the trailing window.
        """
        cutoff = self._cutoff(window_days, now)
        return sum(
            1
            for record in self.list_records()
            if record.village_id == village_id and record.created_at > cutoff
        )

    def counts_by_entity(
        self,
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, int]:
        cutoff = self._cutoff(window_days, now)
        counts = Counter(
            record.village_id
            for record in self.list_records()
            if record.created_at > cutoff
        )
        return dict(counts)

    def summarize(
        self,
        village_id: str,
        desired_date: Optional[date] = None,
        ticket_price: float = 0.0,
    ) -> VillageDemandSummary:
        """
        Demand for a village grouped by origin city.

        Not windowed: every stored request counts, optionally only those
        for one travel date. Cities are ordered by people, then by name.
        """
        records = _for_date(self.list_records(), desired_date)
        return _summarize(village_id, records, ticket_price)

    def overview(
        self,
        villages: Sequence[PointOfInterest],
        ticket_price: float = 0.0,
        proximity_km: float = 10.0,
        desired_date: Optional[date] = None,
    ) -> List[VillageDemandSummary]:
        """
        Demand for every given village, most requested first.

        Each summary lists the other villages within proximity_km, closest
        first, as candidates for sharing one shuttle. Villages with equal
        demand keep their input order.
        """
        records = _for_date(self.list_records(), desired_date)
        summaries: List[VillageDemandSummary] = []

        for village in villages:
            nearby: List[NearbyVillage] = []
            for other in villages:
                if other.id == village.id:
                    continue
                distance_m = haversine_distance_m(village.coordinate, other.coordinate)
                if distance_m <= proximity_km * 1000.0:
                    nearby.append(
                        NearbyVillage(village_id=other.id, name=other.name, distance_km=round_km(distance_m))
                    )
            nearby.sort(key=lambda item: item.distance_km)

            summary = _summarize(village.id, records, ticket_price)
            summaries.append(
                summary.model_copy(update={"name": village.name, "nearby_villages": nearby})
            )

        summaries.sort(key=lambda summary: -summary.total_people)
        return summaries

    def clear(self) -> None:
        """
        Erase every record. Maintenance and testing only.
        """
        try:
            self.store.remove(self.key)
        except OSError as exc:
            logger.error(f"Failed to clear demand store '{self.key}': {exc}")
            raise DemandStorageError("Failed to clear demand requests") from exc
        logger.info(f"Cleared demand store '{self.key}'")

    def seed(
        self,
        village_ids: Iterable[str],
        force: bool = False,
        rng: Optional[random.Random] = None,
    ) -> int:
        """
        Fill the ledger with synthetic demand for demos.

        Generates 2-20 requests per village, logged over the last 30 days.
        Does nothing when records already exist unless force is set, in
        which case the existing collection is discarded first.

        Returns the number of records written.
        """
        if not self.allow_seed:
            raise SeedingDisabledError("Demo seeding is disabled for this ledger")

        village_ids = list(village_ids)
        existing = self.list_records()

        if existing and not force:
            logger.info(
                f"Skipping demo seeding: store already holds {len(existing)} record(s). "
                "Use force=True to overwrite."
            )
            return 0

        if existing:
            logger.warning(f"Discarding {len(existing)} existing demand record(s) before demo seeding")
            self.clear()

        rng = rng or random.Random()
        now = datetime.now(timezone.utc)
        today = now.date()
        cities = sorted(REFERENCE_CITIES)
        records: List[DemandRecord] = []

        for village_id in village_ids:
            for _ in range(rng.randint(2, 20)):
                records.append(
                    DemandRecord(
                        id=str(uuid.UUID(int=rng.getrandbits(128), version=4)),
                        village_id=village_id,
                        origin_city=rng.choice(cities),
                        desired_date=today + timedelta(days=rng.randint(1, 60)),
                        party_size=rng.randint(1, 8),
                        email=f"user{rng.randint(0, 9999)}@example.com",
                        created_at=now - timedelta(days=rng.randint(0, 29)),
                    )
                )

        self._write(records)
        logger.info(f"Seeded {len(records)} demo demand records for {len(village_ids)} villages")
        return len(records)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _write(self, records: List[DemandRecord]) -> None:
        payload = json.dumps([r.model_dump(mode="json", by_alias=True) for r in records])
        try:
            self.store.set(self.key, payload)
        except OSError as exc:
            logger.error(f"Failed to save demand requests: {exc}")
            raise DemandStorageError("Failed to save demand request") from exc

    def _cutoff(self, window_days: Optional[int], now: Optional[datetime]) -> datetime:
        if window_days is None:
            window_days = self.config.DEMAND_WINDOW_DAYS
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        try:
            return now - timedelta(days=window_days)
        except OverflowError:
            # Window reaches past the earliest representable date
            return datetime.min.replace(tzinfo=timezone.utc)


def _for_date(records: List[DemandRecord], desired_date: Optional[date]) -> List[DemandRecord]:
    if desired_date is None:
        return records
    return [record for record in records if record.desired_date == desired_date]


def _summarize(village_id: str, records: List[DemandRecord], ticket_price: float) -> VillageDemandSummary:
    people: Dict[str, int] = {}
    requests: Counter = Counter()

    for record in records:
        if record.village_id != village_id:
            continue
        people[record.origin_city] = people.get(record.origin_city, 0) + record.party_size
        requests[record.origin_city] += 1

    by_city = [
        CityDemand(
            city=city,
            total_people=total,
            requests=requests[city],
            projected_payout=total * ticket_price,
        )
        for city, total in sorted(people.items(), key=lambda item: (-item[1], item[0]))
    ]
    total_people = sum(people.values())

    return VillageDemandSummary(
        village_id=village_id,
        total_people=total_people,
        requests=sum(requests.values()),
        projected_payout=total_people * ticket_price,
        by_city=by_city,
    )
