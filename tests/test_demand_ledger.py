# tests/test_demand_ledger.py
import json
import random
from datetime import date, datetime, timedelta, timezone

import pytest

from horiohop.models.demand import DemandRequest
from horiohop.models.journey import PointOfInterest
from horiohop.services.demand_ledger import DemandLedger, DemandStorageError, SeedingDisabledError
from horiohop.services.origin_resolver import REFERENCE_CITIES
from horiohop.services.storage import JsonFileStore, MemoryStore


class FullStore(MemoryStore):
    """Store whose writes fail like a browser storage quota."""

    def set(self, key, value):
        raise OSError("quota exceeded")


def make_request(village_id="x", **overrides):
    fields = {
        "village_id": village_id,
        "origin_city": "Nicosia",
        "desired_date": "2026-01-24",
        "party_size": 3,
    }
    fields.update(overrides)
    return DemandRequest(**fields)


def stored_record(village_id, created_at, origin_city="Nicosia", party_size=2, desired_date="2026-01-24"):
    return {
        "id": f"{village_id}-{created_at.isoformat()}",
        "villageId": village_id,
        "originCity": origin_city,
        "desiredDate": desired_date,
        "partySize": party_size,
        "createdAt": created_at.isoformat(),
    }


@pytest.fixture
def ledger(config):
    return DemandLedger(JsonFileStore(config.DEMAND_STORE_DIR), config)


def test_add_then_count(ledger):
    record = ledger.add(make_request())

    assert record.id
    assert record.created_at.tzinfo is not None
    assert ledger.count_for("x") == 1
    assert ledger.list_records() == [record]


def test_records_persist_across_instances(config, ledger):
    ledger.add(make_request(email="anna@example.com"))

    reopened = DemandLedger(JsonFileStore(config.DEMAND_STORE_DIR), config)
    records = reopened.list_records()

    assert len(records) == 1
    assert records[0].email == "anna@example.com"
    assert records[0].desired_date == date(2026, 1, 24)


def test_storage_format_is_camel_case_json_array(config, ledger):
    ledger.add(make_request())

    path = JsonFileStore(config.DEMAND_STORE_DIR)._path(config.DEMAND_STORAGE_KEY)
    stored = json.loads(path.read_text(encoding="utf-8"))

    assert isinstance(stored, list)
    assert set(stored[0]) >= {"id", "villageId", "originCity", "desiredDate", "partySize", "createdAt"}


def test_ids_are_unique(ledger):
    ids = {ledger.add(make_request()).id for _ in range(5)}

    assert len(ids) == 5


def test_old_records_fall_outside_window(config):
    now = datetime.now(timezone.utc)
    store = MemoryStore()
    store.set(
        config.DEMAND_STORAGE_KEY,
        json.dumps(
            [
                stored_record("x", now - timedelta(days=40)),
                stored_record("x", now - timedelta(days=2)),
                stored_record("y", now - timedelta(days=29)),
            ]
        ),
    )
    ledger = DemandLedger(store, config)

    assert ledger.count_for("x") == 1
    assert ledger.count_for("x", window_days=60) == 2
    assert ledger.counts_by_entity() == {"x": 1, "y": 1}
    assert ledger.counts_by_entity(window_days=7) == {"x": 1}


def test_naive_timestamps_are_read_as_utc(config):
    store = MemoryStore()
    naive = (datetime.now(timezone.utc) - timedelta(days=1)).replace(tzinfo=None)
    store.set(config.DEMAND_STORAGE_KEY, json.dumps([stored_record("x", naive)]))

    assert DemandLedger(store, config).count_for("x") == 1


@pytest.mark.parametrize("payload", ["{not json", '{"villageId": "x"}', "42"])
def test_corrupt_store_reads_as_empty(config, payload):
    store = MemoryStore()
    store.set(config.DEMAND_STORAGE_KEY, payload)
    ledger = DemandLedger(store, config)

    assert ledger.list_records() == []
    assert ledger.count_for("x") == 0
    assert ledger.counts_by_entity() == {}


def test_undecodable_store_file_reads_as_empty(config):
    store = JsonFileStore(config.DEMAND_STORE_DIR)
    store.directory.mkdir(parents=True)
    store._path(config.DEMAND_STORAGE_KEY).write_bytes(b'[{"villageId": "\xff\xfe"}]')
    ledger = DemandLedger(store, config)

    assert ledger.list_records() == []
    assert ledger.counts_by_entity() == {}

    # The next submission replaces the unreadable file
    ledger.add(make_request())
    assert ledger.count_for("x") == 1


def test_deeply_nested_store_reads_as_empty(config):
    store = MemoryStore()
    store.set(config.DEMAND_STORAGE_KEY, "[" * 100_000 + "]" * 100_000)

    assert DemandLedger(store, config).list_records() == []


def test_window_longer_than_the_calendar_counts_everything(config):
    store = MemoryStore()
    store.set(
        config.DEMAND_STORAGE_KEY,
        json.dumps([stored_record("x", datetime(1990, 5, 1, tzinfo=timezone.utc))]),
    )
    ledger = DemandLedger(store, config)

    assert ledger.count_for("x", window_days=1_000_000) == 1
    assert ledger.counts_by_entity(window_days=10**12) == {"x": 1}


def test_invalid_entries_are_skipped(config):
    now = datetime.now(timezone.utc)
    store = MemoryStore()
    store.set(
        config.DEMAND_STORAGE_KEY,
        json.dumps([stored_record("x", now), {"villageId": "broken"}, "junk"]),
    )

    assert [r.village_id for r in DemandLedger(store, config).list_records()] == ["x"]


def test_write_failure_raises_and_records_nothing(config):
    store = FullStore()
    ledger = DemandLedger(store, config)

    with pytest.raises(DemandStorageError):
        ledger.add(make_request())

    assert ledger.list_records() == []


@pytest.mark.parametrize("party_size", [0, 9])
def test_party_size_is_bounded(party_size):
    with pytest.raises(ValueError):
        make_request(party_size=party_size)


def test_clear(ledger):
    ledger.add(make_request())
    ledger.clear()

    assert ledger.list_records() == []
    # Clearing an empty store is fine
    ledger.clear()


def test_summarize_groups_by_city(config):
    now = datetime.now(timezone.utc)
    store = MemoryStore()
    store.set(
        config.DEMAND_STORAGE_KEY,
        json.dumps(
            [
                stored_record("x", now, origin_city="Paphos", party_size=2),
                stored_record("x", now, origin_city="Limassol", party_size=4),
                stored_record("x", now, origin_city="Paphos", party_size=2),
                stored_record("x", now, origin_city="Larnaca", party_size=1, desired_date="2026-01-25"),
                stored_record("y", now, origin_city="Nicosia", party_size=8),
            ]
        ),
    )
    ledger = DemandLedger(store, config)

    summary = ledger.summarize("x", ticket_price=15)

    assert summary.total_people == 9
    assert summary.requests == 4
    assert summary.projected_payout == 135
    # Ties on people are broken by city name
    assert [(c.city, c.total_people, c.requests) for c in summary.by_city] == [
        ("Limassol", 4, 1),
        ("Paphos", 4, 2),
        ("Larnaca", 1, 1),
    ]

    one_day = ledger.summarize("x", desired_date=date(2026, 1, 25))
    assert one_day.total_people == 1
    assert [c.city for c in one_day.by_city] == ["Larnaca"]


def test_overview_ranks_villages_and_groups_neighbours(config):
    now = datetime.now(timezone.utc)
    store = MemoryStore()
    store.set(
        config.DEMAND_STORAGE_KEY,
        json.dumps(
            [
                stored_record("omodos", now, origin_city="Limassol", party_size=2),
                stored_record("lefkara", now, origin_city="Nicosia", party_size=3),
                stored_record("lefkara", now, origin_city="Larnaca", party_size=4),
                stored_record("omodos", now, origin_city="Paphos", party_size=1, desired_date="2026-01-25"),
            ]
        ),
    )
    villages = [
        PointOfInterest(id="omodos", name="Omodos", lat=34.85, lng=32.81),
        PointOfInterest(id="kakopetria", name="Kakopetria", lat=34.99, lng=32.81),
        PointOfInterest(id="lefkara", name="Lefkara", lat=34.8667, lng=33.3),
        PointOfInterest(id="vasa", name="Vasa", lat=34.85, lng=32.8),
    ]
    ledger = DemandLedger(store, config)

    overview = ledger.overview(villages, ticket_price=15, proximity_km=20)

    # Most requested first, ties keep the given order
    assert [(s.village_id, s.total_people) for s in overview] == [
        ("lefkara", 7),
        ("omodos", 3),
        ("kakopetria", 0),
        ("vasa", 0),
    ]
    assert overview[0].name == "Lefkara"
    assert overview[0].projected_payout == 105
    assert [c.city for c in overview[0].by_city] == ["Larnaca", "Nicosia"]

    omodos = overview[1]
    assert [(n.village_id, n.distance_km) for n in omodos.nearby_villages] == [
        ("vasa", 0.9),
        ("kakopetria", 15.6),
    ]
    assert overview[0].nearby_villages == []

    one_day = ledger.overview(villages, desired_date=date(2026, 1, 25))
    assert [(s.village_id, s.total_people) for s in one_day][:1] == [("omodos", 1)]


def test_overview_proximity_radius_is_inclusive(config):
    a = PointOfInterest(id="a", lat=35.0, lng=33.0)
    b = PointOfInterest(id="b", lat=35.0, lng=33.0)
    ledger = DemandLedger(MemoryStore(), config)

    overview = ledger.overview([a, b], proximity_km=0)

    assert [n.village_id for n in overview[0].nearby_villages] == ["b"]
    assert overview[0].nearby_villages[0].distance_km == 0


def test_email_needs_an_at_sign():
    assert make_request(email="anna@example.com").email == "anna@example.com"
    assert make_request().email is None

    with pytest.raises(ValueError):
        make_request(email="anna.example.com")


def test_seed_requires_explicit_permission(ledger):
    with pytest.raises(SeedingDisabledError):
        ledger.seed(["a", "b"])

    assert ledger.list_records() == []


def test_seed_fills_empty_store(config):
    ledger = DemandLedger(MemoryStore(), config, allow_seed=True)

    written = ledger.seed(["a", "b"], rng=random.Random(7))
    records = ledger.list_records()

    assert written == len(records)
    counts = ledger.counts_by_entity()
    assert set(counts) == {"a", "b"}
    assert all(2 <= n <= 20 for n in counts.values())
    assert all(1 <= r.party_size <= 8 for r in records)
    assert all(r.origin_city in REFERENCE_CITIES for r in records)
    assert len({r.id for r in records}) == len(records)


def test_seed_keeps_real_data_unless_forced(config):
    ledger = DemandLedger(MemoryStore(), config, allow_seed=True)
    genuine = ledger.add(make_request(village_id="real"))

    assert ledger.seed(["a"], rng=random.Random(1)) == 0
    assert ledger.list_records() == [genuine]

    written = ledger.seed(["a"], force=True, rng=random.Random(1))

    records = ledger.list_records()
    assert len(records) == written
    assert all(r.village_id == "a" for r in records)
