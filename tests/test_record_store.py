"""
tests/test_record_store.py
Decode guard, namespace persistence and write-failure behaviour.
"""

import json

import pytest

from shared.models.models import Booking, BookingStatus, Program
from shared.store.backends import MemoryStorage
from shared.store.codec import decode_collection, encode_collection, split_collection
from shared.store.record_store import Namespace, RecordStore
from shared.store.repositories import ACTIVITY_LOG_LIMIT, Repositories
from shared.utils.errors import RecordNotFoundError, StorageWriteError
from tests.factories import make_activity, make_booking, make_notification, make_program


class FlakyReadStorage(MemoryStorage):
    """Reads fail while `fail_reads` is set; writes still succeed."""

    def __init__(self):
        super().__init__()
        self.fail_reads = False
        self.writes = 0

    async def get(self, key):
        if self.fail_reads:
            raise ConnectionError("substrate offline")
        return await super().get(key)

    async def set(self, key, value):
        self.writes += 1
        await super().set(key, value)


# ── Decode Guard ───────────────────────────────────────────────

@pytest.mark.parametrize("raw", [None, "", "{not json", '{"id": "p1"}', "42", "null"])
def test_decode_fails_open_to_empty(raw):
    assert decode_collection(raw, Program, "programs") == []


def test_decode_drops_invalid_items_and_keeps_the_rest():
    raw = json.dumps([
        {"id": "b1", "programId": "p1", "touristId": "t1", "tourDate": "2026-01-10", "totalPrice": 80},
        {"id": "b2", "touristId": "t1"},
        "garbage",
    ])
    records = decode_collection(raw, Booking, "bookings")
    assert [b.id for b in records] == ["b1"]
    assert records[0].tour_date.tzinfo is not None


def test_split_returns_rejected_items_untouched():
    legacy = {
        "id": "b0", "programId": "p1", "touristId": "t1",
        "tourDate": "2025-03-01", "totalPrice": 40, "status": "Canceled",
    }
    raw = json.dumps([
        legacy,
        {"id": "b1", "programId": "p1", "touristId": "t1", "tourDate": "2026-01-10", "totalPrice": 80},
    ])

    records, rejected = split_collection(raw, Booking, "bookings")
    assert [b.id for b in records] == ["b1"]
    assert rejected == [legacy]


def test_encode_uses_camel_case_and_keeps_unknown_keys():
    raw = json.dumps([{
        "id": "b1", "programId": "p1", "touristId": "t1",
        "tourDate": "2026-01-10T09:00:00Z", "totalPrice": 80,
        "legacyField": "keep me",
    }])
    records = decode_collection(raw, Booking, "bookings")
    document = json.loads(encode_collection(records))[0]

    assert document["programId"] == "p1"
    assert document["totalPrice"] == 80
    assert document["legacyField"] == "keep me"
    assert "providerId" not in document


# ── Persistence ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_save_then_load_returns_equal_records(repos: Repositories):
    programs = [make_program("p1"), make_program("p2", provider_id="prov-2")]
    await repos.programs.save_all(programs)

    assert await repos.programs.all() == programs


@pytest.mark.asyncio
async def test_namespaces_are_prefixed_and_isolated(backend: MemoryStorage, repos: Repositories):
    await repos.bookings.save_all([make_booking("b1")])

    assert set(backend.data) == {"test:bookings"}
    assert await repos.programs.all() == []


@pytest.mark.asyncio
async def test_corrupt_namespace_loads_as_empty(backend: MemoryStorage, repos: Repositories):
    backend.data["test:programs"] = "{{{"
    assert await repos.programs.all() == []


@pytest.mark.asyncio
async def test_save_rejects_records_of_the_wrong_type(repos: Repositories):
    with pytest.raises(TypeError):
        await repos.store.save(Namespace.PROGRAMS, [make_booking("b1")])


@pytest.mark.asyncio
async def test_newest_first_collections_insert_at_front(repos: Repositories):
    await repos.notifications.add(make_notification("n1"))
    await repos.notifications.add(make_notification("n2"))

    assert [n.id for n in await repos.notifications.all()] == ["n2", "n1"]


# ── Write Failures ─────────────────────────────────────────────

@pytest.mark.asyncio
async def test_quota_exceeded_raises_storage_write_error():
    backend = MemoryStorage(quota_bytes=64)
    repos = Repositories.from_store(RecordStore(backend))

    with pytest.raises(StorageWriteError) as exc_info:
        await repos.programs.save_all([make_program(f"p{i}") for i in range(5)])

    assert exc_info.value.status_code == 503
    assert exc_info.value.namespace == "programs"
    assert backend.data == {}


@pytest.mark.asyncio
async def test_disabled_storage_leaves_previous_snapshot(backend: MemoryStorage, repos: Repositories):
    await repos.bookings.add(make_booking("b1"))
    backend.disabled = True

    with pytest.raises(StorageWriteError):
        await repos.bookings.add(make_booking("b2"))

    backend.disabled = False
    assert [b.id for b in await repos.bookings.all()] == ["b1"]


@pytest.mark.asyncio
async def test_transform_aborts_when_snapshot_unreadable():
    backend = FlakyReadStorage()
    repos = Repositories.from_store(RecordStore(backend))
    await repos.bookings.add(make_booking("b1"))
    writes_before = backend.writes

    backend.fail_reads = True
    with pytest.raises(StorageWriteError):
        await repos.bookings.add(make_booking("b2"))
    assert backend.writes == writes_before

    # Plain reads degrade to empty instead of raising
    assert await repos.bookings.all() == []
    backend.fail_reads = False
    assert [b.id for b in await repos.bookings.all()] == ["b1"]


@pytest.mark.asyncio
async def test_update_missing_record_does_not_write(backend: MemoryStorage, repos: Repositories):
    await repos.bookings.add(make_booking("b1"))
    before = dict(backend.data)

    def _confirm(booking):
        booking.status = BookingStatus.CONFIRMED

    with pytest.raises(RecordNotFoundError):
        await repos.bookings.update("missing", _confirm)
    assert backend.data == before


@pytest.mark.asyncio
async def test_writes_keep_items_that_fail_validation(backend: MemoryStorage, repos: Repositories):
    legacy = {
        "id": "legacy-1", "programId": "p1", "touristId": "tourist-1",
        "tourDate": "2025-03-01", "totalPrice": 40, "status": "Canceled",
    }
    valid = json.loads(encode_collection([make_booking("b1")]))[0]
    backend.data["test:bookings"] = json.dumps([legacy, valid])

    await repos.bookings.add(make_booking("b2"))

    stored = json.loads(backend.data["test:bookings"])
    assert legacy in stored
    assert [b.id for b in await repos.bookings.all()] == ["b1", "b2"]


# ── Activity Log ───────────────────────────────────────────────

@pytest.mark.asyncio
async def test_activity_log_is_capped_newest_first(repos: Repositories):
    await repos.activities.save_all([make_activity(f"a{i}") for i in range(ACTIVITY_LOG_LIMIT)])

    await repos.activities.add(make_activity("newest"))

    activities = await repos.activities.all()
    assert len(activities) == ACTIVITY_LOG_LIMIT
    assert activities[0].id == "newest"
    assert activities[-1].id == f"a{ACTIVITY_LOG_LIMIT - 2}"
    assert [a.id for a in await repos.activities.recent(2)] == ["newest", "a0"]


@pytest.mark.asyncio
async def test_activity_log_filters_by_provider(repos: Repositories):
    await repos.activities.add(make_activity("a1", provider_id="prov-1"))
    await repos.activities.add(make_activity("a2", provider_id="prov-2"))
    await repos.activities.add(make_activity("a3", provider_id="prov-1"))

    assert [a.id for a in await repos.activities.for_provider("prov-1")] == ["a3", "a1"]
