"""Mutation Service: verifies ordering, ownership and broadcast rules with fakes.

Invariants:
    - Evaluation failure persists nothing and publishes nothing
    - create/deactivate publish exactly one event each; replace publishes none
    - 404 is checked before 403, 403 before evaluation
    - A broadcaster that raises never fails the mutation
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest

from calcsync.core.domain_types import Operation
from calcsync.core.errors import (
    DivisionByZeroError, ForbiddenError, RecordNotFoundError,
    ResultOutOfRangeError,
)
from calcsync.services.mutation_service import MutationService

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@dataclass
class FakeRecord:
    left: float
    right: float
    operation: str
    result: float
    owner_id: UUID
    id: UUID = field(default_factory=uuid4)
    is_active: bool = True
    deleted_at: datetime | None = None


class FakeStore:
    def __init__(self):
        self.rows: dict[UUID, FakeRecord] = {}
        self.rollbacks = 0
        self.locked: list[UUID] = []

    async def add(self, *, left, right, operation, result, owner_id):
        rec = FakeRecord(left, right, operation, result, owner_id)
        self.rows[rec.id] = rec
        return rec

    async def get_active(self, record_id, *, for_update=False):
        if for_update:
            self.locked.append(record_id)
        rec = self.rows.get(record_id)
        return rec if rec and rec.is_active else None

    async def overwrite(self, record, *, left, right, operation, result):
        record.left, record.right = left, right
        record.operation, record.result = operation, result
        return record

    async def mark_inactive(self, record, deleted_at):
        record.is_active = False
        record.deleted_at = deleted_at
        return record

    async def rollback(self):
        self.rollbacks += 1


class FakeBroadcaster:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def publish(self, event, payload):
        self.events.append((event, payload))
        return 1


class ExplodingBroadcaster:
    def publish(self, event, payload):
        raise ConnectionError("hub is down")


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def broadcaster():
    return FakeBroadcaster()


@pytest.fixture
def service(store, broadcaster):
    return MutationService(store, broadcaster, clock=lambda: FIXED_NOW)


@pytest.fixture
def owner():
    return uuid4()


# ─── create ─────────────────────────────────────────────────────

async def test_create_persists_and_broadcasts(service, store, broadcaster, owner):
    """create() stores the evaluated record and publishes RecordCreated."""
    rec = await service.create(10, 5, Operation.ADD, owner)

    assert rec.result == 15
    assert rec.operation == "Add"
    assert rec.owner_id == owner
    assert store.rows[rec.id] is rec
    assert broadcaster.events == [("RecordCreated", {
        "id": str(rec.id), "left": 10, "right": 5, "operation": "Add", "result": 15.0,
    })]


async def test_create_divide_by_zero_persists_nothing(service, store, broadcaster, owner):
    """An evaluation error stores and publishes nothing."""
    with pytest.raises(DivisionByZeroError):
        await service.create(1, 0, Operation.DIVIDE, owner)
    assert store.rows == {}
    assert broadcaster.events == []


async def test_create_overflow_persists_nothing(service, store, broadcaster, owner):
    """An overflowing result stores and publishes nothing."""
    with pytest.raises(ResultOutOfRangeError):
        await service.create(1e308, 10, Operation.MULTIPLY, owner)
    assert store.rows == {}
    assert broadcaster.events == []


async def test_create_survives_broadcast_failure(store, owner):
    """A failing broadcaster never fails the create."""
    service = MutationService(store, ExplodingBroadcaster())
    rec = await service.create(7, 3, Operation.MULTIPLY, owner)
    assert rec.result == 21
    assert rec.id in store.rows


# ─── replace ────────────────────────────────────────────────────

async def test_replace_overwrites_without_broadcast(service, store, broadcaster, owner):
    """replace() overwrites every field and publishes nothing."""
    rec = await service.create(1, 1, Operation.ADD, owner)
    broadcaster.events.clear()

    updated = await service.replace(rec.id, 20, 4, Operation.DIVIDE, owner)

    assert updated.result == 5
    assert updated.operation == "Divide"
    assert (updated.left, updated.right) == (20, 4)
    assert broadcaster.events == []
    assert store.locked == [rec.id]


async def test_replace_missing_record_is_not_found(service, owner):
    """Replacing an unknown id raises RecordNotFoundError."""
    with pytest.raises(RecordNotFoundError):
        await service.replace(uuid4(), 1, 1, Operation.ADD, owner)


async def test_replace_by_non_owner_is_forbidden_and_unchanged(service, store, owner):
    """A non-owner replace raises ForbiddenError and changes nothing."""
    rec = await service.create(10, 5, Operation.ADD, owner)

    with pytest.raises(ForbiddenError):
        await service.replace(rec.id, 99, 1, Operation.SUBTRACT, uuid4())

    assert (rec.left, rec.right, rec.operation, rec.result) == (10, 5, "Add", 15)
    assert store.rollbacks == 1


async def test_replace_not_found_checked_before_ownership(service, owner):
    """An inactive record is reported missing even to a non-owner."""
    rec = await service.create(1, 1, Operation.ADD, owner)
    await service.deactivate(rec.id, owner)
    with pytest.raises(RecordNotFoundError):
        await service.replace(rec.id, 1, 1, Operation.ADD, uuid4())


async def test_replace_ownership_checked_before_evaluation(service, owner):
    """Ownership is checked before the new values are evaluated."""
    rec = await service.create(1, 1, Operation.ADD, owner)
    with pytest.raises(ForbiddenError):
        await service.replace(rec.id, 1, 0, Operation.DIVIDE, uuid4())


async def test_replace_with_divide_by_zero_leaves_record_unchanged(service, store, owner):
    """A failed evaluation on replace keeps the old values."""
    rec = await service.create(8, 2, Operation.SUBTRACT, owner)

    with pytest.raises(DivisionByZeroError):
        await service.replace(rec.id, 8, 0, Operation.DIVIDE, owner)

    assert (rec.left, rec.right, rec.operation, rec.result) == (8, 2, "Subtract", 6)
    assert store.rollbacks == 1


# ─── deactivate ─────────────────────────────────────────────────

async def test_deactivate_marks_inactive_and_broadcasts(service, broadcaster, owner):
    """deactivate() soft-deletes and publishes RecordDeactivated."""
    rec = await service.create(1, 2, Operation.ADD, owner)
    broadcaster.events.clear()

    result = await service.deactivate(rec.id, owner)

    assert result.is_active is False
    assert result.deleted_at == FIXED_NOW
    assert broadcaster.events == [("RecordDeactivated", {"id": str(rec.id)})]


async def test_second_deactivate_is_not_found(service, broadcaster, owner):
    """A second deactivate raises RecordNotFoundError and publishes nothing."""
    rec = await service.create(1, 2, Operation.ADD, owner)
    await service.deactivate(rec.id, owner)
    broadcaster.events.clear()

    with pytest.raises(RecordNotFoundError):
        await service.deactivate(rec.id, owner)
    assert broadcaster.events == []


async def test_deactivate_by_non_owner_is_forbidden(service, broadcaster, owner):
    """A non-owner deactivate raises ForbiddenError and leaves the record active."""
    rec = await service.create(1, 2, Operation.ADD, owner)
    broadcaster.events.clear()

    with pytest.raises(ForbiddenError):
        await service.deactivate(rec.id, uuid4())
    assert rec.is_active
    assert broadcaster.events == []


async def test_deactivate_survives_broadcast_failure(store, owner):
    """A failing broadcaster never fails the deactivate."""
    service = MutationService(store, ExplodingBroadcaster())
    rec = await service.create(1, 2, Operation.ADD, owner)
    result = await service.deactivate(rec.id, owner)
    assert result.is_active is False
