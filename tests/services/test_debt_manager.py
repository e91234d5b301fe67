"""
Tests for the debt collection manager.

Covers:
- Optimistic create with placeholder reconciliation and purge
- Optimistic update / toggle / remove with refetch on failure
- Validation before any store call
- Refresh failure handling
- Derived statistics
"""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest
from bson import ObjectId

from app.models.debt import TEMP_ID_PREFIX, DebtRecord
from app.repositories.debt_repo import DebtNotFoundError, DebtStoreError
from app.services.debt_manager import DebtCollectionManager
from app.services.notifications import NotificationBuffer, NotificationKind
from app.utils.debt_validation import DebtValidationError
from tests.fakes import FakeDebtStore, make_debt


def names(manager):
    return [debt.debtor_name for debt in manager.records]


# ===== refresh =====

@pytest.mark.asyncio
async def test_refresh_loads_newest_first(seeded_store, notifications):
    manager = DebtCollectionManager(seeded_store, notifications)

    records = await manager.refresh()

    assert [r.debtor_name for r in records] == ["Binh", "Chi", "Dung"]
    assert names(manager) == ["Binh", "Chi", "Dung"]
    assert manager.is_loading is False
    assert manager.last_error is None


@pytest.mark.asyncio
async def test_refresh_sets_loading_while_in_flight(seeded_store, notifications):
    manager = DebtCollectionManager(seeded_store, notifications)
    seeded_store.gate = asyncio.Event()

    task = asyncio.create_task(manager.refresh())
    await asyncio.sleep(0)
    assert manager.is_loading is True

    seeded_store.gate.set()
    await task
    assert manager.is_loading is False


@pytest.mark.asyncio
async def test_refresh_failure_keeps_records(seeded_manager, seeded_store, notifications, store_error):
    seeded_store.fail_on["select"] = store_error

    await seeded_manager.refresh()

    assert names(seeded_manager) == ["Binh", "Chi", "Dung"]
    assert seeded_manager.last_error is store_error
    assert seeded_manager.is_loading is False
    [note] = notifications.drain()
    assert note.kind == NotificationKind.DESTRUCTIVE


@pytest.mark.asyncio
async def test_refresh_replaces_wholesale(seeded_manager, seeded_store):
    newcomer = make_debt("Em", 75.0)
    seeded_store.rows = {newcomer.id: newcomer}

    await seeded_manager.refresh()

    assert names(seeded_manager) == ["Em"]


@pytest.mark.asyncio
async def test_successful_refresh_clears_last_error(seeded_manager, seeded_store, store_error):
    seeded_store.fail_on["select"] = store_error
    await seeded_manager.refresh()

    await seeded_manager.refresh()

    assert seeded_manager.last_error is None


# ===== create =====

@pytest.mark.asyncio
async def test_create_shows_placeholder_then_server_record(manager, fake_store, notifications):
    fake_store.gate = asyncio.Event()

    task = asyncio.create_task(manager.create("An", 500000, "lunch"))
    await asyncio.sleep(0)

    assert len(manager.records) == 1
    pending = manager.records[0]
    assert pending.amount == 500000
    assert pending.is_paid is False
    assert pending.description == "lunch"
    assert pending.id.startswith(TEMP_ID_PREFIX)

    fake_store.gate.set()
    created = await task

    assert len(manager.records) == 1
    assert manager.records[0].id == created.id
    assert not manager.records[0].id.startswith(TEMP_ID_PREFIX)
    assert manager.records[0].debtor_name == "An"
    assert manager.records[0].amount == 500000
    assert manager.records[0].is_paid is False
    assert notifications.drain()[-1].kind == NotificationKind.SUCCESS


@pytest.mark.asyncio
async def test_create_prepends_and_keeps_position(seeded_manager, seeded_store):
    created = await seeded_manager.create("Em", "250", "")

    assert names(seeded_manager) == ["Em", "Binh", "Chi", "Dung"]
    assert seeded_manager.records[0].id == created.id
    assert created.amount == 250.0
    assert created.id in seeded_store.rows


@pytest.mark.asyncio
async def test_create_failure_purges_placeholder(seeded_manager, seeded_store, notifications, store_error):
    before = seeded_manager.records
    seeded_store.fail_on["insert"] = store_error

    with pytest.raises(DebtStoreError):
        await seeded_manager.create("Em", 10, "")

    assert seeded_manager.records == before
    assert not any(d.is_placeholder for d in seeded_manager.records)
    [note] = notifications.drain()
    assert note.kind == NotificationKind.DESTRUCTIVE


@pytest.mark.asyncio
async def test_create_failure_only_purges_its_own_placeholder(manager, fake_store, store_error):
    fake_store.gate = asyncio.Event()
    fake_store.fail_on["insert"] = store_error

    failing = asyncio.create_task(manager.create("First", 1, ""))
    await asyncio.sleep(0)
    succeeding = asyncio.create_task(manager.create("Second", 2, ""))
    await asyncio.sleep(0)
    assert len(manager.records) == 2

    fake_store.gate.set()
    results = await asyncio.gather(failing, succeeding, return_exceptions=True)

    assert isinstance(results[0], DebtStoreError)
    assert names(manager) == ["Second"]
    assert manager.records[0].id == results[1].id


@pytest.mark.asyncio
async def test_create_survives_refresh_while_insert_in_flight(manager, fake_store, notifications):
    fake_store.gates["insert"] = asyncio.Event()

    task = asyncio.create_task(manager.create("An", "12.50", ""))
    await asyncio.sleep(0)
    assert manager.records[0].is_placeholder

    # The insert has not landed yet, so the refetch drops the placeholder
    await manager.refresh()
    assert manager.records == []

    fake_store.gates["insert"].set()
    created = await task

    assert len(manager.records) == 1
    assert manager.records[0].id == created.id
    assert not manager.records[0].is_placeholder
    assert manager.records[0].amount == Decimal("12.50")
    assert notifications.drain()[-1].kind == NotificationKind.SUCCESS

    # A later refetch sees the stored row and does not duplicate it
    await manager.refresh()
    assert [d.id for d in manager.records] == [created.id]


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["-5", 0, "0", "abc", "", None])
async def test_create_rejects_bad_amount_before_store(seeded_manager, seeded_store, amount):
    before = seeded_manager.records

    with pytest.raises(DebtValidationError) as exc_info:
        await seeded_manager.create("An", amount, "")

    assert exc_info.value.field == "amount"
    assert seeded_store.calls == []
    assert seeded_manager.records == before


@pytest.mark.asyncio
async def test_create_rejects_blank_name(manager, fake_store):
    with pytest.raises(DebtValidationError) as exc_info:
        await manager.create("   ", 10, "")

    assert exc_info.value.field == "debtor_name"
    assert fake_store.calls == []
    assert manager.records == []


# ===== update =====

@pytest.mark.asyncio
async def test_update_applies_optimistically(seeded_manager, seeded_store):
    target = seeded_manager.records[1]
    seeded_store.gate = asyncio.Event()

    task = asyncio.create_task(seeded_manager.update(target.id, "Chi Mai", "320", "rent"))
    await asyncio.sleep(0)

    pending = seeded_manager.get(target.id)
    assert pending.debtor_name == "Chi Mai"
    assert pending.amount == 320.0
    assert pending.description == "rent"
    assert pending.is_paid is True
    assert pending.created_at == target.created_at
    assert pending.updated_at >= pending.created_at

    seeded_store.gate.set()
    updated = await task

    assert updated.debtor_name == "Chi Mai"
    assert names(seeded_manager) == ["Binh", "Chi Mai", "Dung"]
    assert seeded_store.rows[target.id].amount == 320.0


@pytest.mark.asyncio
async def test_update_failure_resyncs_from_store(seeded_manager, seeded_store, notifications, store_error):
    target = seeded_manager.records[0]
    seeded_store.fail_on["update"] = store_error

    with pytest.raises(DebtStoreError):
        await seeded_manager.update(target.id, "Someone Else", 999, "")

    assert seeded_manager.records == await seeded_store.select()
    assert seeded_manager.get(target.id).debtor_name == "Binh"
    assert notifications.drain()[-1].kind == NotificationKind.DESTRUCTIVE


@pytest.mark.asyncio
async def test_update_rejects_invalid_input(seeded_manager, seeded_store):
    target = seeded_manager.records[0]

    with pytest.raises(DebtValidationError):
        await seeded_manager.update(target.id, "Binh", "-1", "")

    assert seeded_store.calls == []
    assert seeded_manager.get(target.id).amount == 100.0


@pytest.mark.asyncio
async def test_update_unknown_id_raises_not_found(seeded_manager):
    before = seeded_manager.records

    with pytest.raises(DebtNotFoundError):
        await seeded_manager.update("507f1f77bcf86cd799439011", "Nobody", 5, "")

    assert seeded_manager.records == before


# ===== toggle_paid =====

@pytest.mark.asyncio
async def test_toggle_paid_flips_only_target(seeded_manager, seeded_store, notifications):
    target = seeded_manager.records[0]
    others = {d.id: d.is_paid for d in seeded_manager.records[1:]}

    toggled = await seeded_manager.toggle_paid(target.id)

    assert toggled.is_paid is True
    assert seeded_manager.get(target.id).is_paid is True
    assert seeded_store.rows[target.id].is_paid is True
    assert {d.id: d.is_paid for d in seeded_manager.records[1:]} == others
    [note] = notifications.drain()
    assert note.description == "Marked as paid for Binh"


@pytest.mark.asyncio
async def test_toggle_paid_twice_restores_state(seeded_manager, notifications):
    target = seeded_manager.records[1]

    await seeded_manager.toggle_paid(target.id)
    await seeded_manager.toggle_paid(target.id)

    assert seeded_manager.get(target.id).is_paid is True
    descriptions = [n.description for n in notifications.drain()]
    assert descriptions == ["Marked as unpaid for Chi", "Marked as paid for Chi"]


@pytest.mark.asyncio
async def test_toggle_paid_on_row_with_naive_timestamps(notifications):
    row = DebtRecord(
        _id=ObjectId(),
        debtor_name="Binh",
        amount=100,
        created_at=datetime(2024, 5, 1, 8, 30),
        updated_at=datetime(2024, 5, 1, 8, 30),
    )
    manager = DebtCollectionManager(FakeDebtStore([row]), notifications)
    await manager.refresh()

    toggled = await manager.toggle_paid(row.id)

    assert toggled.is_paid is True
    assert toggled.created_at.tzinfo is not None
    assert toggled.updated_at >= toggled.created_at


@pytest.mark.asyncio
async def test_toggle_paid_failure_resyncs(seeded_manager, seeded_store, store_error):
    target = seeded_manager.records[0]
    seeded_store.fail_on["update"] = store_error

    with pytest.raises(DebtStoreError):
        await seeded_manager.toggle_paid(target.id)

    assert seeded_manager.get(target.id).is_paid is False
    assert seeded_store.calls == ["update", "select"]


@pytest.mark.asyncio
async def test_toggle_paid_unknown_id(seeded_manager, seeded_store):
    with pytest.raises(DebtNotFoundError):
        await seeded_manager.toggle_paid("507f1f77bcf86cd799439011")

    assert seeded_store.calls == []


# ===== remove =====

@pytest.mark.asyncio
async def test_remove_hides_record_immediately(seeded_manager, seeded_store):
    target = seeded_manager.records[1]
    seeded_store.gate = asyncio.Event()

    task = asyncio.create_task(seeded_manager.remove(target.id))
    await asyncio.sleep(0)
    assert names(seeded_manager) == ["Binh", "Dung"]

    seeded_store.gate.set()
    await task

    assert names(seeded_manager) == ["Binh", "Dung"]
    assert target.id not in seeded_store.rows


@pytest.mark.asyncio
async def test_remove_failure_restores_record(seeded_manager, seeded_store, notifications, store_error):
    target = seeded_manager.records[2]
    seeded_store.fail_on["delete"] = store_error

    with pytest.raises(DebtStoreError):
        await seeded_manager.remove(target.id)

    assert names(seeded_manager) == ["Binh", "Chi", "Dung"]
    assert notifications.drain()[-1].description == "Could not delete the debt"


# ===== stats =====

def test_stats_scenario():
    manager = DebtCollectionManager(FakeDebtStore(), NotificationBuffer())
    manager._records = [make_debt("A", 100), make_debt("B", 300, is_paid=True)]

    stats = manager.stats()

    assert stats.model_dump() == {
        "total": 400,
        "unpaid": 100,
        "paid": 300,
        "total_count": 2,
        "unpaid_count": 1,
        "paid_count": 1,
    }


def test_stats_empty():
    manager = DebtCollectionManager(FakeDebtStore(), NotificationBuffer())

    stats = manager.stats()

    assert stats.total == 0
    assert stats.total_count == 0
    assert stats.paid == 0


@pytest.mark.parametrize("rows", [
    [(10, False)],
    [(10, True)],
    [(1, True), (2, False), (3, True), (4, False)],
    [(500000, False), (250000, False), (125000, True)],
    [(599.97, True), (738.39, True), (905.22, False), (768.01, True), (603.73, False)],
    [(0.1, False), (0.2, True), (0.3, False)],
])
def test_stats_totals_are_consistent(rows):
    manager = DebtCollectionManager(FakeDebtStore(), NotificationBuffer())
    manager._records = [make_debt("X", amount, is_paid=paid) for amount, paid in rows]

    stats = manager.stats()

    assert stats.total == stats.paid + stats.unpaid
    assert stats.total == sum((Decimal(str(amount)) for amount, _ in rows), Decimal(0))
    assert stats.unpaid_count + stats.paid_count == len(rows)


def test_stats_fractional_amounts_are_exact():
    manager = DebtCollectionManager(FakeDebtStore(), NotificationBuffer())
    manager._records = [
        make_debt("A", 599.97, is_paid=True),
        make_debt("B", 738.39, is_paid=True),
        make_debt("C", 905.22),
        make_debt("D", 768.01, is_paid=True),
        make_debt("E", "603.73"),
    ]

    stats = manager.stats()

    assert stats.total == Decimal("3615.32")
    assert stats.unpaid == Decimal("1508.95")
    assert stats.paid == Decimal("2106.37")
    assert stats.paid + stats.unpaid == stats.total
    assert stats.model_dump(mode="json")["total"] == 3615.32


@pytest.mark.asyncio
async def test_stats_follow_mutations(seeded_manager):
    await seeded_manager.toggle_paid(seeded_manager.records[0].id)

    stats = seeded_manager.stats()

    assert stats.unpaid == 50
    assert stats.paid == 400
    assert stats.paid_count == 2


# ===== read access =====

@pytest.mark.asyncio
async def test_records_returns_a_copy(seeded_manager):
    snapshot = seeded_manager.records
    snapshot.clear()

    assert len(seeded_manager.records) == 3
