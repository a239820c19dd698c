from datetime import date

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from conftest import add_equipment
from stockroom.errors import EquipmentNotFound, InsufficientStock, InvalidRequest
from stockroom.models import AuditLog, LedgerImmutableError, Withdrawal, WithdrawalLine
from stockroom.schemas import EquipmentUpdate, WithdrawalCreate
from stockroom.services import inventory, withdrawals


def _payload(*items, day=date(2024, 1, 10), **extra) -> WithdrawalCreate:
    return WithdrawalCreate(
        withdrawal_date=day,
        description=extra.get("description", "Site visit"),
        notes=extra.get("notes"),
        items=[{"equipment_id": eid, "quantity_withdrawn": qty} for eid, qty in items],
    )


async def _quantity(session_factory, site, equipment_id) -> int:
    async with session_factory() as fresh:
        return (await inventory.find_equipment_by_id(fresh, site, equipment_id)).quantity


async def test_withdrawal_decrements_and_records(db_session, session_factory, enam, engineer_session):
    drill = await add_equipment(db_session, enam, "Drill", 5)
    cable = await add_equipment(db_session, enam, "Cable", 100)

    created = await withdrawals.create_withdrawal(
        db_session, enam, engineer_session, _payload((drill.id, 2), (cable.id, 30))
    )

    assert await _quantity(session_factory, enam, drill.id) == 3
    assert await _quantity(session_factory, enam, cable.id) == 70

    async with session_factory() as fresh:
        stored = await inventory.get_withdrawal(fresh, enam, created.id)
        assert stored.engineer_name == "Alice"
        assert stored.withdrawal_date == date(2024, 1, 10)
        assert [(l.equipment_name, l.quantity_withdrawn, l.unit) for l in stored.lines] == [
            ("Drill", 2, "pieces"),
            ("Cable", 30, "pieces"),
        ]
        audit = (await fresh.execute(select(AuditLog).where(AuditLog.action == "withdrawal_create"))).scalar_one()
        assert audit.entity_id == created.id
        assert audit.username == "alice"


async def test_insufficient_line_applies_nothing(db_session, session_factory, enam, engineer_session):
    """
    GIVEN Drill=5 and Cable=100
    WHEN a withdrawal asks for 2 Cable and 6 Drill
    THEN it fails naming Drill and neither quantity changes
    """
    drill_id = (await add_equipment(db_session, enam, "Drill", 5)).id
    cable_id = (await add_equipment(db_session, enam, "Cable", 100)).id

    with pytest.raises(InsufficientStock) as exc:
        await withdrawals.create_withdrawal(
            db_session, enam, engineer_session, _payload((cable_id, 2), (drill_id, 6))
        )
    assert exc.value.detail == "Insufficient stock for Drill"
    assert exc.value.status_code == 409

    assert await _quantity(session_factory, enam, drill_id) == 5
    assert await _quantity(session_factory, enam, cable_id) == 100
    async with session_factory() as fresh:
        assert await inventory.list_withdrawals(fresh, enam) == []


async def test_withdrawing_exact_stock_reaches_zero(db_session, session_factory, enam, engineer_session):
    drill_id = (await add_equipment(db_session, enam, "Drill", 4)).id
    await withdrawals.create_withdrawal(db_session, enam, engineer_session, _payload((drill_id, 4)))
    assert await _quantity(session_factory, enam, drill_id) == 0

    with pytest.raises(InsufficientStock):
        await withdrawals.create_withdrawal(db_session, enam, engineer_session, _payload((drill_id, 1)))
    assert await _quantity(session_factory, enam, drill_id) == 0


async def test_duplicate_lines_are_checked_against_their_sum(db_session, session_factory, enam, engineer_session):
    drill_id = (await add_equipment(db_session, enam, "Drill", 5)).id

    with pytest.raises(InsufficientStock):
        await withdrawals.create_withdrawal(
            db_session, enam, engineer_session, _payload((drill_id, 3), (drill_id, 3))
        )
    assert await _quantity(session_factory, enam, drill_id) == 5

    await withdrawals.create_withdrawal(db_session, enam, engineer_session, _payload((drill_id, 2), (drill_id, 3)))
    assert await _quantity(session_factory, enam, drill_id) == 0


async def test_unknown_or_foreign_equipment_is_rejected(db_session, enam, ismp, engineer_session):
    foreign = await add_equipment(db_session, ismp, "Drill", 10)
    with pytest.raises(EquipmentNotFound):
        await withdrawals.create_withdrawal(db_session, enam, engineer_session, _payload((foreign.id, 1)))
    with pytest.raises(EquipmentNotFound):
        await withdrawals.create_withdrawal(db_session, enam, engineer_session, _payload((9999, 1)))


async def test_stock_change_between_validation_and_decrement_rolls_back(
    db_session, session_factory, enam, engineer_session, monkeypatch
):
    """
    GIVEN validation that has already passed for two lines
    WHEN the second line's stock is gone by the time it is decremented
    THEN the first line's decrement is rolled back too
    """
    drill = await add_equipment(db_session, enam, "Drill", 5)
    saw = await add_equipment(db_session, enam, "Saw", 1)

    async def stale_validation(db, site, payload):
        return [(drill, 2), (saw, 3)]

    drill_id, saw_id = drill.id, saw.id
    monkeypatch.setattr(withdrawals, "validate_lines", stale_validation)

    with pytest.raises(InsufficientStock) as exc:
        await withdrawals.create_withdrawal(db_session, enam, engineer_session, _payload((drill_id, 2), (saw_id, 3)))
    assert exc.value.detail == "Insufficient stock for Saw"

    assert await _quantity(session_factory, enam, drill_id) == 5
    assert await _quantity(session_factory, enam, saw_id) == 1
    async with session_factory() as fresh:
        assert await inventory.list_withdrawals(fresh, enam) == []


async def test_snapshot_survives_equipment_rename(db_session, session_factory, enam, engineer_session):
    drill = await add_equipment(db_session, enam, "Drill", 5)
    created = await withdrawals.create_withdrawal(db_session, enam, engineer_session, _payload((drill.id, 1)))

    await inventory.update_equipment(db_session, enam, drill.id, EquipmentUpdate(name="Power Drill"))

    async with session_factory() as fresh:
        stored = await inventory.get_withdrawal(fresh, enam, created.id)
        assert stored.lines[0].equipment_name == "Drill"
        assert stored.lines[0].equipment_id == drill.id


def test_empty_or_invalid_items_rejected():
    with pytest.raises(ValidationError):
        _payload()
    with pytest.raises(ValidationError):
        WithdrawalCreate(withdrawal_date=date(2024, 1, 10), items=[{"equipment_id": 1, "quantity_withdrawn": 0}])
    with pytest.raises(ValidationError):
        WithdrawalCreate(withdrawal_date=date(2024, 1, 10), items=[{"equipment_id": 1, "quantity_withdrawn": "2"}])


async def test_engine_rejects_payload_without_items(db_session, enam, engineer_session):
    payload = WithdrawalCreate.model_construct(withdrawal_date=date(2024, 1, 10), description="", notes=None, items=[])
    with pytest.raises(InvalidRequest):
        await withdrawals.create_withdrawal(db_session, enam, engineer_session, payload)


async def test_recorded_withdrawals_are_immutable(db_session, session_factory, enam, engineer_session):
    drill = await add_equipment(db_session, enam, "Drill", 5)
    created = await withdrawals.create_withdrawal(db_session, enam, engineer_session, _payload((drill.id, 1)))

    async with session_factory() as fresh:
        line = (await fresh.execute(select(WithdrawalLine).where(WithdrawalLine.withdrawal_id == created.id))).scalar_one()
        line.quantity_withdrawn = 99
        with pytest.raises(LedgerImmutableError):
            await fresh.commit()

    async with session_factory() as fresh:
        stored = (await fresh.execute(select(Withdrawal).where(Withdrawal.id == created.id))).scalar_one()
        await fresh.delete(stored)
        with pytest.raises(LedgerImmutableError):
            await fresh.commit()
