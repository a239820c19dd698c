"""Withdrawal engine.

A withdrawal is processed in three passes:

1. validate every line against the stock as it is before anything changes,
2. decrement each line's equipment in submitted order,
3. record an immutable withdrawal holding a snapshot of every line.

Passes 2 and 3 share one transaction. Each decrement is conditional on the
stock still being sufficient, so a withdrawal that loses a race with another
request is rolled back as a whole instead of driving a quantity negative.
"""
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import InvalidRequest, InsufficientStock
from ..models import Equipment, Withdrawal, WithdrawalLine
from ..schemas import WithdrawalCreate
from ..security import SessionData
from ..sites import Site
from . import inventory
from .audit import log_action


logger = logging.getLogger(__name__)


def _unit_value(unit) -> str:
    return getattr(unit, "value", unit) or ""


async def validate_lines(db: AsyncSession, site: Site, payload: WithdrawalCreate) -> list[tuple[Equipment, int]]:
    """Check all lines before any mutation; returns (equipment, quantity) pairs in order."""
    checked: list[tuple[Equipment, int]] = []
    requested: dict[int, int] = {}
    for item in payload.items:
        equipment = await inventory.find_equipment_by_id(db, site, item.equipment_id)
        requested[equipment.id] = requested.get(equipment.id, 0) + item.quantity_withdrawn
        if requested[equipment.id] > equipment.quantity:
            raise InsufficientStock(equipment.name)
        checked.append((equipment, item.quantity_withdrawn))
    return checked


async def create_withdrawal(
    db: AsyncSession, site: Site, session: SessionData, payload: WithdrawalCreate
) -> Withdrawal:
    if not payload.items:
        raise InvalidRequest("Withdrawal must contain at least one item")
    if payload.withdrawal_date is None:
        raise InvalidRequest("Withdrawal date is required")

    checked = await validate_lines(db, site, payload)

    withdrawal = Withdrawal(
        withdrawal_date=payload.withdrawal_date,
        engineer_name=session.name,
        description=payload.description or "",
        notes=payload.notes or "",
        created_at=datetime.utcnow(),
        lines=[
            WithdrawalLine(
                position=position,
                equipment_id=equipment.id,
                equipment_name=equipment.name,
                quantity_withdrawn=qty,
                unit=_unit_value(equipment.unit),
            )
            for position, (equipment, qty) in enumerate(checked)
        ],
    )

    async with inventory.tx(db):
        for equipment, qty in checked:
            applied = await inventory.decrement_quantity(db, site, equipment.id, qty)
            if not applied:
                logger.warning(
                    "stock for equipment %s in %s changed during withdrawal, rolling back",
                    equipment.id,
                    site.partition,
                )
                raise InsufficientStock(equipment.name)
        await inventory.insert_withdrawal(db, site, withdrawal)
        await log_action(
            db,
            site,
            session.username,
            "withdrawal_create",
            "withdrawal",
            withdrawal.id,
            {"items": [{"equipment_id": e.id, "qty": q} for e, q in checked]},
            commit=False,
        )

    for equipment, _ in checked:
        await db.refresh(equipment)
    logger.info(
        "withdrawal %s recorded in %s by %s (%d lines)",
        withdrawal.id,
        site.partition,
        session.username,
        len(checked),
    )
    return withdrawal
