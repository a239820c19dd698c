"""Partition-scoped persistence for equipment and withdrawals.

Every query in this module filters on ``Site.partition``. The repository
does not check stock sufficiency itself: callers that decrement quantities go
through :mod:`stockroom.services.withdrawals`.
"""
from contextlib import asynccontextmanager
from datetime import datetime, date
from typing import Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import EquipmentNotFound, InvalidRequest, WithdrawalNotFound
from ..models import Equipment, Withdrawal, User, UserRole
from ..schemas import EquipmentCreate, EquipmentUpdate
from ..sites import Site
from .audit import log_action


@asynccontextmanager
async def tx(db: AsyncSession):
    """
    Transaction helper tolerant to autobegin.
    If no transaction is active, opens one via begin().
    If a transaction is already active (autobegin after a SELECT),
    performs work and commits/rolls back manually.
    """
    if not db.in_transaction():
        async with db.begin():
            yield
    else:
        try:
            yield
            await db.commit()
        except Exception:
            await db.rollback()
            raise


async def list_equipment(db: AsyncSession, site: Site) -> list[Equipment]:
    stmt = (
        select(Equipment)
        .where(Equipment.partition == site.partition)
        .order_by(Equipment.created_at.desc(), Equipment.id.desc())
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def find_equipment_by_id(db: AsyncSession, site: Site, equipment_id: int) -> Equipment:
    stmt = (
        select(Equipment)
        .where(Equipment.id == equipment_id, Equipment.partition == site.partition)
        .execution_options(populate_existing=True)
    )
    res = await db.execute(stmt)
    equipment = res.scalar_one_or_none()
    if not equipment:
        raise EquipmentNotFound()
    return equipment


async def find_equipment_by_name(db: AsyncSession, site: Site, name: str) -> Optional[Equipment]:
    res = await db.execute(
        select(Equipment).where(Equipment.partition == site.partition, Equipment.name == name)
    )
    return res.scalar_one_or_none()


async def upsert_equipment(
    db: AsyncSession, site: Site, payload: EquipmentCreate, username: Optional[str] = None
) -> tuple[Equipment, bool]:
    """Insert, or update the record with the same name. Quantity is replaced, not added."""
    data = payload.model_dump(exclude_unset=True)
    existing = await find_equipment_by_name(db, site, payload.name)
    async with tx(db):
        if existing:
            for k, v in data.items():
                setattr(existing, k, v)
            existing.updated_at = datetime.utcnow()
            equipment, created = existing, False
        else:
            equipment = Equipment(partition=site.partition, created_at=datetime.utcnow(), **payload.model_dump())
            created = True
        db.add(equipment)
        await db.flush()
        await log_action(
            db,
            site,
            username,
            "equipment_create" if created else "equipment_update",
            "equipment",
            equipment.id,
            payload.model_dump(mode="json"),
            commit=False,
        )
    await db.refresh(equipment)
    return equipment, created


async def update_equipment(
    db: AsyncSession, site: Site, equipment_id: int, payload: EquipmentUpdate, username: Optional[str] = None
) -> Equipment:
    equipment = await find_equipment_by_id(db, site, equipment_id)
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    new_name = data.get("name")
    if new_name and new_name != equipment.name:
        clash = await find_equipment_by_name(db, site, new_name)
        if clash:
            raise InvalidRequest(f"Equipment named {new_name} already exists")
    async with tx(db):
        for k, v in data.items():
            setattr(equipment, k, v)
        equipment.updated_at = datetime.utcnow()
        db.add(equipment)
        await log_action(
            db,
            site,
            username,
            "equipment_update",
            "equipment",
            equipment.id,
            payload.model_dump(mode="json", exclude_unset=True),
            commit=False,
        )
    await db.refresh(equipment)
    return equipment


async def decrement_quantity(db: AsyncSession, site: Site, equipment_id: int, amount: int) -> bool:
    """Subtract ``amount`` only if at least that much is in stock; returns whether a row changed."""
    stmt = (
        update(Equipment)
        .where(
            Equipment.id == equipment_id,
            Equipment.partition == site.partition,
            Equipment.quantity >= amount,
        )
        .values(quantity=Equipment.quantity - amount, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    res = await db.execute(stmt)
    return res.rowcount == 1


async def list_low_stock(db: AsyncSession, site: Site, threshold: int) -> list[Equipment]:
    stmt = (
        select(Equipment)
        .where(Equipment.partition == site.partition, Equipment.quantity < threshold)
        .order_by(Equipment.quantity, Equipment.name)
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def list_withdrawals(
    db: AsyncSession,
    site: Site,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[Withdrawal]:
    stmt = select(Withdrawal).where(Withdrawal.partition == site.partition)
    if start_date:
        stmt = stmt.where(Withdrawal.withdrawal_date >= start_date)
    if end_date:
        stmt = stmt.where(Withdrawal.withdrawal_date <= end_date)
    res = await db.execute(stmt.order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc()))
    return list(res.scalars().all())


async def get_withdrawal(db: AsyncSession, site: Site, withdrawal_id: int) -> Withdrawal:
    res = await db.execute(
        select(Withdrawal).where(Withdrawal.id == withdrawal_id, Withdrawal.partition == site.partition)
    )
    withdrawal = res.scalar_one_or_none()
    if not withdrawal:
        raise WithdrawalNotFound()
    return withdrawal


async def insert_withdrawal(db: AsyncSession, site: Site, withdrawal: Withdrawal) -> Withdrawal:
    withdrawal.partition = site.partition
    db.add(withdrawal)
    await db.flush()
    return withdrawal


async def list_engineers(db: AsyncSession, site: Site) -> list[User]:
    stmt = (
        select(User)
        .where(User.partition == site.partition, User.role == UserRole.engineer)
        .order_by(User.created_at.desc(), User.id.desc())
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def count_rows(db: AsyncSession, model, site: Site, *criteria) -> int:
    stmt = select(func.count()).select_from(model).where(model.partition == site.partition, *criteria)
    res = await db.execute(stmt)
    return int(res.scalar_one())
