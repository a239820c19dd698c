import asyncio
from datetime import datetime
from sqlalchemy import select
from stockroom.db import get_sessionmaker, dispose_engine
from stockroom.models import (
    User,
    UserRole,
    Equipment,
    EquipmentCategory,
    EquipmentUnit,
    EquipmentCondition,
)
from stockroom.security import hash_password
from stockroom.sites import all_sites, warehouse


async def run():
    async with get_sessionmaker()() as session:
        await seed_users(session)
        await seed_equipment(session)
        await session.commit()
    await dispose_engine()


async def seed_users(session):
    users = [(warehouse(), "admin", "Administrator", "admin123", UserRole.admin)]
    for site in all_sites():
        login = f"eng.{site.key.lower()}"
        users.append((site, login, f"Engineer {site.display_name}", "engineer123", UserRole.engineer))
    for site, login, name, pwd, role in users:
        res = await session.execute(select(User).where(User.partition == site.partition, User.username == login))
        if res.scalar_one_or_none():
            continue
        session.add(
            User(
                partition=site.partition,
                username=login,
                name=name,
                password_hash=hash_password(pwd),
                role=role,
                is_active=True,
            )
        )


async def seed_equipment(session):
    sample = [
        ("Drill", EquipmentCategory.power_tools, 10, EquipmentUnit.pieces, "Shelf A1"),
        ("Cable 2.5mm", EquipmentCategory.materials, 200, EquipmentUnit.meters, "Reel rack"),
        ("Safety helmet", EquipmentCategory.safety_equipment, 25, EquipmentUnit.pieces, "Locker 3"),
        ("Screwdriver set", EquipmentCategory.hand_tools, 4, EquipmentUnit.sets, "Shelf B2"),
    ]
    for site in all_sites() + [warehouse()]:
        for name, category, qty, unit, location in sample:
            res = await session.execute(
                select(Equipment).where(Equipment.partition == site.partition, Equipment.name == name)
            )
            if res.scalar_one_or_none():
                continue
            session.add(
                Equipment(
                    partition=site.partition,
                    name=name,
                    category=category,
                    quantity=qty,
                    unit=unit,
                    location=location,
                    condition=EquipmentCondition.new,
                    created_at=datetime.utcnow(),
                )
            )


if __name__ == "__main__":
    asyncio.run(run())
