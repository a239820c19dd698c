from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Withdrawal
from ..schemas import DailyReport, WeeklyReport, EquipmentUsage
from ..sites import Site, all_sites
from . import inventory


def summarize_daily(site: Site, day: date, withdrawals: list[Withdrawal]) -> DailyReport:
    total = 0
    usage: dict[str, EquipmentUsage] = {}
    for withdrawal in withdrawals:
        for line in withdrawal.lines:
            total += line.quantity_withdrawn
            entry = usage.get(line.equipment_name)
            if entry is None:
                entry = usage[line.equipment_name] = EquipmentUsage(
                    equipment_name=line.equipment_name,
                    quantity_withdrawn=0,
                    unit=line.unit or "",
                    engineers=[],
                )
            entry.quantity_withdrawn += line.quantity_withdrawn
            if withdrawal.engineer_name not in entry.engineers:
                entry.engineers.append(withdrawal.engineer_name)
    return DailyReport(
        report_date=day,
        site_name=site.display_name,
        total_withdrawals=total,
        equipment_used=list(usage.values()),
    )


async def daily_report(db: AsyncSession, site: Site, day: date) -> DailyReport:
    # oldest first so engineers are listed in the order they withdrew
    withdrawals = await inventory.list_withdrawals(db, site, day, day)
    return summarize_daily(site, day, list(reversed(withdrawals)))


async def weekly_report(db: AsyncSession, site: Site, start: date, end: Optional[date] = None) -> WeeklyReport:
    end = end or start
    withdrawals = await inventory.list_withdrawals(db, site, start, end)
    total = sum(line.quantity_withdrawn for w in withdrawals for line in w.lines)
    return WeeklyReport(
        week_start_date=start,
        week_end_date=end,
        site_name=site.display_name,
        total_withdrawals=total,
    )


async def multi_site_withdrawals(
    db: AsyncSession, start: Optional[date], end: Optional[date]
) -> list[tuple[Site, list[Withdrawal]]]:
    """Withdrawals grouped per operational site; totals are never merged across sites."""
    blocks = []
    for site in all_sites():
        blocks.append((site, await inventory.list_withdrawals(db, site, start, end)))
    return blocks
