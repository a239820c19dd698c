from datetime import date
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from ..deps import get_db, get_current_session, get_partition, require_role, date_range, check_window
from ..errors import Forbidden
from ..models import UserRole
from ..schemas import DailyReport, WeeklyReport, ReportType
from ..security import SessionData
from ..services import inventory, reports
from ..services.excel import XLSX_MEDIA_TYPE, build_site_workbook, build_multi_site_workbook
from ..services.pdf import render_daily_report_pdf
from ..sites import Site, resolve_site


router = APIRouter()


def _report_site(site_name: str, session: SessionData) -> Site:
    site = resolve_site(site_name)
    if session.role != UserRole.admin and resolve_site(session.site) != site:
        raise Forbidden("Engineers can only report on their own site")
    return site


def _attachment(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("", response_model=Union[DailyReport, WeeklyReport])
async def get_report(
    type: ReportType = Query(...),
    site_name: str = Query(..., min_length=1),
    start_date: date = Query(...),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    current: SessionData = Depends(get_current_session),
):
    site = _report_site(site_name, current)
    check_window(start_date, end_date)
    if type == ReportType.daily:
        return await reports.daily_report(db, site, start_date)
    return await reports.weekly_report(db, site, start_date, end_date)


@router.get("/daily.pdf")
async def daily_report_pdf(
    site_name: str = Query(..., min_length=1),
    start_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
    current: SessionData = Depends(get_current_session),
):
    site = _report_site(site_name, current)
    report = await reports.daily_report(db, site, start_date)
    return _attachment(
        render_daily_report_pdf(report), "application/pdf", f"daily-report-{site.key}-{start_date.isoformat()}.pdf"
    )


@router.get("/site-export")
async def site_export(db: AsyncSession = Depends(get_db), site: Site = Depends(get_partition)):
    equipment = await inventory.list_equipment(db, site)
    withdrawals = await inventory.list_withdrawals(db, site)
    return _attachment(build_site_workbook(equipment, withdrawals), XLSX_MEDIA_TYPE, f"{site.key}-site-report.xlsx")


@router.get("/export")
async def multi_site_export(
    db: AsyncSession = Depends(get_db),
    window: tuple[Optional[date], Optional[date]] = Depends(date_range),
    current: SessionData = Depends(require_role(UserRole.admin)),
):
    start_date, end_date = window
    blocks = await reports.multi_site_withdrawals(db, start_date, end_date)
    return _attachment(build_multi_site_workbook(blocks), XLSX_MEDIA_TYPE, "withdrawals-all-sites.xlsx")
