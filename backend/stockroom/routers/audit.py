from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..models import AuditLog, UserRole
from ..schemas import AuditEntry
from ..deps import get_db, get_partition, require_role
from ..sites import Site


router = APIRouter()


@router.get("", response_model=list[AuditEntry])
async def list_audit(
    db: AsyncSession = Depends(get_db),
    site: Site = Depends(get_partition),
    entity_type: str | None = Query(None),
    username: str | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    current=Depends(require_role(UserRole.admin)),
):
    stmt = select(AuditLog).where(AuditLog.partition == site.partition)
    if entity_type:
        stmt = stmt.where(AuditLog.entity_type == entity_type)
    if username:
        stmt = stmt.where(AuditLog.username == username)
    if date_from:
        stmt = stmt.where(AuditLog.created_at >= date_from)
    if date_to:
        stmt = stmt.where(AuditLog.created_at <= date_to)
    stmt = stmt.order_by(AuditLog.created_at.desc()).limit(200)
    res = await db.execute(stmt)
    return res.scalars().all()
