from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from ..models import AuditLog
from ..sites import Site


async def log_action(
    db: AsyncSession,
    site: Site,
    username: Optional[str],
    action: str,
    entity_type: str,
    entity_id: Optional[int],
    payload: Optional[dict] = None,
    commit: bool = True,
):
    entry = AuditLog(
        partition=site.partition,
        username=username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        payload_json=payload,
        created_at=datetime.utcnow(),
    )
    db.add(entry)
    if commit:
        await db.commit()
    else:
        await db.flush()
