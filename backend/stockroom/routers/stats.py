from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from ..config import get_settings
from ..deps import get_db, get_partition
from ..models import Equipment, User, UserRole, Withdrawal
from ..schemas import DashboardStats
from ..services.inventory import count_rows
from ..sites import Site

router = APIRouter()


@router.get("", response_model=DashboardStats)
async def dashboard_stats(db: AsyncSession = Depends(get_db), site: Site = Depends(get_partition)):
    threshold = get_settings().low_stock_threshold
    return DashboardStats(
        total_engineers=await count_rows(db, User, site, User.role == UserRole.engineer),
        total_equipment=await count_rows(db, Equipment, site),
        total_withdrawals=await count_rows(db, Withdrawal, site),
        low_stock_items=await count_rows(db, Equipment, site, Equipment.quantity < threshold),
    )
