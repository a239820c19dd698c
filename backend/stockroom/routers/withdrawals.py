from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from ..deps import get_db, get_current_session, get_partition, date_range
from ..schemas import WithdrawalBase, WithdrawalCreate, WithdrawalCreated
from ..security import SessionData
from ..services import inventory
from ..services import withdrawals as withdrawal_service
from ..services.pdf import render_withdrawal_receipt
from ..sites import Site


router = APIRouter()


@router.post("", response_model=WithdrawalCreated, status_code=status.HTTP_201_CREATED)
async def create_withdrawal(
    payload: WithdrawalCreate,
    db: AsyncSession = Depends(get_db),
    site: Site = Depends(get_partition),
    current: SessionData = Depends(get_current_session),
):
    withdrawal = await withdrawal_service.create_withdrawal(db, site, current, payload)
    return WithdrawalCreated(id=withdrawal.id)


@router.get("", response_model=list[WithdrawalBase])
async def list_withdrawals(
    db: AsyncSession = Depends(get_db),
    site: Site = Depends(get_partition),
    window: tuple[Optional[date], Optional[date]] = Depends(date_range),
):
    start_date, end_date = window
    return await inventory.list_withdrawals(db, site, start_date, end_date)


@router.get("/{withdrawal_id}", response_model=WithdrawalBase)
async def get_withdrawal(withdrawal_id: int, db: AsyncSession = Depends(get_db), site: Site = Depends(get_partition)):
    return await inventory.get_withdrawal(db, site, withdrawal_id)


@router.get("/{withdrawal_id}/receipt.pdf")
async def withdrawal_receipt(
    withdrawal_id: int, db: AsyncSession = Depends(get_db), site: Site = Depends(get_partition)
):
    withdrawal = await inventory.get_withdrawal(db, site, withdrawal_id)
    pdf_bytes = render_withdrawal_receipt(withdrawal, site)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="withdrawal-{withdrawal.id}.pdf"'},
    )
