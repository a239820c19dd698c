from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from ..config import get_settings
from ..deps import get_db, get_current_session, get_partition
from ..schemas import EquipmentBase, EquipmentCreate, EquipmentUpdate, EquipmentUpsertResult
from ..security import SessionData
from ..services import inventory
from ..sites import Site

router = APIRouter()


@router.get("", response_model=list[EquipmentBase])
async def list_equipment(db: AsyncSession = Depends(get_db), site: Site = Depends(get_partition)):
    return await inventory.list_equipment(db, site)


@router.get("/low-stock", response_model=list[EquipmentBase])
async def low_stock(
    db: AsyncSession = Depends(get_db),
    site: Site = Depends(get_partition),
    threshold: Optional[int] = Query(None, ge=1),
):
    return await inventory.list_low_stock(db, site, threshold or get_settings().low_stock_threshold)


@router.post("", response_model=EquipmentUpsertResult)
async def upsert_equipment(
    payload: EquipmentCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    site: Site = Depends(get_partition),
    current: SessionData = Depends(get_current_session),
):
    equipment, created = await inventory.upsert_equipment(db, site, payload, current.username)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return EquipmentUpsertResult(**EquipmentBase.model_validate(equipment).model_dump(), created=created)


@router.get("/{equipment_id}", response_model=EquipmentBase)
async def get_equipment(equipment_id: int, db: AsyncSession = Depends(get_db), site: Site = Depends(get_partition)):
    return await inventory.find_equipment_by_id(db, site, equipment_id)


@router.put("/{equipment_id}", response_model=EquipmentBase)
async def update_equipment(
    equipment_id: int,
    payload: EquipmentUpdate,
    db: AsyncSession = Depends(get_db),
    site: Site = Depends(get_partition),
    current: SessionData = Depends(get_current_session),
):
    return await inventory.update_equipment(db, site, equipment_id, payload, current.username)
