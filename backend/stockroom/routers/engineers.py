from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..deps import get_db, get_partition, require_role
from ..errors import DuplicateUser
from ..models import User, UserRole
from ..schemas import EngineerBase, EngineerCreate
from ..security import SessionData, hash_password
from ..services import inventory
from ..services.audit import log_action
from ..sites import Site, resolve_site

router = APIRouter()


@router.get("", response_model=list[EngineerBase])
async def list_engineers(db: AsyncSession = Depends(get_db), site: Site = Depends(get_partition)):
    return await inventory.list_engineers(db, site)


@router.post("", response_model=EngineerBase, status_code=status.HTTP_201_CREATED)
async def create_engineer(
    payload: EngineerCreate,
    db: AsyncSession = Depends(get_db),
    current: SessionData = Depends(require_role(UserRole.admin)),
):
    site = resolve_site(payload.site_name)
    username = payload.username.strip().lower()
    existing = await db.execute(select(User).where(User.partition == site.partition, User.username == username))
    if existing.scalar_one_or_none():
        raise DuplicateUser(f"Username already exists in the {site.display_name} database")
    user = User(
        partition=site.partition,
        username=username,
        name=payload.name.strip(),
        password_hash=hash_password(payload.password),
        role=UserRole.engineer,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    await log_action(
        db, site, current.username, "engineer_create", "user", user.id, {"username": user.username}, commit=False
    )
    await db.commit()
    await db.refresh(user)
    return user
