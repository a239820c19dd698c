import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..db import get_session
from ..errors import Unauthorized, DuplicateUser
from ..models import User, UserRole
from ..schemas import LoginPayload, AdminLoginPayload, SignupPayload, SessionOut, SessionEnvelope
from ..security import (
    SESSION_COOKIE_NAME,
    SessionData,
    create_session,
    hash_password,
    session_max_age,
    verify_password,
)
from ..config import get_settings
from ..deps import get_optional_session
from ..services.audit import log_action
from ..sites import Site, resolve_site, warehouse
from ..rate_limit import limiter


router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


async def _find_user(db: AsyncSession, site: Site, username: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.partition == site.partition, User.username == username))
    return res.scalar_one_or_none()


async def _authenticate(db: AsyncSession, site: Site, username: str, password: str) -> User:
    user = await _find_user(db, site, username.strip().lower())
    if not user or not verify_password(password, user.password_hash):
        logger.warning("failed login for %r on %s", username, site.key)
        raise Unauthorized("Invalid credentials")
    if not user.is_active:
        raise Unauthorized("User inactive")
    return user


def _issue(response: Response, user: User, site: Site) -> SessionOut:
    session = SessionData(role=user.role, name=user.name or user.username, username=user.username, site=site.key)
    token = create_session(session.role, session.name, session.username, session.site)
    _set_session_cookie(response, token)
    return SessionOut(**session.model_dump())


@router.post("/login", response_model=SessionOut)
@limiter.limit(f"{settings.rate_limit_login_per_min}/minute")
async def login(request: Request, response: Response, payload: LoginPayload, db: AsyncSession = Depends(get_session)):
    site = resolve_site(payload.site)
    user = await _authenticate(db, site, payload.username, payload.password)
    await log_action(db, site, user.username, "login", "user", user.id, None)
    return _issue(response, user, site)


@router.post("/admin-login", response_model=SessionOut)
@limiter.limit(f"{settings.rate_limit_login_per_min}/minute")
async def admin_login(
    request: Request, response: Response, payload: AdminLoginPayload, db: AsyncSession = Depends(get_session)
):
    site = warehouse()
    user = await _authenticate(db, site, payload.username, payload.password)
    if user.role != UserRole.admin:
        raise Unauthorized("Invalid credentials")
    await log_action(db, site, user.username, "login", "user", user.id, None)
    return _issue(response, user, site)


@router.post("/signup", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def signup(response: Response, payload: SignupPayload, db: AsyncSession = Depends(get_session)):
    site = resolve_site(payload.site)
    username = payload.username.strip().lower()
    if await _find_user(db, site, username):
        raise DuplicateUser()
    user = User(
        partition=site.partition,
        username=username,
        name=(payload.name or "").strip() or username,
        password_hash=hash_password(payload.password),
        role=UserRole.engineer,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    await log_action(db, site, user.username, "signup", "user", user.id, None, commit=False)
    await db.commit()
    await db.refresh(user)
    return _issue(response, user, site)


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return {"detail": "ok"}


@router.get("/session", response_model=SessionEnvelope)
async def current_session(session: Optional[SessionData] = Depends(get_optional_session)):
    return SessionEnvelope(user=SessionOut(**session.model_dump()) if session else None)


def _set_session_cookie(response: Response, token: str):
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.is_production,
        max_age=int(session_max_age().total_seconds()),
        samesite="lax",
        path="/",
    )
