from datetime import date
from typing import Optional

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from .db import get_session
from .errors import Forbidden, InvalidRequest
from .models import UserRole
from .security import SESSION_COOKIE_NAME, SessionData, read_session, require_role as check_role
from .sites import Site, resolve_partition, resolve_site, warehouse


async def get_db(session: AsyncSession = Depends(get_session)) -> AsyncSession:
    return session


def session_token(request: Request) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        auth = request.headers.get("Authorization")
        if auth and auth.lower().startswith("bearer "):
            token = auth.split(" ", 1)[1]
    return token


async def get_optional_session(request: Request) -> Optional[SessionData]:
    return read_session(session_token(request))


async def get_current_session(session: Optional[SessionData] = Depends(get_optional_session)) -> SessionData:
    return check_role(session)


def require_role(*roles: UserRole):
    async def _checker(session: Optional[SessionData] = Depends(get_optional_session)) -> SessionData:
        return check_role(session, *roles)

    return _checker


async def get_partition(
    site: Optional[str] = Query(None, description="Site to act on; administrators only"),
    session: SessionData = Depends(get_current_session),
) -> Site:
    """Engineers are pinned to their own site; administrators default to the warehouse."""
    if session.role == UserRole.admin:
        return resolve_partition(site) if site else warehouse()
    own = resolve_site(session.site)
    if site and resolve_site(site) != own:
        raise Forbidden("Engineers can only access their own site")
    return own


def check_window(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date > end_date:
        raise InvalidRequest("start_date must not be after end_date")


def date_range(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> tuple[Optional[date], Optional[date]]:
    check_window(start_date, end_date)
    return start_date, end_date
