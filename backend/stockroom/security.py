import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from .config import get_settings
from .errors import Unauthorized, Forbidden, InvalidSite
from .models import UserRole
from .sites import resolve_partition


SESSION_COOKIE_NAME = "stockroom_session"
ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")
logger = logging.getLogger(__name__)


class SessionData(BaseModel):
    role: UserRole
    name: str
    username: str
    site: str

    class Config:
        frozen = True


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def session_max_age() -> timedelta:
    return timedelta(hours=get_settings().session_max_age_hours)


def create_session(role: UserRole, name: str, username: str, site: str) -> str:
    settings = get_settings()
    claims = {
        "role": UserRole(role).value,
        "name": name,
        "username": username,
        "site": site,
        "exp": datetime.now(timezone.utc) + session_max_age(),
    }
    return jwt.encode(claims, settings.session_secret, algorithm=ALGORITHM)


def read_session(token: Optional[str]) -> Optional[SessionData]:
    """Decode a session token; any problem with it yields ``None``."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, get_settings().session_secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload, dict) or not all(payload.get(k) for k in ("role", "username", "site")):
        return None
    try:
        resolve_partition(payload["site"])
        return SessionData(
            role=payload["role"],
            name=payload.get("name") or payload["username"],
            username=payload["username"],
            site=payload["site"],
        )
    except (ValidationError, InvalidSite, TypeError):
        logger.debug("discarding session with unusable claims")
        return None


def require_role(session: Optional[SessionData], *roles: UserRole) -> SessionData:
    if session is None:
        raise Unauthorized()
    if roles and session.role not in roles:
        raise Forbidden()
    return session
