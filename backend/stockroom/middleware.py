from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse

from .config import get_settings
from .deps import session_token
from .security import read_session


PUBLIC_PREFIXES = ("/auth/", "/static/", "/swagger", "/openapi.json")
PUBLIC_PATHS = {"/", "/health", "/ready", "/auth"}


def is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


class SessionGateMiddleware(BaseHTTPMiddleware):
    """Turns away requests without a valid session before they reach a router."""

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or is_public(request.url.path):
            return await call_next(request)
        if read_session(session_token(request)) is None:
            if "text/html" in request.headers.get("accept", ""):
                return RedirectResponse(get_settings().login_url, status_code=303)
            return JSONResponse({"detail": "Not authenticated"}, status_code=401)
        return await call_next(request)
