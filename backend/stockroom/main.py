import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler
from sqlalchemy.exc import SQLAlchemyError
from .config import get_settings
from .db import dispose_engine
from .errors import InternalError, InvalidRequest
from .middleware import SessionGateMiddleware
from .models import LedgerImmutableError
from .rate_limit import limiter
from .sites import validate_registry
from .routers import (
    auth,
    engineers,
    equipment,
    withdrawals,
    reports,
    stats,
    audit,
    health,
)


settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_registry(settings)
    yield
    await dispose_engine()


app = FastAPI(title="Stockroom API", version="0.1.0", docs_url="/swagger", redoc_url=None, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def invalid_request_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=InvalidRequest.status_code,
        content={"detail": InvalidRequest.default_detail, "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(SQLAlchemyError)
@app.exception_handler(LedgerImmutableError)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": InternalError.default_detail})


app.add_middleware(SessionGateMiddleware)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(engineers.router, prefix="/engineers", tags=["engineers"])
app.include_router(equipment.router, prefix="/equipment", tags=["equipment"])
app.include_router(withdrawals.router, prefix="/withdrawals", tags=["withdrawals"])
app.include_router(reports.router, prefix="/reports", tags=["reports"])
app.include_router(stats.router, prefix="/stats", tags=["stats"])
app.include_router(audit.router, prefix="/audit", tags=["audit"])


@app.get("/")
async def root():
    return {"status": "ok"}
