"""Application entry point for the retailer back-office API."""

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from retailer_desk.api.routes.admin import router as admin_router
from retailer_desk.api.routes.auth import router as auth_router
from retailer_desk.api.routes.reference import (
    areas_router,
    distributors_router,
    regions_router,
    territories_router,
)
from retailer_desk.api.routes.retailers import router as retailers_router
from retailer_desk.api.routes.sales_reps import router as sales_reps_router
from retailer_desk.api.routes.users import router as users_router
from retailer_desk.core.cache import CacheStore
from retailer_desk.core.config import settings
from retailer_desk.core.db import get_session
from retailer_desk.core.logging import setup_logging
from retailer_desk.core.middleware import BodySizeLimitMiddleware, RequestContextLogMiddleware
from retailer_desk.core.rate_limit import init_rate_limiter

setup_logging()

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

init_rate_limiter(app)

app.add_middleware(RequestContextLogMiddleware)


def _cors_origins() -> list[str]:
    if settings.ENV == "prod":
        if not settings.CORS_ALLOWED_ORIGINS:
            raise RuntimeError("CORS_ALLOWED_ORIGINS must be configured for prod")
        return settings.CORS_ALLOWED_ORIGINS
    return settings.CORS_ALLOWED_ORIGINS or ["http://localhost:5173"]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

app.add_middleware(BodySizeLimitMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)


def _envelope(message: str, status_code: int, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "data": None, "message": message},
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _envelope(str(exc.detail), exc.status_code, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = [
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return _envelope("; ".join(messages) or "Invalid request", 400)


@app.on_event("startup")
async def startup_event():
    """Create the shared cache store; Redis is used when reachable."""

    cache_store = CacheStore.from_settings()
    await cache_store.connect()
    app.state.cache_store = cache_store
    logger.bind(backend=cache_store.backend).info("app_started")


@app.on_event("shutdown")
async def shutdown_event():
    cache_store = getattr(app.state, "cache_store", None)
    if cache_store is not None:
        await cache_store.close()


@app.get("/api/healthz", tags=["system"], summary="Liveness probe")
def healthz() -> dict[str, str]:
    """Simple liveness probe that load balancers and monitors can call."""

    return {"status": "ok"}


@app.get("/api/readyz", tags=["system"], summary="Readiness probe")
async def readyz(session: AsyncSession = Depends(get_session)):
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Database not reachable")
    return {"ready": True}


app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(retailers_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(sales_reps_router, prefix="/api")
app.include_router(regions_router, prefix="/api")
app.include_router(areas_router, prefix="/api")
app.include_router(territories_router, prefix="/api")
app.include_router(distributors_router, prefix="/api")
