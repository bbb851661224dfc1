"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown.
  3. Routers are registered under /api/auth, /api/public, /api/tenant and
     /api/superadmin.
  4. Exception handlers render every failure as
     {"detail": ..., "code": ..., "errors": [...]}.

Run with:
    uvicorn main:app --reload              # development
    uvicorn main:app --workers 1           # maintenance flag is per process
"""

import traceback
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError

from bikedesk.api.routes import auth, public, superadmin, tenant
from bikedesk.core.config import settings
from bikedesk.core.errors import BikeDeskError, Conflict, RateLimited, ValidationFailed
from bikedesk.core.logging import configure_logging, get_logger
from bikedesk.core.rate_limit import limiter
from bikedesk.db.session import engine

logger = get_logger(__name__)


def _field_messages(exc: RequestValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup:
      - Configure structured logging
    Shutdown:
      - Dispose the async engine (graceful connection pool drain)
    """
    configure_logging()
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
        enforce_suspension=settings.ENFORCE_COMPANY_SUSPENSION,
    )
    yield
    logger.info("Shutting down, disposing DB engine")
    await engine.dispose()


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant bike dealership backend: inventory, sales, "
            "reporting and platform administration."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.limiter = limiter

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(public.router)
    app.include_router(tenant.router)
    app.include_router(superadmin.router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(BikeDeskError)
    async def domain_error_handler(request: Request, exc: BikeDeskError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("Request refused", path=request.url.path, code=exc.code)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationFailed("Validation failed", details=_field_messages(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        logger.warning(
            "Rate limit exceeded",
            path=request.url.path,
            client=request.client.host if request.client else None,
        )
        error = RateLimited(exc.detail)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning("Integrity error", path=request.url.path, error=str(exc.orig))
        error = Conflict("Resource conflicts with existing data")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        content = {"detail": "Internal server error", "code": "INTERNAL_ERROR"}
        if settings.DEBUG:
            content["traceback"] = traceback.format_exception(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/api/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
