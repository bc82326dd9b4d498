"""
FastAPI application entry point.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dialer import __version__
from dialer.calls.router import router as calls_router
from dialer.config import get_settings
from dialer.dashboard.router import router as dashboard_router
from dialer.shared.database import DatabaseManager
from dialer.shared.exceptions import (
    ConfigurationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from dialer.shared.logging import CorrelationIdMiddleware, get_logger, setup_logging
from dialer.telephony.factory import get_telephony_provider
from dialer.telephony.interface import CallInitiationError
from dialer.telephony.webhooks.router import router as telephony_webhooks_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()

    logger.info("Application starting", extra={"env": settings.app_env})

    db = DatabaseManager(settings.database_url)
    await db.create_schema()
    app.state.db = db
    provider = get_telephony_provider()
    app.state.started_at = time.monotonic()

    yield

    logger.info("Shutting down application")
    provider.close()
    await db.close()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Outbound IVR Dialer API",
        description="Outbound calls with an IVR menu and call lifecycle tracking",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.started_at = time.monotonic()

    # Map domain exceptions to HTTP responses
    @app.exception_handler(NotFoundError)
    async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def _validation(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def _storage(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(
            "Storage failure",
            extra={
                "call_sid": exc.call_sid,
                "operation": exc.operation,
                "path": request.url.path,
            },
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )

    @app.exception_handler(CallInitiationError)
    async def _call_initiation(_: Request, exc: CallInitiationError) -> JSONResponse:
        logger.error(
            "Call initiation failed",
            extra={"error_code": exc.error_code, "error": str(exc)},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Failed to start call"},
        )

    @app.exception_handler(ConfigurationError)
    async def _configuration(_: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("Server misconfigured", extra={"error": str(exc)})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Failed to start call"},
        )

    # Request validation (FastAPI/Pydantic) -> consistent 422 payload
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "errors": errors,
                }
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    # Include routers
    app.include_router(calls_router)
    app.include_router(telephony_webhooks_router)
    app.include_router(dashboard_router)

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, Any]:
        uptime = time.monotonic() - request.app.state.started_at
        return {"status": "ok", "uptime": round(uptime, 3)}

    return app


app = create_app()
