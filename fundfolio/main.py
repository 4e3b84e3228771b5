# fundfolio/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application (schema is ensured on startup)
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)

Run with:
    uvicorn fundfolio.main:app --reload
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from fundfolio import __version__
from fundfolio.config import settings
from fundfolio.database import get_db, init_db
from fundfolio.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
    RATE_LIMIT_HEALTH,
)
from fundfolio.routers import portfolios_router, valuation_router
from fundfolio.schemas.errors import ErrorDetail, ValidationErrorDetail
from fundfolio.services.constants import HISTORY_INTERVALS
from fundfolio.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidIntervalError,
    InvalidDateRangeError,
    NotFoundError,
    PortfolioNotFoundError,
    DataIntegrityError,
)
from fundfolio.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


# =============================================================================
# APPLICATION SETUP
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()
    logger.info(f"{settings.app_name} started (environment={settings.environment})")
    yield
    logger.info(f"{settings.app_name} shutting down")


app = FastAPI(
    title=settings.app_name,
    description="Fund portfolio valuation and history API",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================
# Origins are configured via CORS_ORIGINS environment variable

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

# Attach limiter to app state (required by slowapi)
app.state.limiter = limiter

app.add_middleware(SlowAPIMiddleware)

# Correlation IDs are set first so every later log line carries them
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service-layer exceptions are converted to consistent HTTP responses here.
# Starlette picks the handler of the most specific class in the MRO, so the
# subclass handlers win over the ServiceError fallback.
# =============================================================================

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(PortfolioNotFoundError)
async def portfolio_not_found_handler(
    request: Request, exc: PortfolioNotFoundError
) -> JSONResponse:
    """Handle portfolio not found errors (404)."""
    logger.warning(f"Portfolio not found: {exc.portfolio_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="PortfolioNotFoundError",
            message=str(exc),
            details={"portfolio_id": exc.portfolio_id},
        ).model_dump(),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle other not found errors (404)."""
    logger.warning(f"{exc.resource_type or 'Resource'} not found: {exc.resource_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="NotFoundError",
            message=str(exc),
            details={
                "resource_type": exc.resource_type,
                "resource_id": exc.resource_id,
            } if exc.resource_type else None,
        ).model_dump(),
    )


@app.exception_handler(InvalidIntervalError)
async def invalid_interval_handler(
    request: Request, exc: InvalidIntervalError
) -> JSONResponse:
    """Handle invalid interval errors (400)."""
    logger.warning(f"Invalid interval: {exc.interval}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="InvalidIntervalError",
            message=str(exc),
            details={"interval": exc.interval, "valid_options": list(HISTORY_INTERVALS)},
        ).model_dump(),
    )


@app.exception_handler(InvalidDateRangeError)
async def invalid_date_range_handler(
    request: Request, exc: InvalidDateRangeError
) -> JSONResponse:
    """Handle inverted date ranges (400)."""
    logger.warning(f"Invalid date range: {exc.start_date} > {exc.end_date}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="InvalidDateRangeError",
            message=str(exc),
            details={
                "start_date": exc.start_date.isoformat(),
                "end_date": exc.end_date.isoformat(),
            },
        ).model_dump(),
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="ValidationError",
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(DataIntegrityError)
async def data_integrity_error_handler(
    request: Request, exc: DataIntegrityError
) -> JSONResponse:
    """Handle inconsistent ledger data (500)."""
    logger.error(
        f"Data integrity error (portfolio_fund={exc.portfolio_fund_id}, "
        f"transaction={exc.transaction_id}): {exc}"
    )
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="DataIntegrityError",
            message=str(exc),
            details={
                "portfolio_fund_id": exc.portfolio_fund_id,
                "transaction_id": exc.transaction_id,
            },
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Registered on Starlette's base class so routing errors (unknown path,
    wrong method) are covered as well as HTTPException raised by routers.

    Converts FastAPI's default {"detail": "..."} format to our standard
    ErrorDetail format for API consistency.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        409: "ConflictError",
        422: "ValidationError",
        429: "RateLimitError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    error_type = error_types.get(exc.status_code, "HTTPError")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_type,
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors with consistent format.

    Converts the default 422 validation error to our ValidationErrorDetail format.
    """
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(
            error="ValidationError",
            message="Request validation failed",
            details=errors,
        ).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(valuation_router)  # /portfolios/summary, /portfolios/{id}/history, ...
app.include_router(portfolios_router)  # /portfolios/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def root(request: Request):
    """
    API root - returns basic application info.
    """
    return {
        "message": f"Welcome to {settings.app_name}!",
        "version": __version__,
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Returns HTTP 503 if the database is unreachable.

    **Response Status Codes:**
    - 200: All systems healthy
    - 503: Database unhealthy - do not route traffic here
    """
    checks = {}

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {
            "status": "healthy",
            "critical": True,
            "backend": "sqlite" if settings.is_sqlite else "postgresql",
        }
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = {
            "status": "unhealthy",
            "critical": True,
            "error": str(e),
        }
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "checks": checks},
        )

    checks["snapshots"] = {
        "status": "enabled" if settings.snapshots_enabled else "disabled",
        "critical": False,
    }

    return {"status": "healthy", "checks": checks}


@app.get("/health/live", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def liveness_check(request: Request):
    """
    Liveness probe endpoint.

    Returns HTTP 200 if the application is running. Does NOT check
    dependencies; use /health/ready for that.
    """
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def readiness_check(request: Request, db: Session = Depends(get_db)):
    """
    Readiness probe endpoint.

    Returns HTTP 200 if the application is ready to serve traffic.
    Returns HTTP 503 if the database is unavailable.
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready"}
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "error": "Database unavailable",
            },
        )
