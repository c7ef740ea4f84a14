# backend/portfolio_calculator/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application (tables are created at startup)
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_calculator.config import settings
from portfolio_calculator.database import SessionLocal, check_database_health, engine
from portfolio_calculator.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
    RATE_LIMIT_HEALTH,
)
from portfolio_calculator.models import Base
from portfolio_calculator.routers import upload_router, valuation_router
from portfolio_calculator.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_calculator.services.exceptions import (
    ServiceError,
    ValidationError,
    IngestionError,
    UnsupportedFileTypeError,
    UnsupportedHoldingTypeError,
    FundCycleError,
    FundDepthExceededError,
    ValuationConfigurationError,
    DataSourceUnavailableError,
)
from portfolio_calculator.services.ingestion import IngestionService
from portfolio_calculator.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


# =============================================================================
# APPLICATION SETUP
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and, when DATA_DIR is set, load the CSV datasets."""
    Base.metadata.create_all(bind=engine)

    if settings.data_dir is not None:
        logger.info(f"Loading datasets from {settings.data_dir}")
        db = SessionLocal()
        try:
            IngestionService(delimiter=settings.csv_delimiter).load_directory(
                db, settings.data_dir
            )
        finally:
            db.close()

    yield


app = FastAPI(
    title=settings.app_name,
    description="Point-in-time portfolio valuation with fund-of-fund look-through",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

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

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service-layer exceptions carry no HTTP knowledge; the status codes are
# decided here. FastAPI picks the handler of the most specific class.
# =============================================================================

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(ValidationError)
async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle validation errors, including invalid valuation requests (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(UnsupportedHoldingTypeError)
async def unsupported_holding_type_handler(
    request: Request, exc: UnsupportedHoldingTypeError
) -> JSONResponse:
    """Handle a holding type without a registered strategy (422)."""
    logger.error(f"Unsupported holding type: {exc.holding_type}")
    return JSONResponse(
        status_code=422,
        content=ErrorDetail(
            error="UnsupportedHoldingTypeError",
            message=str(exc),
            details={"holding_type": str(exc.holding_type)},
        ).model_dump(),
    )


@app.exception_handler(FundCycleError)
async def fund_cycle_handler(request: Request, exc: FundCycleError) -> JSONResponse:
    """Handle a fund that (transitively) holds itself (422)."""
    logger.error(f"Fund cycle: {exc}")
    return JSONResponse(
        status_code=422,
        content=ErrorDetail(
            error="FundCycleError",
            message=str(exc),
            details={"holding_id": exc.holding_id, "fund_path": list(exc.fund_path)},
        ).model_dump(),
    )


@app.exception_handler(FundDepthExceededError)
async def fund_depth_exceeded_handler(
    request: Request, exc: FundDepthExceededError
) -> JSONResponse:
    """Handle fund nesting deeper than MAX_FUND_DEPTH (422)."""
    logger.error(f"Fund depth exceeded: {exc}")
    return JSONResponse(
        status_code=422,
        content=ErrorDetail(
            error="FundDepthExceededError",
            message=str(exc),
            details={"holding_id": exc.holding_id, "max_depth": exc.max_depth},
        ).model_dump(),
    )


@app.exception_handler(ValuationConfigurationError)
async def valuation_configuration_handler(
    request: Request, exc: ValuationConfigurationError
) -> JSONResponse:
    """Handle a mis-assembled valuation service (422)."""
    logger.error(f"Valuation configuration error: {exc}")
    return JSONResponse(
        status_code=422,
        content=ErrorDetail(
            error="ValuationConfigurationError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(DataSourceUnavailableError)
async def data_source_unavailable_handler(
    request: Request, exc: DataSourceUnavailableError
) -> JSONResponse:
    """Handle a failure to load the investor's holdings (503)."""
    logger.error(f"Data source unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error="DataSourceUnavailableError",
            message=str(exc),
            details={
                "investor_id": exc.investor_id,
                "as_of": exc.as_of.isoformat(),
            },
        ).model_dump(),
    )


@app.exception_handler(IngestionError)
async def ingestion_error_handler(request: Request, exc: IngestionError) -> JSONResponse:
    """Handle dataset import errors (400)."""
    logger.warning(f"Ingestion error: {exc}")
    details = None
    if isinstance(exc, UnsupportedFileTypeError):
        details = {"filename": exc.filename, "supported": exc.supported}
    elif exc.dataset:
        details = {"dataset": exc.dataset}
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details=details,
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

    Converts FastAPI's default {"detail": "..."} format to ErrorDetail.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        413: "PayloadTooLargeError",
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
    """Convert FastAPI's default 422 body to ValidationErrorDetail."""
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

app.include_router(valuation_router)  # /investors/*
app.include_router(upload_router)  # /upload/*


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
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(request: Request):
    """
    Health check endpoint.

    **Response Status Codes:**
    - 200: Database reachable
    - 503: Database unreachable - do not route traffic here
    """
    database = check_database_health()
    if database["status"] != "healthy":
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "checks": {"database": database}},
        )

    return {"status": "healthy", "checks": {"database": database}}
