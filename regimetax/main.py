"""
main.py — RegimeTax FastAPI application entry point.

Start with: uvicorn regimetax.main:app --reload --port 8000
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from regimetax.config import settings
from regimetax.profile.schemas import ErrorBody, ErrorDetail, ErrorResponse

# ---------------------------------------------------------------------------
# Logging: configured before anything else
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup & shutdown hooks
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      1. Load and validate the tax configuration table (fails fast if invalid)
    """
    from regimetax.tax_config import get_tax_configuration

    config = get_tax_configuration()
    logger.info(
        "RegimeTax v%s starting up (FY %s)", settings.app_version, config.fiscal_year.label
    )
    yield
    logger.info("RegimeTax shutting down")


# ---------------------------------------------------------------------------
# FastAPI application instance
# ---------------------------------------------------------------------------
app = FastAPI(
    title="RegimeTax API",
    version=settings.app_version,
    description=(
        "Dual-regime Indian income tax calculator for FY 2025-26. "
        "Computes Old and New regime tax with a full audit trail and recommends the cheaper regime."
    ),
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# ---------------------------------------------------------------------------
# CORS middleware: restricted to frontend origins from settings
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope: every failure leaves as {error: {code, message, details}}
# ---------------------------------------------------------------------------
_HTTP_ERROR_CODES = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[List[ErrorDetail]] = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(code=code, message=message, details=details or []))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """All field violations in one 422, with dot-notation paths ('body' dropped)."""
    details = [
        ErrorDetail(
            field=".".join(str(loc) for loc in error["loc"] if loc != "body") or None,
            issue=error["msg"],
        )
        for error in exc.errors()
    ]
    return _error_response(422, "VALIDATION_ERROR", "Request validation failed", details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_ERROR_CODES.get(exc.status_code, f"HTTP_{exc.status_code}")
    return _error_response(exc.status_code, code, str(exc.detail))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """TaxConfigurationError and other explicit data errors surface as 422."""
    return _error_response(422, "VALIDATION_ERROR", str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    DEBUG=true  → exception type & message in details (dev only).
    DEBUG=false → generic message; traceback logged server-side only.
    """
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=True)
    if settings.debug:
        return _error_response(
            500,
            "INTERNAL_ERROR",
            "An unexpected error occurred (debug details included)",
            [ErrorDetail(issue=f"{type(exc).__name__}: {exc}")],
        )
    return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------
@app.get("/api/health", tags=["System"])
async def health_check() -> dict:
    """Returns service health status."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from regimetax.engine.routes import router as engine_router  # noqa: E402

app.include_router(engine_router)
