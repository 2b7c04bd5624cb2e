"""
api/main.py -- FastAPI application entry point for the admin console.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds the stores, the page registry and the access resolver once
and tears them down symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from access.registry import build_default_registry
from access.resolver import AccessResolver
from access.store import PageAccessStore
from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.access import router as access_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.roles import router as roles_router
from api.routes.v1.users import router as users_router
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from core.config import get_settings

APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("adminconsole.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters: the override store reuses the user store's engine,
    and the resolver needs both the registry and the override store.
    """
    logger.info("Admin console API starting up")
    app.state.user_store = UserStore(_settings.database_url)
    app.state.page_registry = build_default_registry()
    app.state.access_resolver = AccessResolver(
        app.state.page_registry,
        PageAccessStore(app.state.user_store.engine),
    )
    logger.info(
        "Access control initialized (%d pages, users_present=%s)",
        len(app.state.page_registry),
        app.state.user_store.has_users(),
    )

    yield

    app.state.user_store.close()
    logger.info("Admin console API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Admin Console API",
    description="Users, roles and per-page access control.",
    version=APP_VERSION,
    lifespan=lifespan,
    # Built-in docs are replaced by auth-protected routes below.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(roles_router, prefix="/api/v1", tags=["Roles"])
app.include_router(access_router, prefix="/api/v1", tags=["Access Control"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Auth-protected API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(user: User = Depends(get_current_user)):
    """Swagger UI -- requires authentication."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="Admin Console API")


@app.get("/redoc", include_in_schema=False)
async def redoc(user: User = Depends(get_current_user)):
    """ReDoc UI -- requires authentication."""
    return get_redoc_html(openapi_url="/openapi.json", title="Admin Console API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error body is {"error": {"code", "message", "detail"?}}. Route handlers
# raise HTTPException with detail={"code", "message"}, which passes through
# as-is.
# ---------------------------------------------------------------------------


def _error_response(
    status_code: int,
    code: str,
    message: str,
    detail: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    retry_after = int(getattr(exc, "retry_after", 60))
    logger.warning("Rate limit hit: %s %s", request.method, request.url.path)
    return _error_response(
        429,
        "rate_limited",
        "Too many requests.",
        detail=str(exc),
        headers={"Retry-After": str(retry_after)},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(422, "validation_error", "Request validation failed.", detail=str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors, including storage faults.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is always reachable. No auth, no rate
# limit.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and a database check."""
    try:
        db_ok = request.app.state.user_store.ping()
    except SQLAlchemyError:
        logger.exception("Health check database query failed")
        db_ok = False
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=APP_VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
