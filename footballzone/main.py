"""FastAPI main application entry point."""

import logging
import traceback
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from footballzone import __version__
from footballzone.core.config import settings
from footballzone.core.exceptions import FootballZoneError
from footballzone.core.middleware import client_ip, current_request_id, setup_middleware
from footballzone.core.rate_limiter import limiter
from footballzone.db.session import engine

from footballzone.api.admin import router as admin_router
from footballzone.api.articles import router as articles_router
from footballzone.api.auth import router as auth_router
from footballzone.api.premium import router as premium_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("footballzone")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API (%s)", settings.APP_NAME, settings.ENVIRONMENT)

    # The database is mandatory: refuse to start without it
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connected")
    except SQLAlchemyError:
        logger.critical("Database connection failed", exc_info=True)
        raise

    # Redis is optional: every cache failure is a miss
    from footballzone.services.cache_service import cache_service
    if cache_service.health_check():
        logger.info("Redis connected")
    else:
        logger.warning("Redis not available, running without response cache")

    yield

    engine.dispose()
    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Football education content platform",
    version=__version__,
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

# Middleware
setup_middleware(app)

# Rate limiting
app.state.limiter = limiter


# ---- Error translation ----

def _error_response(
    status_code: int,
    message: str,
    exc: Optional[BaseException] = None,
    validation: Optional[List[Dict[str, Any]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    error: Dict[str, Any] = {"message": message}
    if not settings.is_production:
        if exc is not None and status_code >= 500:
            error["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        if validation:
            error["validation"] = validation
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


def _log_error(request: Request, status_code: int, message: str, exc: BaseException) -> None:
    user_agent = request.headers.get("user-agent", "-")
    request_id = current_request_id(request)
    client = client_ip(request)
    if status_code >= 500:
        logger.error(
            "[%s] %s %s -> %s %s (ip=%s ua=%s)",
            request_id, request.method, request.url.path, status_code, message, client, user_agent,
            exc_info=exc,
        )
    else:
        logger.info(
            "[%s] %s %s -> %s %s (ip=%s ua=%s)",
            request_id, request.method, request.url.path, status_code, message, client, user_agent,
        )


@app.exception_handler(FootballZoneError)
async def footballzone_exception_handler(request: Request, exc: FootballZoneError):
    _log_error(request, exc.status_code, exc.message, exc)
    return _error_response(exc.status_code, exc.message, exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    message = "Validation Error: " + ", ".join(f"{d['field']}: {d['message']}" for d in details)
    _log_error(request, status.HTTP_400_BAD_REQUEST, message, exc)
    return _error_response(status.HTTP_400_BAD_REQUEST, message, exc, validation=details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    _log_error(request, exc.status_code, message, exc)
    return _error_response(exc.status_code, message, exc, headers=getattr(exc, "headers", None))


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    _log_error(request, status.HTTP_409_CONFLICT, "Resource already exists", exc)
    return _error_response(status.HTTP_409_CONFLICT, "Resource already exists", exc)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    message = "Internal server error" if settings.is_production else str(exc) or "Internal server error"
    _log_error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, message, exc)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message, exc)


# Register routers
app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(articles_router, prefix=settings.API_PREFIX)
app.include_router(premium_router, prefix=settings.API_PREFIX)
app.include_router(admin_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "docs": None if settings.is_production else "/docs",
    }


@app.get("/health")
async def health():
    """Quick liveness check endpoint."""
    return {"success": True, "status": "ok", "environment": settings.ENVIRONMENT}
