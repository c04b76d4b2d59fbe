"""CORS, request context and access-log middleware."""

import re
import time
import uuid
import logging

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from footballzone.core.config import settings

logger = logging.getLogger("footballzone.http")

REQUEST_ID_HEADER = "X-Request-Id"
RESPONSE_TIME_HEADER = "X-Response-Time-Ms"

# Incoming ids end up in log lines, so only short token-like values are reused
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def request_id_for(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _REQUEST_ID_RE.match(incoming):
        return incoming
    return uuid.uuid4().hex


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For when behind a proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "-"


def current_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id, time it and write one access-log line."""

    async def dispatch(self, request: Request, call_next):
        request_id = request_id_for(request)
        request.state.request_id = request_id
        start = time.perf_counter()

        try:
            response: Response = await call_next(request)
        except Exception:
            logger.error(
                "[%s] %s %s failed after %.2fms (ip=%s)",
                request_id, request.method, request.url.path,
                (time.perf_counter() - start) * 1000, client_ip(request),
            )
            raise

        elapsed = (time.perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[RESPONSE_TIME_HEADER] = f"{elapsed:.2f}"

        if response.status_code >= 500:
            level = logging.WARNING
        elif request.url.path.endswith("/health"):
            level = logging.DEBUG
        else:
            level = logging.INFO
        logger.log(
            level,
            "[%s] %s %s -> %s in %.2fms (ip=%s)",
            request_id, request.method, request.url.path,
            response.status_code, elapsed, client_ip(request),
        )
        return response


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, RESPONSE_TIME_HEADER],
    )
    app.add_middleware(RequestContextMiddleware)
