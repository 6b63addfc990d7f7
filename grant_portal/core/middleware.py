"""CORS, request correlation, and access-log middleware."""

import uuid
import time
import logging
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from grant_portal.core.config import settings

logger = logging.getLogger("grant_portal.http")

SLOW_REQUEST_MS = 2000


def client_ip(request: Request) -> Optional[str]:
    """Caller address, honouring the first hop of X-Forwarded-For."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and the caller address, then log it."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.client_ip = client_ip(request)
        started = time.perf_counter()

        response: Response = await call_next(request)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time-Ms"] = str(elapsed_ms)

        level = logging.WARNING if elapsed_ms >= SLOW_REQUEST_MS else logging.INFO
        logger.log(
            level,
            "[%s] %s %s -> %s in %sms (ip=%s)",
            request_id[:8],
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.client_ip,
        )
        return response


def setup_middleware(app: FastAPI) -> None:
    """Install CORS for the portal front-end and the request-context layer."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id", "X-Response-Time-Ms"],
    )
    app.add_middleware(RequestContextMiddleware)
