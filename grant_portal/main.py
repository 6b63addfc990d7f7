"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from grant_portal import __version__
from grant_portal.core.config import settings
from grant_portal.core.middleware import setup_middleware
from grant_portal.core.rate_limiter import limiter
from grant_portal.core.exceptions import PortalError
from grant_portal.db.session import init_db

from grant_portal.api.auth import router as auth_router
from grant_portal.api.admin import router as admin_router
from grant_portal.api.bulk_removal import router as bulk_removal_router
from grant_portal.api.audit import router as audit_router
from grant_portal.api.invite_codes import router as invite_codes_router
from grant_portal.api.projects import router as projects_router
from grant_portal.api.enrollments import router as enrollments_router
from grant_portal.api.reports import router as reports_router
from grant_portal.api.payments import router as payments_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("grant_portal")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("🚀 Starting Grant Portal API")
    init_db()
    logger.info("✅ Database tables ready")

    yield

    logger.info("🔻 Shutting down Grant Portal API")


app = FastAPI(
    title="Grant Portal API",
    description="Scholarship management: scholars, projects, reports, payments",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Domain errors carry their own status and machine-readable code
@app.exception_handler(PortalError)
async def portal_exception_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_payload(),
    )

# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(bulk_removal_router, prefix="/api")
app.include_router(audit_router, prefix="/api")
app.include_router(invite_codes_router, prefix="/api")
app.include_router(projects_router, prefix="/api")
app.include_router(enrollments_router, prefix="/api")
app.include_router(reports_router, prefix="/api")
app.include_router(payments_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
