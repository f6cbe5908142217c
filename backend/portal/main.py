import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.config import settings
from portal.middleware.exceptions import register_exception_handlers
from portal.middleware.rate_limit import RateLimitMiddleware, SlidingWindowLimiter
from portal.middleware.security import SecurityHeadersMiddleware
from portal.routers import admin, applications, auth, health, profile
from portal.store import PortalStore, seed_store

logger = logging.getLogger(__name__)


def create_app(store: PortalStore | None = None) -> FastAPI:
    """Build the API app. Without ``store`` a freshly seeded in-memory store is used."""
    app = FastAPI(
        title="Municipal e-Government Portal",
        description="Citizen services, applications, payments and review",
        version="0.1.0",
        debug=settings.debug,
    )
    app.state.store = store if store is not None else seed_store(PortalStore())
    app.state.rate_limits = SlidingWindowLimiter()

    # ── Exception Handlers ───────────────────────────────────
    register_exception_handlers(app)

    # ── Middleware (outermost first) ─────────────────────────
    app.add_middleware(SecurityHeadersMiddleware)

    # Rate limiting
    app.add_middleware(
        RateLimitMiddleware,
        default_limit=settings.rate_limit_requests,  # per minute (anonymous/IP)
        authenticated_limit=settings.rate_limit_authenticated_requests,  # per minute (JWT user)
        default_window=settings.rate_limit_window_seconds,
        exempt_paths=["/health", "/docs", "/openapi.json"],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ──────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(profile.router, prefix="/api/profile", tags=["profile"])
    app.include_router(profile.password_router, prefix="/api", tags=["profile"])
    app.include_router(applications.router, prefix="/api/applications", tags=["applications"])
    app.include_router(applications.admin_router, prefix="/api/admin", tags=["admin"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"])

    logger.info(f"Portal API created ({settings.environment})")
    return app


app = create_app()
