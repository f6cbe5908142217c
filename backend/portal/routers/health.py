"""Health check endpoint for load balancers and monitoring."""

from datetime import datetime, timezone

from fastapi import APIRouter

from portal.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight liveness check. Returns 200 OK while the service is running."""
    return {
        "status": "ok",
        "service": "portal",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }
