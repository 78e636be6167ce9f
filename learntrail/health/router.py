"""Health check endpoints."""

from fastapi import APIRouter, Request

from learntrail.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - ready once the progress store backend is connected."""
    settings = get_settings()
    store_ready = bool(getattr(request.app.state, "records_service", None))
    return {
        "status": "ready" if store_ready else "degraded",
        "progress_store": store_ready,
        "environment": settings.environment,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
