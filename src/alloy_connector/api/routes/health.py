"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

SERVICE_NAME = "alloy-connector"
SERVICE_VERSION = "1.0.0"

router = APIRouter()


@router.get("/health")
async def health_check():
    """Return service health status."""
    return {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/health/live")
async def liveness():
    """Kubernetes liveness probe. Always 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Kubernetes readiness probe: 503 until Alloy credentials are configured."""
    settings = request.app.state.settings
    checks: dict[str, str] = {}

    checks["credentials"] = "ok" if settings.has_credentials else "missing"
    checks["webhook_secret"] = (
        "ok" if settings.webhook_secret or not settings.verify_signature else "missing"
    )
    overall_ok = checks["credentials"] == "ok"

    status_code = 200 if overall_ok else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if overall_ok else "not_ready",
            "environment": settings.environment.value,
            "checks": checks,
        },
    )
