"""Health check endpoints.

Provides:
- Basic liveness probe (/health)
- Dependency check (/health/ready)
"""

import logging
import time
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_start_time = time.monotonic()


@router.get("", response_model=dict[str, Any])
async def liveness() -> dict[str, Any]:
    """Liveness probe."""
    settings = get_settings()
    return {
        "success": True,
        "data": {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "ok",
            "uptime_seconds": round(time.monotonic() - _start_time, 1),
        },
    }


@router.get("/ready")
async def readiness(request: Request):
    """Readiness probe: database reachable and cascade worker running."""
    checks: dict[str, str] = {}

    try:
        async with request.app.state.session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        checks["database"] = "unavailable"

    publisher = getattr(request.app.state, "cascade_publisher", None)
    if hasattr(publisher, "is_running"):
        checks["cascade_worker"] = "ok" if publisher.is_running else "stopped"
    else:
        checks["cascade_worker"] = get_settings().CASCADE_BACKEND

    healthy = all(v not in ("unavailable", "stopped") for v in checks.values())
    body = {"success": healthy, "data": {"checks": checks}}
    if not healthy:
        body["error"] = "One or more dependencies are unavailable"
    return JSONResponse(status_code=200 if healthy else 503, content=body)
