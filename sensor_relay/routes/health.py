"""
Health check and monitoring endpoints.
"""
import time
import logging
from fastapi import APIRouter

from sensor_relay.db import check_database_health
from sensor_relay.core.settings import settings
from sensor_relay.services.push_notification import _is_fcm_available

logger = logging.getLogger("sensor_relay.health")
router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check with dependency status."""
    status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.environment,
        "store_backend": settings.store_backend,
        "services": {
            "messaging": "configured" if _is_fcm_available() else "not_configured",
        },
    }
    if settings.store_backend == "sql":
        db_health = await check_database_health()
        status["services"]["database"] = db_health
        if db_health["status"] != "healthy":
            status["status"] = "degraded"
    return status


@router.get("/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    if settings.store_backend == "sql":
        db_health = await check_database_health()
        if db_health["status"] != "healthy":
            return {"status": "not_ready", "reason": "database_unavailable"}
    elif not _is_fcm_available():
        return {"status": "not_ready", "reason": "firebase_unavailable"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"status": "alive", "timestamp": time.time()}
