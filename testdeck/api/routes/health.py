from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session
import structlog

from testdeck.config.settings import settings
from testdeck.core.database import get_database
from testdeck.core.dependencies import container

logger = structlog.get_logger()

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str


@router.get("/", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version="1.0.0",
        environment=settings.environment
    )


@router.get("/readiness")
async def readiness_check(db: Session = Depends(get_database)):
    """Readiness check endpoint"""
    checks = {"storage_backend": container.storage_backend}

    if container.uses_local_store:
        checks["storage"] = "ok" if container.local_store().directory.is_dir() else "unavailable"
    else:
        try:
            db.execute(text("SELECT 1"))
            checks["storage"] = "ok"
        except Exception as e:
            logger.error("Database readiness check failed", error=str(e))
            checks["storage"] = "unavailable"

    checks["import_sessions"] = len(container.import_service().sessions)

    return {
        "status": "ready" if checks["storage"] == "ok" else "not_ready",
        "checks": checks,
        "timestamp": datetime.utcnow()
    }
