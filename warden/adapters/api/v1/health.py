from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter
from pydantic import BaseModel

from warden.core.config.settings import settings
from warden.core.logging import logger
from warden.infrastructure.database.async_db import check_database_health

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    env: str
    services: Dict[str, Any]
    timestamp: datetime


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report database reachability. The overall status is ``ok`` only when the database answers."""
    db_healthy = await check_database_health()
    if not db_healthy:
        logger.warning("health_check_degraded", database="unhealthy")
    return HealthResponse(
        status="ok" if db_healthy else "degraded",
        env=settings.APP_ENV,
        services={"database": {"status": "healthy" if db_healthy else "unhealthy"}},
        timestamp=datetime.now(timezone.utc),
    )
