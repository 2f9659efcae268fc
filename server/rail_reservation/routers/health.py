"""Health check router."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.observability import SERVICE_NAME
from ..models.common import utcnow
from ..schemas.health import HealthResponse, HealthStatus
from ..workers.manager import worker_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping() -> JSONResponse:
    """
    Health check endpoint.

    Reports the service as degraded when an enabled background worker has stopped.
    """
    workers = worker_manager.get_worker_status()
    degraded = settings.enable_workers and not all(workers.values())

    response_data = HealthResponse(
        status=HealthStatus.DEGRADED if degraded else HealthStatus.HEALTHY,
        service=SERVICE_NAME,
        timestamp=utcnow(),
        version="1.0.0",
        workers=workers,
    )

    logger.debug(
        "Health check requested",
        extra={
            "status": response_data.status.value,
            "timestamp": response_data.timestamp.isoformat()
        }
    )

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )
