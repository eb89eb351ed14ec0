"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storefront.infrastructure.config import settings

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    database: str
    cache: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="storefront-catalog",
        version=settings.api_version,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Check if service is ready to accept requests.

    The database must answer; the cache is reported but only advisory.

    Returns:
        Readiness status, 503 when the database is unreachable.
    """
    database = "ok"
    try:
        async with request.app.state.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Database readiness check failed", exc_info=True)
        database = "unavailable"

    cache = "ok" if await request.app.state.cache.ping() else "degraded"

    result = ReadinessResponse(
        status="ready" if database == "ok" else "not_ready",
        database=database,
        cache=cache,
    )
    if database != "ok":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=result.model_dump(),
        )
    return result
