"""Health check API routes."""

import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from director_auth.api.dependencies import get_database_session
from director_auth.utils.clock import utcnow

router = APIRouter(prefix="/health", tags=["Health Check"])


class HealthResponse(BaseModel):
    status: str = Field(..., examples=["healthy"])
    timestamp: str
    services: dict = Field(default_factory=dict)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Report service status and database connectivity.",
    responses={
        200: {"description": "Service is healthy"},
        503: {"description": "Database is unreachable"},
    },
)
async def health_check(session: AsyncSession = Depends(get_database_session)):
    """
    Check the database with a trivial query.

    Answers 503 with the same body shape when the database is unreachable.
    """
    try:
        start_time = time.perf_counter()
        await session.execute(text("SELECT 1"))
        latency = (time.perf_counter() - start_time) * 1000
        database = {"status": "healthy", "latency_ms": round(latency, 2)}
        healthy = True
    except Exception as e:
        database = {"status": "unhealthy", "error": str(e)}
        healthy = False

    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        timestamp=utcnow().isoformat() + "Z",
        services={"database": database},
    )
    if not healthy:
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
