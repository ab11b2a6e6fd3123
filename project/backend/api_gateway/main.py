"""
FastAPI application.

Run with: uvicorn api_gateway.main:app
"""

from fastapi import FastAPI

from shared.config import settings
from shared.database import db
from shared.logging import get_logger
from shared.redis_client import RedisClient

from api_gateway.routes import jobs, targets

logger = get_logger(__name__)

app = FastAPI(title="Media Jobs API", version=settings.service_version)

app.include_router(jobs.router, prefix="/api/v1", tags=["jobs"])
app.include_router(targets.router, prefix="/api/v1", tags=["targets"])


@app.get("/health")
async def health():
    redis_client = RedisClient()
    try:
        checks = {
            "database": await db.health_check(),
            "redis": await redis_client.health_check(),
        }
    finally:
        await redis_client.close()
    healthy = all(checks.values())
    if not healthy:
        logger.warning("Health check degraded", extra={"checks": checks})
    return {
        "status": "healthy" if healthy else "degraded",
        "environment": settings.environment,
        "version": settings.service_version,
        "checks": checks,
    }
