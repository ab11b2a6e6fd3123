"""
FastAPI dependencies.

Caller identity and shared service handles for routes.
"""

from typing import Optional

from fastapi import Header

from shared.logging import get_logger
from shared.redis_client import RedisClient

from api_gateway.orchestrator import ADMIN_OWNER, Orchestrator, get_orchestrator

logger = get_logger(__name__)

_cache: Optional[RedisClient] = None


async def get_owner(x_owner_id: Optional[str] = Header(default=None)) -> str:
    """
    Resolve the job owner from the X-Owner-Id header.

    Requests without an identity are treated as coming from the admin console.
    """
    owner = (x_owner_id or "").strip()
    if not owner:
        logger.debug("No caller identity, using admin owner")
        return ADMIN_OWNER
    return owner


def get_job_orchestrator() -> Orchestrator:
    return get_orchestrator()


def get_cache() -> RedisClient:
    global _cache
    if _cache is None:
        _cache = RedisClient(prefix="mediajobs:job:")
    return _cache
