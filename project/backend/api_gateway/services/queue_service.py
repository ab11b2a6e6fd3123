"""
Queue service.

Job-creation events on a Redis list, consumed by the worker.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from shared.config import settings
from shared.logging import get_logger
from shared.redis_client import RedisClient

logger = get_logger(__name__)

# Environment-aware so local workers never consume production events
QUEUE_NAME = settings.queue_name
QUEUE_KEY = f"{QUEUE_NAME}:queue"

_redis_client: Optional[RedisClient] = None


def _get_redis() -> RedisClient:
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisClient()
    return _redis_client


def creation_event(job_id: str) -> Dict[str, Any]:
    return {
        "event": "job_created",
        "job_id": job_id,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


async def enqueue_job_created(job_id: str) -> None:
    """
    Push a creation event for the worker.

    Raises:
        Exception: Redis failures propagate so the caller can report them
    """
    try:
        payload = json.dumps(creation_event(job_id))
        await _get_redis().client.lpush(QUEUE_KEY, payload.encode("utf-8"))
    except Exception as e:
        logger.error("Failed to enqueue job", exc_info=e, extra={"job_id": job_id})
        raise
    logger.info("Job enqueued", extra={"job_id": job_id, "queue": QUEUE_KEY})


async def next_event(timeout: int = 5) -> Optional[Dict[str, Any]]:
    """Block up to `timeout` seconds for the next creation event."""
    item = await _get_redis().client.brpop(QUEUE_KEY, timeout=timeout)
    if not item:
        return None
    # brpop returns (key, value)
    raw = item[1]
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(
            f"Failed to parse event JSON: {e}",
            extra={"event_data": str(raw[:200])},
        )
        return None

