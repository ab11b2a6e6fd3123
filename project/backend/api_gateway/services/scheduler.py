"""
Poll callback scheduler.

Due callbacks live in a Redis sorted set scored by due time in epoch
milliseconds. Claiming a batch pushes each claimed member's score out by the
lease; if the worker dies before acking, the member becomes due again when
the lease runs out (at-least-once delivery).
"""

import time
from typing import Callable, List, Optional, Tuple

from shared.config import settings
from shared.errors import RetryableError
from shared.logging import get_logger
from shared.redis_client import RedisClient

from modules.job_lifecycle import Scheduler

logger = get_logger(__name__)

# KEYS[1] = sorted set; ARGV = now_ms, lease_until_ms, limit
CLAIM_SCRIPT = """
local due = redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', ARGV[1], 'LIMIT', 0, ARGV[3])
for _, member in ipairs(due) do
  redis.call('ZADD', KEYS[1], ARGV[2], member)
end
return due
"""

# Removes the member only if nothing re-armed it since the claim.
# KEYS[1] = sorted set; ARGV = member, lease_until_ms
ACK_SCRIPT = """
if redis.call('ZSCORE', KEYS[1], ARGV[1]) == ARGV[2] then
  return redis.call('ZREM', KEYS[1], ARGV[1])
end
return 0
"""


def _now_ms() -> int:
    return int(time.time() * 1000)


class RedisScheduler(Scheduler):
    def __init__(
        self,
        redis_client: Optional[RedisClient] = None,
        key: Optional[str] = None,
        clock_ms: Callable[[], int] = _now_ms,
    ):
        self.redis = redis_client or RedisClient()
        self.key = key or f"{settings.queue_name}:polls"
        self.clock_ms = clock_ms

    async def schedule_callback(self, job_id: str, delay_seconds: float) -> None:
        due = self.clock_ms() + int(delay_seconds * 1000)
        try:
            await self.redis.client.zadd(self.key, {job_id: due})
        except Exception as e:
            raise RetryableError(f"Failed to schedule poll: {str(e)}", job_id=job_id) from e
        logger.debug(
            "Poll scheduled",
            extra={"job_id": job_id, "delay_seconds": delay_seconds},
        )

    async def claim_due(self, limit: int) -> List[Tuple[str, int]]:
        """
        Lease up to `limit` due callbacks.

        Returns:
            (job_id, lease) pairs; pass the lease back to ack()
        """
        now = self.clock_ms()
        lease = now + settings.poll_lease_seconds * 1000
        members = await self.redis.client.eval(CLAIM_SCRIPT, 1, self.key, now, lease, limit)
        return [
            (m.decode("utf-8") if isinstance(m, bytes) else m, lease)
            for m in members or []
        ]

    async def ack(self, job_id: str, lease: int) -> bool:
        """Drop a handled callback unless the handler re-armed it."""
        removed = await self.redis.client.eval(ACK_SCRIPT, 1, self.key, job_id, lease)
        return bool(removed)

    async def pending_count(self) -> int:
        return await self.redis.client.zcard(self.key)
