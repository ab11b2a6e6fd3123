"""
Worker process.

Consumes job-creation events from the Redis queue and due poll callbacks
from the scheduler, running at most MAX_CONCURRENT_JOBS handlers at once.
"""

import asyncio
from typing import Any, Dict, Optional, Set

from shared.config import settings
from shared.logging import get_logger

from api_gateway.orchestrator import Orchestrator, get_orchestrator
from api_gateway.services import queue_service
from api_gateway.services.scheduler import RedisScheduler

logger = get_logger(__name__)

# Seconds between scans of the poll schedule
SCAN_INTERVAL = 0.5


class Worker:
    def __init__(self, orchestrator: Orchestrator, scheduler: RedisScheduler, max_concurrent: Optional[int] = None):
        self.orchestrator = orchestrator
        self.scheduler = scheduler
        self.semaphore = asyncio.Semaphore(max_concurrent or settings.max_concurrent_jobs)
        self._tasks: Set[asyncio.Task] = set()

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_event(self, event: Dict[str, Any]) -> None:
        job_id = event.get("job_id")
        if not job_id:
            logger.error("Invalid event data", extra={"event_data": event})
            return
        async with self.semaphore:
            try:
                await self.orchestrator.handle_job_created(job_id)
            except Exception as e:
                logger.error("Failed to handle creation event", exc_info=e, extra={"job_id": job_id})

    async def handle_poll(self, job_id: str, lease: int) -> None:
        async with self.semaphore:
            try:
                await self.orchestrator.runner.poll_job(job_id)
            except Exception as e:
                # Not acked: the callback comes due again when the lease runs out
                logger.error("Poll handler failed", exc_info=e, extra={"job_id": job_id})
                return
        await self.scheduler.ack(job_id, lease)

    async def event_loop(self) -> None:
        logger.info("Event consumer started", extra={"queue_key": queue_service.QUEUE_KEY})
        while True:
            try:
                event = await queue_service.next_event(timeout=5)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error during brpop: {e}", exc_info=e)
                await asyncio.sleep(5)
                continue
            if event:
                self._spawn(self.handle_event(event))

    async def poll_loop(self) -> None:
        logger.info("Poll consumer started", extra={"schedule_key": self.scheduler.key})
        while True:
            try:
                claimed = await self.scheduler.claim_due(limit=settings.max_concurrent_jobs)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Failed to claim due polls", exc_info=e)
                await asyncio.sleep(5)
                continue
            for job_id, lease in claimed:
                self._spawn(self.handle_poll(job_id, lease))
            if not claimed:
                await asyncio.sleep(SCAN_INTERVAL)

    async def run(self) -> None:
        try:
            await asyncio.gather(self.event_loop(), self.poll_loop())
        except asyncio.CancelledError:
            logger.info("Worker loop cancelled")
        finally:
            for task in list(self._tasks):
                task.cancel()


async def main():
    """Main entry point for worker."""
    orchestrator = get_orchestrator()
    worker = Worker(orchestrator, orchestrator.runner.scheduler)
    try:
        await worker.run()
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")
    except Exception as e:
        logger.error("Worker crashed", exc_info=e)
        raise


if __name__ == "__main__":
    asyncio.run(main())
