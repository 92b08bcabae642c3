"""Simple asyncio scheduler for periodic jobs (in-process sales scans)."""
import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


async def _periodic_task(interval_seconds: int, coro: Callable, *args, **kwargs):
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await coro(*args, **kwargs)
        except Exception as e:
            logger.error(f"Scheduled job {getattr(coro, '__name__', coro)} failed: {e}", exc_info=True)


def start_scheduler(interval_seconds: int, coro: Callable, *args, **kwargs) -> asyncio.Task:
    """Run ``coro`` every ``interval_seconds`` as a background task; the first run waits one interval."""
    return asyncio.create_task(_periodic_task(interval_seconds, coro, *args, **kwargs))
