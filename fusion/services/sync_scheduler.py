# fusion/services/sync_scheduler.py
"""
Periodic device sync — runs sync_all_connectors() every SYNC_INTERVAL_SECONDS.
A failed run backs off (doubling, capped) before the next attempt.
"""

import asyncio
from typing import Optional
from fusion.config import settings
from fusion.database import SessionLocal
from fusion.services.device_sync import sync_all_connectors
from fusion.utils.logger import get_logger

logger = get_logger(__name__)

_MAX_BACKOFF = 15 * 60

_task: Optional[asyncio.Task] = None


async def run_sync_once() -> bool:
    """One sync with a fresh DB session. Returns False if the run blew up."""
    db = SessionLocal()
    try:
        result = await sync_all_connectors(db)
        if result.errors:
            for err in result.errors:
                logger.warning(f"[SCHEDULER] {err.connector_name}: {err.error}")
        return True
    except Exception as e:
        logger.error(f"[SCHEDULER] Sync run failed: {e}", exc_info=True)
        return False
    finally:
        db.close()


async def _sync_loop(interval: int):
    backoff = interval
    while True:
        ok = await run_sync_once()
        backoff = interval if ok else min(backoff * 2, max(_MAX_BACKOFF, interval))
        if not ok:
            logger.warning(f"[SCHEDULER] Next sync attempt in {backoff}s")
        await asyncio.sleep(backoff)


def start_periodic_sync(interval: Optional[int] = None) -> Optional[asyncio.Task]:
    """Launch the background loop. Called once at startup; no-op when the interval is 0."""
    global _task
    interval = settings.SYNC_INTERVAL_SECONDS if interval is None else interval
    if interval <= 0:
        logger.info("[SCHEDULER] Periodic sync disabled")
        return None
    if _task is not None and not _task.done():
        return _task
    logger.info(f"[SCHEDULER] Periodic sync every {interval}s")
    _task = asyncio.create_task(_sync_loop(interval), name="device-sync")
    return _task


async def stop_periodic_sync():
    global _task
    if _task is None:
        return
    _task.cancel()
    try:
        await _task
    except asyncio.CancelledError:
        pass
    _task = None
