"""Utilities for wiring moderation workers into an event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from redis.asyncio import Redis

from strivon.moderation.domain.container import get_ingestion_listener
from strivon.moderation.workers.finalize_worker import FinalizeWorker
from strivon.settings import settings

logger = logging.getLogger(__name__)


async def _run_forever(worker, delay: float) -> None:
    while True:
        try:
            await worker.run_once()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("moderation worker poll failed")
        await asyncio.sleep(delay)


def spawn_workers(
    redis_client: Redis,
    *,
    finalize_stream: Optional[str] = None,
    poll_interval: float = 0.1,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Iterable[asyncio.Task]:
    """Create asyncio tasks for the moderation stream workers."""

    event_loop = loop or asyncio.get_running_loop()
    finalize = FinalizeWorker(
        redis=redis_client,
        listener=get_ingestion_listener(),
        stream_key=finalize_stream or settings.finalize_stream,
    )
    return [event_loop.create_task(_run_forever(finalize, poll_interval), name="moderation-finalize")]
