"""Stream worker that feeds object finalize notifications into ingestion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from strivon.moderation.domain.ingestion import IngestionListener

logger = logging.getLogger(__name__)


class RedisStreams(Protocol):
    async def xread(self, streams: Mapping[str, str], count: int, block: int | None) -> list[tuple[str, list[tuple[str, Mapping[Any, Any]]]]]:
        ...

    async def xadd(self, name: str, fields: Mapping[str, Any]) -> str:
        ...


@dataclass
class FinalizeWorker:
    """Consumes ``{"name": <objectPath>, ...}`` entries with at-least-once semantics.

    ``last_id`` only moves past entries that were handled. A failing entry is
    retried on the next poll; after ``max_attempts`` failures it is copied to
    ``dead_letter_stream`` and skipped.
    """

    redis: RedisStreams
    listener: IngestionListener
    stream_key: str = "storage:finalize"
    dead_letter_stream: str = "storage:finalize:dead"
    batch_size: int = 50
    block_ms: int | None = 5000
    max_attempts: int = 5
    last_id: str = "0-0"
    _failures: dict[str, int] = field(default_factory=dict)

    async def run_once(self) -> int:
        messages = await self.redis.xread({self.stream_key: self.last_id}, count=self.batch_size, block=self.block_ms)
        handled = 0
        if not messages:
            return handled
        for _stream, entries in messages:
            for entry_id, payload in entries:
                entry_key = _to_str(entry_id)
                event = _decode_payload(payload)
                try:
                    await self._process_event(event)
                except Exception:
                    attempts = self._failures.get(entry_key, 0) + 1
                    self._failures[entry_key] = attempts
                    logger.exception(
                        "finalize event failed",
                        extra={"entry_id": entry_key, "object_name": event.get("name"), "attempt": attempts},
                    )
                    if attempts < self.max_attempts:
                        return handled
                    await self._dead_letter(entry_key, event)
                self._failures.pop(entry_key, None)
                self.last_id = entry_key
                handled += 1
        return handled

    async def _process_event(self, event: Mapping[str, Any]) -> None:
        name = event.get("name")
        if not name:
            logger.warning("finalize event without object name ignored")
            return
        await self.listener.handle_finalize(str(name))

    async def _dead_letter(self, entry_id: str, event: Mapping[str, Any]) -> None:
        logger.error("finalize event dropped after %s attempts", self.max_attempts, extra={"entry_id": entry_id})
        await self.redis.xadd(self.dead_letter_stream, {**event, "source_id": entry_id})


def _to_str(value: Any) -> str:
    return value if isinstance(value, str) else value.decode("utf-8")


def _decode_payload(payload: Mapping[Any, Any]) -> dict[str, Any]:
    return {_to_str(key): _to_str(value) for key, value in payload.items()}
