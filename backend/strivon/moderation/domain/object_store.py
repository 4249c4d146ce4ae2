"""Object store contract and in-memory fallback for quarantine/public media."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, MutableMapping, Protocol

from strivon.moderation.domain.exceptions import StorageError

FinalizeCallback = Callable[["StoredObject"], Awaitable[object]]


class ObjectNotFoundError(StorageError):
    detail = "object_not_found"


@dataclass(slots=True)
class StoredObject:
    path: str
    data: bytes
    content_type: str | None = None
    bucket: str | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ObjectStore(Protocol):
    """Binary storage holding the quarantine and public areas."""

    bucket: str

    async def exists(self, path: str) -> bool:
        """Return True when an object is stored at ``path``."""

    async def copy(self, source: str, destination: str) -> None:
        """Copy ``source`` to ``destination``; ObjectNotFoundError when the source is missing."""

    async def delete(self, path: str) -> None:
        """Delete ``path``; ObjectNotFoundError when nothing is stored there."""


@dataclass
class InMemoryObjectStore(ObjectStore):
    """Dict-backed store for local development and tests.

    Subscribers registered with ``on_finalize`` are awaited whenever an object
    is created or overwritten, mirroring bucket finalize notifications.
    """

    bucket: str = "strivon-media"
    objects: MutableMapping[str, StoredObject] = field(default_factory=dict)
    _subscribers: list[FinalizeCallback] = field(default_factory=list)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def on_finalize(self, callback: FinalizeCallback) -> None:
        self._subscribers.append(callback)

    async def put(self, path: str, data: bytes, *, content_type: str | None = None) -> StoredObject:
        async with self._lock:
            stored = StoredObject(path=path, data=data, content_type=content_type, bucket=self.bucket)
            self.objects[path] = stored
        await self._notify(stored)
        return stored

    async def exists(self, path: str) -> bool:
        return path in self.objects

    async def copy(self, source: str, destination: str) -> None:
        async with self._lock:
            original = self.objects.get(source)
            if original is None:
                raise ObjectNotFoundError(f"object_not_found:{source}")
            stored = StoredObject(
                path=destination,
                data=original.data,
                content_type=original.content_type,
                bucket=self.bucket,
            )
            self.objects[destination] = stored
        await self._notify(stored)

    async def delete(self, path: str) -> None:
        async with self._lock:
            if self.objects.pop(path, None) is None:
                raise ObjectNotFoundError(f"object_not_found:{path}")

    async def _notify(self, stored: StoredObject) -> None:
        for callback in list(self._subscribers):
            await callback(stored)
