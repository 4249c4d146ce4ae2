"""Admin-only operations that resolve queued media and ban users."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from strivon.infra.auth import AuthenticatedUser
from strivon.moderation.domain.admin_directory import AdminDirectory
from strivon.moderation.domain.exceptions import (
    ModerationError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    UnauthenticatedError,
    ValidationError,
)
from strivon.moderation.domain.pipeline import DecisionPipeline
from strivon.moderation.domain.records import MediaRecord, QueueEntry
from strivon.moderation.domain.status import MediaStatus
from strivon.moderation.domain.store import ModerationStore
from strivon.obs import metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

OK: dict[str, Any] = {"ok": True}


@dataclass(slots=True)
class QueueItem:
    entry: QueueEntry
    media: MediaRecord | None


def _require_id(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name}_required")
    return value


class AdminActions:
    """Every method checks the caller against the admin directory before reading any data."""

    def __init__(self, store: ModerationStore, directory: AdminDirectory, pipeline: DecisionPipeline) -> None:
        self.store = store
        self.directory = directory
        self.pipeline = pipeline

    async def is_admin(self, caller: AuthenticatedUser | None) -> bool:
        if caller is None:
            return False
        return await self.directory.is_admin(caller.verified_email)

    async def authorize(self, caller: AuthenticatedUser | None) -> AuthenticatedUser:
        if caller is None:
            raise UnauthenticatedError()
        if not await self.directory.is_admin(caller.verified_email):
            logger.warning("moderation action denied", extra={"actor_id": caller.id})
            raise PermissionDeniedError()
        return caller

    async def approve_media(self, caller: AuthenticatedUser | None, media_id: Any) -> dict[str, Any]:
        async def _approve() -> dict[str, Any]:
            actor = await self.authorize(caller)
            key = _require_id(media_id, "mediaId")
            record = await self.store.get_media(key)
            if record is None:
                raise NotFoundError()
            if not record.storage.original_path:
                raise StateError("no_quarantine_path")
            await self.pipeline.apply(record, MediaStatus.APPROVED, source="admin", reviewed_by=actor.id)
            logger.info("media approved", extra={"actor_id": actor.id, "media_id": key})
            return OK

        return await self._tracked("approve", _approve)

    async def reject_media(self, caller: AuthenticatedUser | None, media_id: Any) -> dict[str, Any]:
        async def _reject() -> dict[str, Any]:
            actor = await self.authorize(caller)
            key = _require_id(media_id, "mediaId")
            record = await self.store.get_media(key)
            if record is None:
                return OK
            await self.pipeline.apply(record, MediaStatus.REJECTED, source="admin", reviewed_by=actor.id)
            logger.info("media rejected", extra={"actor_id": actor.id, "media_id": key})
            return OK

        return await self._tracked("reject", _reject)

    async def ban_user(self, caller: AuthenticatedUser | None, uid: Any) -> dict[str, Any]:
        async def _ban() -> dict[str, Any]:
            actor = await self.authorize(caller)
            key = _require_id(uid, "uid")
            await self.store.ban_user(key)
            logger.info("user banned", extra={"actor_id": actor.id, "target_uid": key})
            return OK

        return await self._tracked("ban", _ban)

    async def list_queue(self, caller: AuthenticatedUser | None, *, limit: int = 50) -> list[QueueItem]:
        await self.authorize(caller)
        entries = await self.store.list_queue(limit=limit)
        return [QueueItem(entry=entry, media=await self.store.get_media(entry.media_id)) for entry in entries]

    async def get_media(self, caller: AuthenticatedUser | None, media_id: Any) -> MediaRecord:
        await self.authorize(caller)
        record = await self.store.get_media(_require_id(media_id, "mediaId"))
        if record is None:
            raise NotFoundError()
        return record

    async def _tracked(self, action: str, run: Callable[[], Awaitable[T]]) -> T:
        try:
            result = await run()
        except ModerationError as exc:
            metrics.inc_admin_action(action, exc.code)
            raise
        metrics.inc_admin_action(action, "ok")
        return result
