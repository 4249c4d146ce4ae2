"""Applies a decision: storage side effects first, then one atomic record write."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from strivon.moderation.domain.decision import flags_for
from strivon.moderation.domain.exceptions import StateError
from strivon.moderation.domain.mover import ObjectMover, Promotion
from strivon.moderation.domain.post_sync import PostSynchronizer
from strivon.moderation.domain.records import MediaRecord
from strivon.moderation.domain.scorer import ScoreResult
from strivon.moderation.domain.status import MediaStatus, ensure_transition
from strivon.moderation.domain.store import DecisionResult, DecisionWrite, ModerationStore
from strivon.obs import metrics

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DecisionPipeline:
    """Shared by the ingestion listener and the admin action handlers.

    The final status write happens after the object mover succeeded, so an
    observer never sees ``approved`` before the public copy exists.
    """

    def __init__(
        self,
        store: ModerationStore,
        mover: ObjectMover,
        posts: PostSynchronizer | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.mover = mover
        self.posts = posts or PostSynchronizer()
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    async def apply(
        self,
        record: MediaRecord,
        status: MediaStatus,
        *,
        source: str,
        score: ScoreResult | None = None,
        reviewed_by: str | None = None,
    ) -> DecisionResult:
        ensure_transition(record.status, status)
        public_path: str | None = None
        url: str | None = None
        promotion: Promotion | None = None
        if status is MediaStatus.APPROVED:
            original_path = record.storage.original_path
            if not original_path:
                raise StateError("no_quarantine_path")
            promotion = await self.mover.promote(
                owner_uid=record.owner_uid,
                media_id=record.media_id,
                original_path=original_path,
            )
            public_path, url = promotion.public_path, promotion.public_url
        elif status is MediaStatus.REJECTED:
            await self.mover.discard(record.storage.original_path)

        write = DecisionWrite(
            media_id=record.media_id,
            status=status,
            decided_at=self.now(),
            public_path=public_path,
            reviewed_by=reviewed_by,
            post_patch=self.posts.patch_for(status, record, public_url=url),
        )
        if score is not None:
            write.gore_score = score.gore_score
            write.provider = score.provider
            write.flags = flags_for(score, status)
        try:
            result = await self.store.apply_decision(write)
        except StateError:
            if promotion is not None and promotion.copied:
                await self._drop_unclaimed_copy(record.media_id, promotion.public_path)
            raise
        metrics.inc_decision(source, status.value)
        metrics.set_queue_backlog(await self.store.count_queue())
        logger.info(
            "media decision applied",
            extra={"media_id": record.media_id, "status": status.value, "source": source, "posts": len(result.post_ids)},
        )
        return result

    async def _drop_unclaimed_copy(self, media_id: str, public_path: str) -> None:
        """Remove a public copy made by a decision that lost the race.

        The public path is the same for every approval of a media item, so the
        object stays when the winning decision approved it at that path.
        """
        current = await self.store.get_media(media_id)
        if (
            current is not None
            and current.status is MediaStatus.APPROVED
            and current.storage.public_path == public_path
        ):
            return
        await self.mover.discard(public_path)
