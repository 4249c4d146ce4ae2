"""Reacts to finalize events for quarantined uploads."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from strivon.moderation.domain.decision import decide
from strivon.moderation.domain.exceptions import StateError
from strivon.moderation.domain.paths import parse_quarantine_path
from strivon.moderation.domain.pipeline import DecisionPipeline
from strivon.moderation.domain.records import MediaRecord, MediaStorage, infer_media_type
from strivon.moderation.domain.scorer import Scorer
from strivon.moderation.domain.status import MediaStatus
from strivon.moderation.domain.store import IngestAction, ModerationStore
from strivon.obs import logging as obs_logging
from strivon.obs import metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionOutcome:
    media_id: str
    action: IngestAction
    status: MediaStatus


class IngestionListener:
    """Creates/refreshes the media record, scores it and applies the decision.

    Errors propagate so the event is not acknowledged; the record stays in
    ``processing`` without a queue entry until a redelivery succeeds.
    """

    def __init__(self, store: ModerationStore, scorer: Scorer, pipeline: DecisionPipeline) -> None:
        self.store = store
        self.scorer = scorer
        self.pipeline = pipeline

    async def handle_finalize(self, object_name: str) -> IngestionOutcome | None:
        target = parse_quarantine_path(object_name)
        if target is None:
            return None
        tokens = obs_logging.bind_context(media_id=target.media_id)
        start = time.perf_counter()
        result = "error"
        try:
            draft = MediaRecord(
                media_id=target.media_id,
                owner_uid=target.owner_uid,
                media_type=infer_media_type(target.file_name),
                status=MediaStatus.PROCESSING,
                storage=MediaStorage(original_path=target.path),
                created_at=self.pipeline.now(),
            )
            record, action = await self.store.ingest_media(draft)
            if action is IngestAction.SKIPPED:
                result = "skipped"
                logger.info(
                    "finalize ignored; media already decided",
                    extra={"media_id": record.media_id, "status": record.status.value},
                )
                return IngestionOutcome(media_id=record.media_id, action=action, status=record.status)

            score = await self.scorer.score(record)
            status = decide(score.gore_score, score.is_csam)
            try:
                await self.pipeline.apply(record, status, source="auto", score=score)
            except StateError:
                # A concurrent delivery of the same event decided first.
                current = await self.store.get_media(record.media_id)
                if current is None or current.status is MediaStatus.PROCESSING:
                    raise
                result = "skipped"
                logger.info(
                    "finalize lost decision race",
                    extra={"media_id": record.media_id, "status": current.status.value},
                )
                return IngestionOutcome(media_id=record.media_id, action=IngestAction.SKIPPED, status=current.status)
            result = status.value
            return IngestionOutcome(media_id=record.media_id, action=action, status=status)
        finally:
            metrics.inc_ingest(result)
            metrics.MEDIA_INGEST_LATENCY_SECONDS.observe(time.perf_counter() - start)
            obs_logging.reset_context(tokens)
