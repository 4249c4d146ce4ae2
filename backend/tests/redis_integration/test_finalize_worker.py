from __future__ import annotations

import pytest

from strivon.moderation.domain.ingestion import IngestionListener
from strivon.moderation.domain.mover import ObjectMover
from strivon.moderation.domain.object_store import InMemoryObjectStore
from strivon.moderation.domain.pipeline import DecisionPipeline
from strivon.moderation.domain.scorer import ScoreResult
from strivon.moderation.domain.status import MediaStatus
from strivon.moderation.domain.store import InMemoryModerationStore
from strivon.moderation.workers.finalize_worker import FinalizeWorker

STREAM = "storage:finalize"


class FlakyScorer:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def score(self, media):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("scorer unavailable")
        return ScoreResult(gore_score=0.2, provider="flaky")


async def _build(fake_redis, scorer, **worker_kwargs):
    store = InMemoryModerationStore()
    objects = InMemoryObjectStore(bucket="media")
    pipeline = DecisionPipeline(store, ObjectMover(objects, public_url_base="https://cdn.example/v0/b"))
    listener = IngestionListener(store, scorer, pipeline)
    worker = FinalizeWorker(redis=fake_redis, listener=listener, stream_key=STREAM, block_ms=None, **worker_kwargs)
    return store, objects, worker


@pytest.mark.asyncio
async def test_worker_ingests_stream_entries(fake_redis):
    store, objects, worker = await _build(fake_redis, FlakyScorer(failures=0))
    await objects.put("quarantine/u1/m1/photo.jpg", b"jpeg")
    await fake_redis.xadd(STREAM, {"name": "quarantine/u1/m1/photo.jpg", "contentType": "image/jpeg"})
    last = await fake_redis.xadd(STREAM, {"name": "avatars/u1.png"})

    handled = await worker.run_once()

    assert handled == 2
    assert worker.last_id == last
    assert store.media["m1"].status is MediaStatus.APPROVED
    assert "public/u1/m1.jpg" in objects.objects
    assert await worker.run_once() == 0


@pytest.mark.asyncio
async def test_failed_entry_is_redelivered(fake_redis):
    scorer = FlakyScorer(failures=1)
    store, objects, worker = await _build(fake_redis, scorer)
    await objects.put("quarantine/u1/m1/photo.jpg", b"jpeg")
    entry_id = await fake_redis.xadd(STREAM, {"name": "quarantine/u1/m1/photo.jpg"})

    assert await worker.run_once() == 0
    assert worker.last_id == "0-0"
    assert store.media["m1"].status is MediaStatus.PROCESSING
    assert store.queue == {}

    assert await worker.run_once() == 1
    assert worker.last_id == entry_id
    assert store.media["m1"].status is MediaStatus.APPROVED


@pytest.mark.asyncio
async def test_poison_entry_goes_to_dead_letter_stream(fake_redis):
    store, objects, worker = await _build(fake_redis, FlakyScorer(failures=10), max_attempts=2)
    await objects.put("quarantine/u1/m1/photo.jpg", b"jpeg")
    await objects.put("quarantine/u2/m2/photo.jpg", b"jpeg")
    poison = await fake_redis.xadd(STREAM, {"name": "quarantine/u1/m1/photo.jpg"})
    await fake_redis.xadd(STREAM, {"name": "quarantine/u2/m2/photo.jpg"})

    assert await worker.run_once() == 0
    await worker.run_once()

    assert worker.last_id != "0-0"
    dead = await fake_redis.xrange("storage:finalize:dead")
    assert len(dead) == 1
    assert dead[0][1]["source_id"] == poison
    assert dead[0][1]["name"] == "quarantine/u1/m1/photo.jpg"
    assert store.media["m1"].status is MediaStatus.PROCESSING
