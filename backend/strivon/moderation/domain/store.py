"""Storage contracts and in-memory fallbacks for media moderation records."""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import MutableMapping, Protocol, Sequence

from strivon.moderation.domain.decision import REVIEW_PRIORITY
from strivon.moderation.domain.exceptions import NotFoundError
from strivon.moderation.domain.post_sync import PostPatch
from strivon.moderation.domain.records import MediaRecord, PostRecord, QueueEntry, UserRecord
from strivon.moderation.domain.status import MediaStatus, ensure_transition


class IngestAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(slots=True)
class DecisionWrite:
    """Everything that must change together when a media item gets a decision.

    ``public_path`` set means the item was promoted: the public path is stored
    and the quarantine path cleared. Scorer fields are only written on the
    automatic path and reviewer fields only by admin actions.
    """

    media_id: str
    status: MediaStatus
    decided_at: datetime
    public_path: str | None = None
    gore_score: float | None = None
    provider: str | None = None
    flags: list[str] | None = None
    reviewed_by: str | None = None
    post_patch: PostPatch | None = None


@dataclass(slots=True)
class DecisionResult:
    media: MediaRecord
    post_ids: list[str] = field(default_factory=list)


class ModerationStore(Protocol):
    """Abstract persistence for media records, the review queue, posts, users and admins."""

    async def get_media(self, media_id: str) -> MediaRecord | None:
        """Fetch a media record by identifier."""

    async def ingest_media(self, draft: MediaRecord) -> tuple[MediaRecord, IngestAction]:
        """Create the record, or refresh the quarantine path of one still processing.

        Records that already left ``processing`` are returned untouched with
        ``IngestAction.SKIPPED``.
        """

    async def apply_decision(self, write: DecisionWrite) -> DecisionResult:
        """Atomically write the final status, queue entry and linked post updates."""

    async def get_queue_entry(self, media_id: str) -> QueueEntry | None:
        """Return the queue entry for a media item if one exists."""

    async def list_queue(self, *, limit: int) -> Sequence[QueueEntry]:
        """Return queue entries, highest priority first then oldest first."""

    async def count_queue(self) -> int:
        """Return the number of items awaiting review."""

    async def list_posts_for_media(self, media_id: str) -> Sequence[PostRecord]:
        """Return every post referencing ``media_id``."""

    async def ban_user(self, uid: str) -> UserRecord:
        """Upsert-merge ``banned = True`` for the user."""

    async def get_user(self, uid: str) -> UserRecord | None:
        """Fetch a user record."""

    async def list_admin_emails(self) -> Sequence[str]:
        """Return the configured admin allowlist."""

    async def add_admin_email(self, email: str) -> bool:
        """Add an email to the allowlist; False when it was already present."""


def apply_write(record: MediaRecord, write: DecisionWrite) -> None:
    record.status = write.status
    if write.public_path is not None:
        record.storage.public_path = write.public_path
        record.storage.original_path = None
    if write.gore_score is not None:
        record.moderation.gore_score = write.gore_score
    if write.provider is not None:
        record.moderation.provider = write.provider
    if write.flags is not None:
        record.moderation.flags = list(write.flags)
    if write.reviewed_by is not None:
        record.moderation.reviewed_by = write.reviewed_by
        record.moderation.reviewed_at = write.decided_at


def normalise_email(email: str) -> str:
    return str(email).strip().lower()


@dataclass
class InMemoryModerationStore(ModerationStore):
    """Simple store with in-memory state for local development and tests.

    A single lock serialises writers, so ``apply_decision`` is atomic with
    respect to every other store call.
    """

    media: MutableMapping[str, MediaRecord] = field(default_factory=dict)
    queue: MutableMapping[str, QueueEntry] = field(default_factory=dict)
    posts: MutableMapping[str, PostRecord] = field(default_factory=dict)
    users: MutableMapping[str, UserRecord] = field(default_factory=dict)
    admin_emails: list[str] = field(default_factory=list)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def get_media(self, media_id: str) -> MediaRecord | None:
        record = self.media.get(media_id)
        return copy.deepcopy(record) if record else None

    async def ingest_media(self, draft: MediaRecord) -> tuple[MediaRecord, IngestAction]:
        async with self._lock:
            existing = self.media.get(draft.media_id)
            if existing is None:
                stored = copy.deepcopy(draft)
                stored.status = MediaStatus.PROCESSING
                self.media[draft.media_id] = stored
                return copy.deepcopy(stored), IngestAction.CREATED
            if existing.status is not MediaStatus.PROCESSING:
                return copy.deepcopy(existing), IngestAction.SKIPPED
            existing.storage.original_path = draft.storage.original_path
            return copy.deepcopy(existing), IngestAction.UPDATED

    async def apply_decision(self, write: DecisionWrite) -> DecisionResult:
        async with self._lock:
            current = self.media.get(write.media_id)
            if current is None:
                raise NotFoundError()
            ensure_transition(current.status, write.status)
            record = copy.deepcopy(current)
            apply_write(record, write)
            touched: list[str] = []
            patched_posts: dict[str, PostRecord] = {}
            if write.post_patch is not None:
                for post in self.posts.values():
                    if post.media_id == write.media_id:
                        patched_posts[post.post_id] = write.post_patch.apply(copy.deepcopy(post))
                        touched.append(post.post_id)
            # commit
            self.media[write.media_id] = record
            if write.status is MediaStatus.NEEDS_REVIEW:
                self.queue.setdefault(
                    write.media_id,
                    QueueEntry(media_id=write.media_id, created_at=write.decided_at, priority=REVIEW_PRIORITY),
                )
            else:
                self.queue.pop(write.media_id, None)
            self.posts.update(patched_posts)
            return DecisionResult(media=copy.deepcopy(record), post_ids=touched)

    async def get_queue_entry(self, media_id: str) -> QueueEntry | None:
        return self.queue.get(media_id)

    async def list_queue(self, *, limit: int) -> Sequence[QueueEntry]:
        entries = sorted(self.queue.values(), key=lambda entry: (-entry.priority, entry.created_at))
        return entries[:limit]

    async def count_queue(self) -> int:
        return len(self.queue)

    async def list_posts_for_media(self, media_id: str) -> Sequence[PostRecord]:
        return [copy.deepcopy(post) for post in self.posts.values() if post.media_id == media_id]

    async def ban_user(self, uid: str) -> UserRecord:
        async with self._lock:
            record = self.users.setdefault(uid, UserRecord(uid=uid))
            record.banned = True
            return copy.deepcopy(record)

    async def get_user(self, uid: str) -> UserRecord | None:
        record = self.users.get(uid)
        return copy.deepcopy(record) if record else None

    async def list_admin_emails(self) -> Sequence[str]:
        return list(self.admin_emails)

    async def add_admin_email(self, email: str) -> bool:
        normalised = normalise_email(email)
        if not normalised:
            return False
        async with self._lock:
            if normalised in {normalise_email(existing) for existing in self.admin_emails}:
                return False
            self.admin_emails.append(normalised)
            return True


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
