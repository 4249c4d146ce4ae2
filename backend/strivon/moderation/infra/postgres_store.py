"""PostgreSQL-backed store for media records, the review queue, posts and users."""

from __future__ import annotations

import json
from typing import Any, Sequence

import asyncpg

from strivon.moderation.domain.decision import REVIEW_PRIORITY
from strivon.moderation.domain.exceptions import NotFoundError
from strivon.moderation.domain.records import (
    MediaRecord,
    MediaStorage,
    MediaType,
    ModerationInfo,
    PostMedia,
    PostRecord,
    QueueEntry,
    UserRecord,
)
from strivon.moderation.domain.status import MediaStatus, ensure_transition
from strivon.moderation.domain.store import (
    DecisionResult,
    DecisionWrite,
    IngestAction,
    ModerationStore,
    apply_write,
    normalise_email,
)

_MEDIA_COLUMNS = """
    id, owner_uid, media_type, status, original_path, public_path,
    gore_score, provider, flags, reviewed_by, reviewed_at, created_at
"""


class PostgresModerationStore(ModerationStore):
    """Persists moderation state using asyncpg.

    ``apply_decision`` runs in one transaction holding a row lock on the media
    record, so the status, queue entry and linked posts change together.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_media(self, media_id: str) -> MediaRecord | None:
        query = f"SELECT {_MEDIA_COLUMNS} FROM media WHERE id = $1"
        record = await self.pool.fetchrow(query, media_id)
        if record is None:
            return None
        return _media_from_record(record)

    async def ingest_media(self, draft: MediaRecord) -> tuple[MediaRecord, IngestAction]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                current = await conn.fetchrow(
                    f"SELECT {_MEDIA_COLUMNS} FROM media WHERE id = $1 FOR UPDATE",
                    draft.media_id,
                )
                if current is None:
                    inserted = await conn.fetchrow(
                        f"""
                        INSERT INTO media (id, owner_uid, media_type, status, original_path, created_at)
                        VALUES ($1, $2, $3, $4, $5, COALESCE($6, now()))
                        RETURNING {_MEDIA_COLUMNS}
                        """,
                        draft.media_id,
                        draft.owner_uid,
                        draft.media_type.value,
                        MediaStatus.PROCESSING.value,
                        draft.storage.original_path,
                        draft.created_at,
                    )
                    assert inserted is not None
                    return _media_from_record(inserted), IngestAction.CREATED
                if current["status"] != MediaStatus.PROCESSING.value:
                    return _media_from_record(current), IngestAction.SKIPPED
                updated = await conn.fetchrow(
                    f"""
                    UPDATE media
                    SET status = $2, original_path = $3
                    WHERE id = $1
                    RETURNING {_MEDIA_COLUMNS}
                    """,
                    draft.media_id,
                    MediaStatus.PROCESSING.value,
                    draft.storage.original_path,
                )
                assert updated is not None
                return _media_from_record(updated), IngestAction.UPDATED

    async def apply_decision(self, write: DecisionWrite) -> DecisionResult:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                current = await conn.fetchrow(
                    f"SELECT {_MEDIA_COLUMNS} FROM media WHERE id = $1 FOR UPDATE",
                    write.media_id,
                )
                if current is None:
                    raise NotFoundError()
                media = _media_from_record(current)
                ensure_transition(media.status, write.status)
                apply_write(media, write)
                await conn.execute(
                    """
                    UPDATE media
                    SET status = $2,
                        original_path = $3,
                        public_path = $4,
                        gore_score = $5,
                        provider = $6,
                        flags = $7::jsonb,
                        reviewed_by = $8,
                        reviewed_at = $9
                    WHERE id = $1
                    """,
                    media.media_id,
                    media.status.value,
                    media.storage.original_path,
                    media.storage.public_path,
                    media.moderation.gore_score,
                    media.moderation.provider,
                    list(media.moderation.flags),
                    media.moderation.reviewed_by,
                    media.moderation.reviewed_at,
                )
                if write.status is MediaStatus.NEEDS_REVIEW:
                    await conn.execute(
                        """
                        INSERT INTO moderation_queue (media_id, created_at, priority)
                        VALUES ($1, $2, $3)
                        ON CONFLICT (media_id) DO NOTHING
                        """,
                        write.media_id,
                        write.decided_at,
                        REVIEW_PRIORITY,
                    )
                else:
                    await conn.execute("DELETE FROM moderation_queue WHERE media_id = $1", write.media_id)
                post_ids: list[str] = []
                patch = write.post_patch
                if patch is not None:
                    post_media = [item.to_dict() for item in patch.media] if patch.media is not None else None
                    rows = await conn.fetch(
                        """
                        UPDATE posts
                        SET status = $2,
                            visibility = COALESCE($3, visibility),
                            media = COALESCE($4::jsonb, media),
                            updated_at = now()
                        WHERE media_id = $1
                        RETURNING id
                        """,
                        write.media_id,
                        patch.status,
                        patch.visibility,
                        post_media,
                    )
                    post_ids = [row["id"] for row in rows]
                return DecisionResult(media=media, post_ids=post_ids)

    async def get_queue_entry(self, media_id: str) -> QueueEntry | None:
        query = "SELECT media_id, created_at, priority FROM moderation_queue WHERE media_id = $1"
        record = await self.pool.fetchrow(query, media_id)
        if record is None:
            return None
        return _queue_from_record(record)

    async def list_queue(self, *, limit: int) -> Sequence[QueueEntry]:
        query = """
        SELECT media_id, created_at, priority
        FROM moderation_queue
        ORDER BY priority DESC, created_at ASC
        LIMIT $1
        """
        records = await self.pool.fetch(query, limit)
        return [_queue_from_record(record) for record in records]

    async def count_queue(self) -> int:
        value = await self.pool.fetchval("SELECT COUNT(*) FROM moderation_queue")
        return int(value or 0)

    async def list_posts_for_media(self, media_id: str) -> Sequence[PostRecord]:
        query = "SELECT id, media_id, status, visibility, media FROM posts WHERE media_id = $1 ORDER BY id"
        records = await self.pool.fetch(query, media_id)
        return [_post_from_record(record) for record in records]

    async def ban_user(self, uid: str) -> UserRecord:
        query = """
        INSERT INTO users (uid, banned)
        VALUES ($1, TRUE)
        ON CONFLICT (uid) DO UPDATE SET banned = TRUE, updated_at = now()
        RETURNING uid, banned, extra
        """
        record = await self.pool.fetchrow(query, uid)
        assert record is not None
        return _user_from_record(record)

    async def get_user(self, uid: str) -> UserRecord | None:
        record = await self.pool.fetchrow("SELECT uid, banned, extra FROM users WHERE uid = $1", uid)
        if record is None:
            return None
        return _user_from_record(record)

    async def list_admin_emails(self) -> Sequence[str]:
        records = await self.pool.fetch("SELECT email FROM admin_emails ORDER BY email")
        return [record["email"] for record in records]

    async def add_admin_email(self, email: str) -> bool:
        normalised = normalise_email(email)
        if not normalised:
            return False
        query = """
        INSERT INTO admin_emails (email)
        VALUES ($1)
        ON CONFLICT (email) DO NOTHING
        RETURNING email
        """
        record = await self.pool.fetchrow(query, normalised)
        return record is not None


def _load_json(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default
    return value


def _media_from_record(record: asyncpg.Record) -> MediaRecord:
    return MediaRecord(
        media_id=record["id"],
        owner_uid=record["owner_uid"],
        media_type=MediaType(record["media_type"]),
        status=MediaStatus(record["status"]),
        storage=MediaStorage(
            original_path=record["original_path"],
            public_path=record["public_path"],
        ),
        moderation=ModerationInfo(
            gore_score=record["gore_score"],
            provider=record["provider"],
            flags=list(_load_json(record["flags"], [])),
            reviewed_by=record["reviewed_by"],
            reviewed_at=record["reviewed_at"],
        ),
        created_at=record["created_at"],
    )


def _queue_from_record(record: asyncpg.Record) -> QueueEntry:
    return QueueEntry(
        media_id=record["media_id"],
        created_at=record["created_at"],
        priority=int(record["priority"]),
    )


def _post_from_record(record: asyncpg.Record) -> PostRecord:
    items = _load_json(record["media"], [])
    return PostRecord(
        post_id=record["id"],
        media_id=record["media_id"],
        status=record["status"],
        visibility=record["visibility"],
        media=[PostMedia(id=item["id"], type=item["type"], url=item["url"]) for item in items],
    )


def _user_from_record(record: asyncpg.Record) -> UserRecord:
    return UserRecord(
        uid=record["uid"],
        banned=bool(record["banned"]),
        extra=dict(_load_json(record["extra"], {})),
    )
