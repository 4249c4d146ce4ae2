"""Records persisted by the media moderation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from strivon.moderation.domain.status import MediaStatus

VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "webm", "avi"})


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


def infer_media_type(file_name: str) -> MediaType:
    _, dot, ext = file_name.rpartition(".")
    if dot and ext.lower() in VIDEO_EXTENSIONS:
        return MediaType.VIDEO
    return MediaType.IMAGE


@dataclass(slots=True)
class MediaStorage:
    original_path: str | None = None
    public_path: str | None = None


@dataclass(slots=True)
class ModerationInfo:
    gore_score: float | None = None
    provider: str | None = None
    flags: list[str] = field(default_factory=list)
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None


@dataclass(slots=True)
class MediaRecord:
    """One uploaded media item and its moderation lifecycle."""

    media_id: str
    owner_uid: str
    media_type: MediaType
    status: MediaStatus
    storage: MediaStorage = field(default_factory=MediaStorage)
    moderation: ModerationInfo = field(default_factory=ModerationInfo)
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        storage: dict[str, Any] = {}
        if self.storage.original_path is not None:
            storage["originalPath"] = self.storage.original_path
        if self.storage.public_path is not None:
            storage["publicPath"] = self.storage.public_path
        moderation: dict[str, Any] = {
            "goreScore": self.moderation.gore_score,
            "provider": self.moderation.provider,
            "flags": list(self.moderation.flags),
        }
        if self.moderation.reviewed_by is not None:
            moderation["reviewedBy"] = self.moderation.reviewed_by
        if self.moderation.reviewed_at is not None:
            moderation["reviewedAt"] = self.moderation.reviewed_at.isoformat()
        return {
            "id": self.media_id,
            "ownerUid": self.owner_uid,
            "type": self.media_type.value,
            "status": self.status.value,
            "storage": storage,
            "moderation": moderation,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(slots=True)
class QueueEntry:
    media_id: str
    created_at: datetime
    priority: int = 0


@dataclass(slots=True)
class PostMedia:
    id: str
    type: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "type": self.type, "url": self.url}


@dataclass(slots=True)
class PostRecord:
    """Fields of an externally owned post that this pipeline keeps in sync."""

    post_id: str
    media_id: str | None
    status: str = "draft"
    visibility: str = "private"
    media: list[PostMedia] = field(default_factory=list)


@dataclass(slots=True)
class UserRecord:
    uid: str
    banned: bool = False
    extra: dict[str, Any] = field(default_factory=dict)
