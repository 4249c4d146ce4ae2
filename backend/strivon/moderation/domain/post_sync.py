"""Propagates a final media decision onto every post referencing the media."""

from __future__ import annotations

from dataclasses import dataclass

from strivon.moderation.domain.records import MediaRecord, PostMedia, PostRecord
from strivon.moderation.domain.status import MediaStatus

POST_PUBLISHED = "published"
POST_REJECTED = "rejected"
VISIBILITY_PUBLIC = "public"


@dataclass(frozen=True)
class PostPatch:
    """Field updates applied to each linked post; None leaves a field untouched."""

    status: str
    visibility: str | None = None
    media: tuple[PostMedia, ...] | None = None

    def apply(self, post: PostRecord) -> PostRecord:
        post.status = self.status
        if self.visibility is not None:
            post.visibility = self.visibility
        if self.media is not None:
            post.media = list(self.media)
        return post


class PostSynchronizer:
    """Builds the post patch for a decision.

    The patch is handed to the store together with the media record write so
    both land in one atomic step.
    """

    def patch_for(self, status: MediaStatus, media: MediaRecord, *, public_url: str | None = None) -> PostPatch | None:
        if status is MediaStatus.APPROVED:
            if not public_url:
                raise ValueError("public_url required for approved media")
            return PostPatch(
                status=POST_PUBLISHED,
                visibility=VISIBILITY_PUBLIC,
                media=(PostMedia(id=media.media_id, type=media.media_type.value, url=public_url),),
            )
        if status is MediaStatus.REJECTED:
            return PostPatch(status=POST_REJECTED)
        return None
