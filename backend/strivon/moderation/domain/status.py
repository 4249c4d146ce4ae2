"""Media lifecycle states and the transitions allowed between them."""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from strivon.moderation.domain.exceptions import IllegalTransitionError


class MediaStatus(str, Enum):
    PROCESSING = "processing"
    APPROVED = "approved"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({MediaStatus.APPROVED, MediaStatus.REJECTED})

# rejected -> rejected lets an admin re-run rejectMedia on an already rejected record.
TRANSITIONS: Mapping[MediaStatus, frozenset[MediaStatus]] = {
    MediaStatus.PROCESSING: frozenset({MediaStatus.APPROVED, MediaStatus.NEEDS_REVIEW, MediaStatus.REJECTED}),
    MediaStatus.NEEDS_REVIEW: frozenset({MediaStatus.APPROVED, MediaStatus.REJECTED}),
    MediaStatus.REJECTED: frozenset({MediaStatus.REJECTED}),
    MediaStatus.APPROVED: frozenset(),
}


def can_transition(current: MediaStatus, target: MediaStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: MediaStatus, target: MediaStatus) -> None:
    if not can_transition(current, target):
        raise IllegalTransitionError(f"illegal_transition:{current.value}->{target.value}")
