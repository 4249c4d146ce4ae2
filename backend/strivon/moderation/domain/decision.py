"""Maps scorer output to a media lifecycle status."""

from __future__ import annotations

import math

from strivon.moderation.domain.exceptions import ValidationError
from strivon.moderation.domain.scorer import ScoreResult
from strivon.moderation.domain.status import MediaStatus

GORE_REJECT = 0.85
GORE_REVIEW = 0.55
REVIEW_PRIORITY = 0


def decide(gore_score: float, is_csam: bool) -> MediaStatus:
    if is_csam:
        return MediaStatus.REJECTED
    if not isinstance(gore_score, (int, float)) or math.isnan(gore_score) or not 0.0 <= gore_score <= 1.0:
        raise ValidationError(f"gore_score_out_of_range:{gore_score!r}")
    if gore_score >= GORE_REJECT:
        return MediaStatus.REJECTED
    if gore_score >= GORE_REVIEW:
        return MediaStatus.NEEDS_REVIEW
    return MediaStatus.APPROVED


def flags_for(result: ScoreResult, status: MediaStatus) -> list[str]:
    flags = list(result.flags)
    if result.is_csam and "csam" not in flags:
        flags.append("csam")
    if status is MediaStatus.NEEDS_REVIEW and not flags:
        flags.append("auto_review")
    return flags
