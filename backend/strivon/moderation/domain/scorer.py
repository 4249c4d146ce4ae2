"""Interfaces for media risk scorers used by the ingestion listener."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from strivon.moderation.domain.records import MediaRecord


@dataclass(frozen=True)
class ScoreResult:
    """Composite risk signals returned by a scorer."""

    gore_score: float
    is_csam: bool = False
    flags: tuple[str, ...] = field(default_factory=tuple)
    provider: str = "unknown"


class Scorer(Protocol):
    """Scorer interface for dependency injection."""

    async def score(self, media: MediaRecord) -> ScoreResult:
        ...


class StubScorer(Scorer):
    """Placeholder that reports the same score for every item.

    With the default low score every ingested item is auto-approved; swap in a
    real provider through the moderation container.
    """

    def __init__(self, gore_score: float = 0.3, *, is_csam: bool = False, provider: str = "stub") -> None:
        self.gore_score = gore_score
        self.is_csam = is_csam
        self.provider = provider

    async def score(self, media: MediaRecord) -> ScoreResult:  # noqa: ARG002 - interface parity
        return ScoreResult(gore_score=self.gore_score, is_csam=self.is_csam, provider=self.provider)
