"""Moderation worker exports."""

from .finalize_worker import FinalizeWorker
from .runner import spawn_workers

__all__ = [
    "FinalizeWorker",
    "spawn_workers",
]
