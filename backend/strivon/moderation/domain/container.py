"""Lightweight service container shared by moderation modules."""

from __future__ import annotations

from typing import Optional

import asyncpg

from strivon.moderation.domain.admin_actions import AdminActions
from strivon.moderation.domain.admin_directory import AdminDirectory, StaticAdminDirectory, StoreAdminDirectory
from strivon.moderation.domain.ingestion import IngestionListener
from strivon.moderation.domain.mover import ObjectMover
from strivon.moderation.domain.object_store import InMemoryObjectStore, ObjectStore
from strivon.moderation.domain.pipeline import DecisionPipeline
from strivon.moderation.domain.scorer import Scorer, StubScorer
from strivon.moderation.domain.store import InMemoryModerationStore, ModerationStore
from strivon.settings import settings


def _default_directory(store: ModerationStore) -> AdminDirectory:
    if settings.admin_emails:
        return StaticAdminDirectory(settings.admin_emails)
    return StoreAdminDirectory(store)


def _default_object_store() -> ObjectStore:
    if settings.storage_backend.lower() == "s3":
        from strivon.moderation.infra.s3_store import S3ObjectStore

        return S3ObjectStore.from_settings()
    return InMemoryObjectStore(bucket=settings.storage_bucket)


_store: ModerationStore = InMemoryModerationStore()
_object_store: ObjectStore = _default_object_store()
_scorer: Scorer = StubScorer()
_directory: AdminDirectory = _default_directory(_store)
_pipeline = DecisionPipeline(_store, ObjectMover(_object_store, public_url_base=settings.public_url_base))
_listener = IngestionListener(_store, _scorer, _pipeline)
_admin_actions = AdminActions(_store, _directory, _pipeline)


def configure(
    *,
    store: Optional[ModerationStore] = None,
    object_store: Optional[ObjectStore] = None,
    scorer: Optional[Scorer] = None,
    directory: Optional[AdminDirectory] = None,
    public_url_base: Optional[str] = None,
) -> None:
    global _store, _object_store, _scorer, _directory, _pipeline, _listener, _admin_actions
    if store is not None:
        _store = store
        if directory is None and not settings.admin_emails:
            _directory = StoreAdminDirectory(_store)
    if object_store is not None:
        _object_store = object_store
    if scorer is not None:
        _scorer = scorer
    if directory is not None:
        _directory = directory
    mover = ObjectMover(_object_store, public_url_base=public_url_base or settings.public_url_base)
    _pipeline = DecisionPipeline(_store, mover)
    _listener = IngestionListener(_store, _scorer, _pipeline)
    _admin_actions = AdminActions(_store, _directory, _pipeline)


def configure_postgres(pool: asyncpg.Pool, *, object_store: Optional[ObjectStore] = None) -> None:
    from strivon.moderation.infra.postgres_store import PostgresModerationStore

    configure(store=PostgresModerationStore(pool), object_store=object_store)


def reset() -> None:
    """Restore fresh in-memory defaults."""
    global _store, _object_store, _scorer, _directory
    _store = InMemoryModerationStore()
    _object_store = _default_object_store()
    _scorer = StubScorer()
    _directory = _default_directory(_store)
    configure()


def get_store() -> ModerationStore:
    return _store


def get_object_store() -> ObjectStore:
    return _object_store


def get_scorer() -> Scorer:
    return _scorer


def get_admin_directory() -> AdminDirectory:
    return _directory


def get_pipeline() -> DecisionPipeline:
    return _pipeline


def get_ingestion_listener() -> IngestionListener:
    return _listener


def get_admin_actions() -> AdminActions:
    return _admin_actions
