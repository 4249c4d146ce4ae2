from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timedelta, timezone

import pytest

from strivon.infra.auth import AuthenticatedUser
from strivon.moderation.domain.admin_actions import AdminActions
from strivon.moderation.domain.admin_directory import StaticAdminDirectory, StoreAdminDirectory
from strivon.moderation.domain.exceptions import (
    AuthError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    UnauthenticatedError,
    ValidationError,
)
from strivon.moderation.domain.mover import ObjectMover
from strivon.moderation.domain.object_store import InMemoryObjectStore
from strivon.moderation.domain.pipeline import DecisionPipeline
from strivon.moderation.domain.records import MediaRecord, MediaStorage, MediaType, PostRecord, QueueEntry, UserRecord
from strivon.moderation.domain.status import MediaStatus
from strivon.moderation.domain.store import InMemoryModerationStore

BASE_URL = "https://cdn.example/v0/b"
ADMIN = AuthenticatedUser(id="admin-1", email="Mods@Strivon.app", email_verified=True)
STRANGER = AuthenticatedUser(id="user-9", email="user@strivon.app", email_verified=True)
UNVERIFIED_ADMIN = AuthenticatedUser(id="admin-2", email="mods@strivon.app", email_verified=False)
T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class YieldingObjectStore(InMemoryObjectStore):
    """Suspends before every call, like boto3 calls dispatched to a thread."""

    async def exists(self, path):
        await asyncio.sleep(0)
        return await super().exists(path)

    async def copy(self, source, destination):
        await asyncio.sleep(0)
        await super().copy(source, destination)

    async def delete(self, path):
        await asyncio.sleep(0)
        await super().delete(path)


def _build(admins=("mods@strivon.app",), objects=None):
    store = InMemoryModerationStore()
    objects = objects or InMemoryObjectStore(bucket="media")
    pipeline = DecisionPipeline(store, ObjectMover(objects, public_url_base=BASE_URL), clock=lambda: T0)
    actions = AdminActions(store, StaticAdminDirectory(admins), pipeline)
    return store, objects, actions


async def _queue_item(store, objects, media_id="m3", owner="u3", file_name="photo.png", created_at=T0, priority=0):
    path = f"quarantine/{owner}/{media_id}/{file_name}"
    await objects.put(path, b"bytes")
    store.media[media_id] = MediaRecord(
        media_id=media_id,
        owner_uid=owner,
        media_type=MediaType.IMAGE,
        status=MediaStatus.NEEDS_REVIEW,
        storage=MediaStorage(original_path=path),
        created_at=created_at,
    )
    store.queue[media_id] = QueueEntry(media_id=media_id, created_at=created_at, priority=priority)
    store.posts[f"post-{media_id}"] = PostRecord(post_id=f"post-{media_id}", media_id=media_id)
    return path


def _snapshot(store):
    return copy.deepcopy((store.media, store.queue, store.posts, store.users))


@pytest.mark.asyncio
async def test_admin_approves_queued_media() -> None:
    store, objects, actions = _build()
    await _queue_item(store, objects)

    assert await actions.approve_media(ADMIN, "m3") == {"ok": True}

    record = store.media["m3"]
    assert record.status is MediaStatus.APPROVED
    assert record.storage.public_path == "public/u3/m3.png"
    assert record.storage.original_path is None
    assert record.moderation.reviewed_by == "admin-1"
    assert record.moderation.reviewed_at == T0
    assert "m3" not in store.queue
    assert set(objects.objects) == {"public/u3/m3.png"}
    post = store.posts["post-m3"]
    assert post.status == "published"
    assert post.media[0].url == f"{BASE_URL}/media/o/public%2Fu3%2Fm3.png?alt=media"


@pytest.mark.asyncio
async def test_admin_rejects_queued_media() -> None:
    store, objects, actions = _build()
    path = await _queue_item(store, objects)

    assert await actions.reject_media(ADMIN, "m3") == {"ok": True}

    record = store.media["m3"]
    assert record.status is MediaStatus.REJECTED
    assert record.moderation.reviewed_by == "admin-1"
    assert record.storage.public_path is None
    assert path not in objects.objects
    assert "m3" not in store.queue
    assert store.posts["post-m3"].status == "rejected"


@pytest.mark.parametrize("caller", [STRANGER, UNVERIFIED_ADMIN])
@pytest.mark.asyncio
async def test_non_admin_calls_change_nothing(caller) -> None:
    store, objects, actions = _build()
    await _queue_item(store, objects)
    before = _snapshot(store)
    stored = set(objects.objects)

    with pytest.raises(PermissionDeniedError) as excinfo:
        await actions.approve_media(caller, "m3")
    assert excinfo.value.code == "permission-denied"
    with pytest.raises(PermissionDeniedError):
        await actions.reject_media(caller, "m3")
    with pytest.raises(PermissionDeniedError):
        await actions.ban_user(caller, "u3")

    assert _snapshot(store) == before
    assert set(objects.objects) == stored


@pytest.mark.asyncio
async def test_anonymous_caller_is_unauthenticated() -> None:
    store, objects, actions = _build()
    await _queue_item(store, objects)

    with pytest.raises(UnauthenticatedError) as excinfo:
        await actions.approve_media(None, "m3")
    assert isinstance(excinfo.value, AuthError)
    assert excinfo.value.status_code == 401
    assert store.media["m3"].status is MediaStatus.NEEDS_REVIEW


@pytest.mark.asyncio
async def test_reject_unknown_media_is_ok_without_writes() -> None:
    store, _, actions = _build()
    before = _snapshot(store)

    assert await actions.reject_media(ADMIN, "does-not-exist") == {"ok": True}
    assert _snapshot(store) == before


@pytest.mark.asyncio
async def test_approve_unknown_media_is_not_found() -> None:
    _, _, actions = _build()
    with pytest.raises(NotFoundError):
        await actions.approve_media(ADMIN, "does-not-exist")


@pytest.mark.asyncio
async def test_approve_without_quarantine_copy_is_a_state_error() -> None:
    store, objects, actions = _build()
    await _queue_item(store, objects)
    store.media["m3"].storage.original_path = None

    with pytest.raises(StateError):
        await actions.approve_media(ADMIN, "m3")
    assert store.media["m3"].status is MediaStatus.NEEDS_REVIEW


@pytest.mark.asyncio
async def test_decided_media_cannot_flip() -> None:
    store, objects, actions = _build()
    await _queue_item(store, objects)
    await actions.approve_media(ADMIN, "m3")

    with pytest.raises(StateError):
        await actions.reject_media(ADMIN, "m3")
    with pytest.raises(StateError):
        await actions.approve_media(ADMIN, "m3")
    assert store.media["m3"].status is MediaStatus.APPROVED
    assert "public/u3/m3.png" in objects.objects


@pytest.mark.asyncio
async def test_reject_twice_restamps_reviewer() -> None:
    store, objects, actions = _build()
    await _queue_item(store, objects)
    await actions.reject_media(ADMIN, "m3")
    other_admin = AuthenticatedUser(id="admin-3", email="mods@strivon.app", email_verified=True)

    assert await actions.reject_media(other_admin, "m3") == {"ok": True}
    assert store.media["m3"].status is MediaStatus.REJECTED
    assert store.media["m3"].moderation.reviewed_by == "admin-3"
    assert store.queue == {}


@pytest.mark.asyncio
async def test_ban_user_is_idempotent() -> None:
    store, _, actions = _build()
    store.users["u3"] = UserRecord(uid="u3", extra={"displayName": "Sam"})

    await actions.ban_user(ADMIN, "u3")
    first = copy.deepcopy(store.users)
    await actions.ban_user(ADMIN, "u3")

    assert store.users == first
    assert store.users["u3"].banned is True
    assert store.users["u3"].extra == {"displayName": "Sam"}


@pytest.mark.asyncio
async def test_ban_creates_missing_user() -> None:
    store, _, actions = _build()
    await actions.ban_user(ADMIN, "ghost")
    assert store.users["ghost"].banned is True


@pytest.mark.parametrize("bad_id", ["", "   ", None, 42])
@pytest.mark.asyncio
async def test_ids_are_validated_after_authorization(bad_id) -> None:
    _, _, actions = _build()
    with pytest.raises(ValidationError):
        await actions.approve_media(ADMIN, bad_id)
    with pytest.raises(ValidationError):
        await actions.ban_user(ADMIN, bad_id)
    with pytest.raises(PermissionDeniedError):
        await actions.reject_media(STRANGER, bad_id)


@pytest.mark.asyncio
async def test_queue_lists_priority_then_oldest() -> None:
    store, objects, actions = _build()
    await _queue_item(store, objects, media_id="late", created_at=T0 + timedelta(minutes=5))
    await _queue_item(store, objects, media_id="early", created_at=T0)
    await _queue_item(store, objects, media_id="urgent", created_at=T0 + timedelta(minutes=9), priority=5)

    items = await actions.list_queue(ADMIN, limit=10)

    assert [item.entry.media_id for item in items] == ["urgent", "early", "late"]
    assert items[0].media is not None and items[0].media.status is MediaStatus.NEEDS_REVIEW
    assert len(await actions.list_queue(ADMIN, limit=1)) == 1
    with pytest.raises(PermissionDeniedError):
        await actions.list_queue(STRANGER)


@pytest.mark.asyncio
async def test_is_admin_matches_verified_email_case_insensitively() -> None:
    _, _, actions = _build()
    assert await actions.is_admin(ADMIN) is True
    assert await actions.is_admin(UNVERIFIED_ADMIN) is False
    assert await actions.is_admin(STRANGER) is False
    assert await actions.is_admin(None) is False


@pytest.mark.asyncio
async def test_store_directory_reads_allowlist() -> None:
    store = InMemoryModerationStore()
    directory = StoreAdminDirectory(store)
    assert await directory.is_admin("mods@strivon.app") is False

    assert await store.add_admin_email("  Mods@Strivon.app ") is True
    assert await store.add_admin_email("mods@strivon.app") is False

    assert await directory.is_admin("MODS@strivon.app") is True
    assert await directory.is_admin(None) is False


@pytest.mark.asyncio
async def test_losing_approval_drops_its_public_copy() -> None:
    store, objects, actions = _build()
    await _queue_item(store, objects)
    stale = copy.deepcopy(store.media["m3"])
    await actions.reject_media(ADMIN, "m3")
    # A concurrent approval that read the record before the rejection landed.
    await objects.put("quarantine/u3/m3/photo.png", b"bytes")

    with pytest.raises(StateError):
        await actions.pipeline.apply(stale, MediaStatus.APPROVED, source="admin", reviewed_by="admin-1")

    assert store.media["m3"].status is MediaStatus.REJECTED
    assert "public/u3/m3.png" not in objects.objects


@pytest.mark.asyncio
async def test_concurrent_approvals_keep_the_public_object() -> None:
    second_admin = AuthenticatedUser(id="admin-3", email="lead@strivon.app", email_verified=True)
    store, objects, actions = _build(
        admins=("mods@strivon.app", "lead@strivon.app"),
        objects=YieldingObjectStore(bucket="media"),
    )
    await _queue_item(store, objects)

    results = await asyncio.gather(
        actions.approve_media(ADMIN, "m3"),
        actions.approve_media(second_admin, "m3"),
        return_exceptions=True,
    )

    assert sum(result == {"ok": True} for result in results) == 1
    assert sum(isinstance(result, StateError) for result in results) == 1
    record = store.media["m3"]
    assert record.status is MediaStatus.APPROVED
    assert record.storage.public_path == "public/u3/m3.png"
    assert record.storage.original_path is None
    assert set(objects.objects) == {"public/u3/m3.png"}
    assert objects.objects["public/u3/m3.png"].data == b"bytes"
    assert "m3" not in store.queue
    assert store.posts["post-m3"].status == "published"


@pytest.mark.asyncio
@pytest.mark.parametrize("approve_first", [True, False])
async def test_concurrent_approve_and_reject_settle_on_one_outcome(approve_first) -> None:
    store, objects, actions = _build(objects=YieldingObjectStore(bucket="media"))
    await _queue_item(store, objects)

    calls = [actions.approve_media(ADMIN, "m3"), actions.reject_media(ADMIN, "m3")]
    if not approve_first:
        calls.reverse()
    results = await asyncio.gather(*calls, return_exceptions=True)

    assert any(result == {"ok": True} for result in results)
    assert all(result == {"ok": True} or isinstance(result, StateError) for result in results)
    record = store.media["m3"]
    assert record.status in (MediaStatus.APPROVED, MediaStatus.REJECTED)
    assert "m3" not in store.queue
    if record.status is MediaStatus.APPROVED:
        assert record.storage.public_path in objects.objects
        assert store.posts["post-m3"].status == "published"
    else:
        assert record.storage.public_path is None
        assert "public/u3/m3.png" not in objects.objects
        assert store.posts["post-m3"].status == "rejected"
