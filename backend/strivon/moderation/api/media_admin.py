"""Admin endpoints for reviewing media and banning users."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from strivon.infra.auth import AuthenticatedUser, get_optional_user
from strivon.moderation.api._errors import to_http_error
from strivon.moderation.domain.admin_actions import AdminActions, QueueItem
from strivon.moderation.domain.container import get_admin_actions
from strivon.moderation.domain.exceptions import ModerationError

router = APIRouter(prefix="/api/mod/v1", tags=["moderation-media"])

_FAILURES = {
    401: {"description": "unauthenticated"},
    403: {"description": "permission-denied: caller is not in the admin directory"},
    422: {"description": "invalid-argument: id missing or not a string"},
}


def _body_field(body: Any, name: str) -> Any:
    # Read untyped; AdminActions validates ids only after authorizing the caller.
    return body.get(name) if isinstance(body, dict) else None


class OkOut(BaseModel):
    ok: bool = True


class QueueItemOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    media_id: str = Field(alias="mediaId")
    priority: int
    created_at: datetime = Field(alias="createdAt")
    media: Optional[dict[str, Any]] = None

    @classmethod
    def from_domain(cls, item: QueueItem) -> "QueueItemOut":
        return cls(
            media_id=item.entry.media_id,
            priority=item.entry.priority,
            created_at=item.entry.created_at,
            media=item.media.to_dict() if item.media else None,
        )


class QueueOut(BaseModel):
    items: list[QueueItemOut]


class AdminCheckOut(BaseModel):
    admin: bool


async def _actions_dep() -> AdminActions:
    return get_admin_actions()


@router.post(
    "/media/approve",
    response_model=OkOut,
    responses={
        **_FAILURES,
        404: {"description": "not-found: no media record with that id"},
        409: {"description": "failed-precondition: already decided, or no quarantine object to promote"},
        502: {"description": "internal: object store copy failed"},
    },
)
async def approve_media(
    body: Any = Body(default=None, examples=[{"mediaId": "m3"}]),
    caller: Optional[AuthenticatedUser] = Depends(get_optional_user),
    actions: AdminActions = Depends(_actions_dep),
) -> dict[str, Any]:
    try:
        return await actions.approve_media(caller, _body_field(body, "mediaId"))
    except ModerationError as exc:
        raise to_http_error(exc) from None


@router.post(
    "/media/reject",
    response_model=OkOut,
    description="Rejecting an unknown id succeeds without writes.",
    responses={**_FAILURES, 409: {"description": "failed-precondition: media is already approved"}},
)
async def reject_media(
    body: Any = Body(default=None, examples=[{"mediaId": "m3"}]),
    caller: Optional[AuthenticatedUser] = Depends(get_optional_user),
    actions: AdminActions = Depends(_actions_dep),
) -> dict[str, Any]:
    try:
        return await actions.reject_media(caller, _body_field(body, "mediaId"))
    except ModerationError as exc:
        raise to_http_error(exc) from None


@router.post("/users/ban", response_model=OkOut, responses=_FAILURES)
async def ban_user(
    body: Any = Body(default=None, examples=[{"uid": "u3"}]),
    caller: Optional[AuthenticatedUser] = Depends(get_optional_user),
    actions: AdminActions = Depends(_actions_dep),
) -> dict[str, Any]:
    try:
        return await actions.ban_user(caller, _body_field(body, "uid"))
    except ModerationError as exc:
        raise to_http_error(exc) from None


@router.get("/media/queue", response_model=QueueOut)
async def list_queue(
    limit: int = Query(default=50, ge=1, le=200),
    caller: Optional[AuthenticatedUser] = Depends(get_optional_user),
    actions: AdminActions = Depends(_actions_dep),
) -> QueueOut:
    try:
        items = await actions.list_queue(caller, limit=limit)
    except ModerationError as exc:
        raise to_http_error(exc) from None
    return QueueOut(items=[QueueItemOut.from_domain(item) for item in items])


@router.get("/media/{media_id}")
async def get_media(
    media_id: str,
    caller: Optional[AuthenticatedUser] = Depends(get_optional_user),
    actions: AdminActions = Depends(_actions_dep),
) -> dict[str, Any]:
    try:
        record = await actions.get_media(caller, media_id)
    except ModerationError as exc:
        raise to_http_error(exc) from None
    return record.to_dict()


@router.get("/admin/me", response_model=AdminCheckOut)
async def admin_me(
    caller: Optional[AuthenticatedUser] = Depends(get_optional_user),
    actions: AdminActions = Depends(_actions_dep),
) -> AdminCheckOut:
    return AdminCheckOut(admin=await actions.is_admin(caller))
