"""Push endpoint for object store finalize notifications."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from strivon.moderation.api._errors import to_http_error
from strivon.moderation.domain.container import get_ingestion_listener
from strivon.moderation.domain.exceptions import ModerationError
from strivon.settings import settings

router = APIRouter(prefix="/api/mod/v1/storage", tags=["moderation-storage"])


class FinalizeEventIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    content_type: Optional[str] = Field(default=None, alias="contentType")
    bucket: Optional[str] = None


class FinalizeEventOut(BaseModel):
    handled: bool
    status: Optional[str] = None


def _check_token(token: Optional[str]) -> None:
    expected = settings.storage_webhook_token
    if expected:
        if token and hmac.compare_digest(token, expected):
            return
    elif settings.is_dev():
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"code": "permission-denied", "message": "invalid_storage_token"},
    )


@router.post("/finalize", response_model=FinalizeEventOut)
async def storage_finalize(
    body: FinalizeEventIn,
    x_storage_token: Optional[str] = Header(default=None, alias="X-Storage-Token"),
) -> FinalizeEventOut:
    """Handle one finalize notification.

    Any failure answers with an error status so the sender redelivers.
    """
    _check_token(x_storage_token)
    try:
        outcome = await get_ingestion_listener().handle_finalize(body.name)
    except ModerationError as exc:
        raise to_http_error(exc) from None
    if outcome is None:
        return FinalizeEventOut(handled=False)
    return FinalizeEventOut(handled=True, status=outcome.status.value)
