"""Typed errors raised by the media moderation pipeline."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
    _HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - fallback for older Starlette builds
    _HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class ModerationError(Exception):
    """Base class for moderation errors.

    ``code`` is the failure kind reported to RPC callers so a client can tell
    "you're not allowed" apart from "this no longer exists".
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "internal"
    detail: str = "moderation_error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class AuthError(ModerationError):
    """Caller is unauthenticated or not in the admin directory."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "permission-denied"
    detail = "admin_only"


class UnauthenticatedError(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    detail = "sign_in_required"


class PermissionDeniedError(AuthError):
    pass


class ValidationError(ModerationError):
    """Missing or malformed required input."""

    status_code = _HTTP_422
    code = "invalid-argument"
    detail = "invalid_argument"


class NotFoundError(ModerationError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not-found"
    detail = "media_not_found"


class StateError(ModerationError):
    """The record's current state makes the requested operation impossible."""

    status_code = status.HTTP_409_CONFLICT
    code = "failed-precondition"
    detail = "failed_precondition"


class IllegalTransitionError(StateError):
    detail = "illegal_transition"


class StorageError(ModerationError):
    """An object store copy/delete failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "internal"
    detail = "storage_error"
