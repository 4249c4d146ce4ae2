"""Error translation helpers for the moderation API."""

from __future__ import annotations

from fastapi import HTTPException, status

from strivon.moderation.domain import exceptions


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, exceptions.ModerationError):
		return HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": exc.detail})
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail={"code": "internal", "message": str(exc) or "internal_error"},
	)
