"""Authentication helpers for FastAPI endpoints.

Callers present an HS256 bearer JWT carrying ``sub``, ``email`` and
``email_verified``. In development the ``X-User-*`` headers are accepted as
well so local tools can act as any user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from strivon.infra import jwt as jwt_helper
from strivon.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	email: Optional[str] = None
	email_verified: bool = False

	@property
	def verified_email(self) -> Optional[str]:
		"""Email claim usable for authorization, or None when unverified."""
		if not self.email or not self.email_verified:
			return None
		return self.email


_bearer_scheme = HTTPBearer(auto_error=False)


def _invalid_token() -> HTTPException:
	return HTTPException(
		status_code=status.HTTP_401_UNAUTHORIZED,
		detail={"code": "unauthenticated", "message": "invalid_token"},
	)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		# Normalise all decode failures to invalid_token for the API surface
		raise _invalid_token()

	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise _invalid_token()
	email = payload.get("email")
	return AuthenticatedUser(
		id=sub,
		email=str(email).strip() if email else None,
		email_verified=payload.get("email_verified") is True,
	)


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_email: Optional[str] = Header(default=None, alias="X-User-Email"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	"""Resolve the caller if any credentials were presented.

	A malformed bearer token is still rejected with 401; a request with no
	credentials at all resolves to None so handlers can report
	``unauthenticated`` themselves.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	# In dev only, allow X-User-* fallback for local tools
	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=x_user_id, email=x_user_email, email_verified=bool(x_user_email))
	return None
