"""Admin allowlist used to authorize moderation actions."""

from __future__ import annotations

from typing import Iterable, Protocol

from strivon.moderation.domain.store import ModerationStore, normalise_email


class AdminDirectory(Protocol):
    async def is_admin(self, email: str | None) -> bool:
        ...


class StaticAdminDirectory(AdminDirectory):
    """Fixed allowlist, typically seeded from settings."""

    def __init__(self, emails: Iterable[str] = ()) -> None:
        self._emails = frozenset(normalise_email(email) for email in emails if normalise_email(email))

    async def is_admin(self, email: str | None) -> bool:
        if not email:
            return False
        return normalise_email(email) in self._emails


class StoreAdminDirectory(AdminDirectory):
    """Reads the allowlist from the record store on every check."""

    def __init__(self, store: ModerationStore) -> None:
        self._store = store

    async def is_admin(self, email: str | None) -> bool:
        if not email:
            return False
        wanted = normalise_email(email)
        if not wanted:
            return False
        emails = await self._store.list_admin_emails()
        return any(normalise_email(candidate) == wanted for candidate in emails)
