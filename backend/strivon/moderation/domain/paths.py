"""Object store path conventions and public URL construction."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

QUARANTINE_PREFIX = "quarantine"
PUBLIC_PREFIX = "public"
DEFAULT_EXTENSION = "mp4"

# Characters encodeURIComponent leaves alone; clients rebuild URLs with it.
_URI_COMPONENT_SAFE = "!*'()"


@dataclass(frozen=True, slots=True)
class QuarantineObject:
    path: str
    owner_uid: str
    media_id: str
    file_name: str


def parse_quarantine_path(name: str) -> QuarantineObject | None:
    """Split ``quarantine/{ownerUid}/{mediaId}/{fileName}``; None when the path has another shape."""

    parts = (name or "").split("/")
    if len(parts) != 4 or parts[0] != QUARANTINE_PREFIX:
        return None
    _, owner_uid, media_id, file_name = parts
    if not owner_uid or not media_id or not file_name:
        return None
    return QuarantineObject(path=name, owner_uid=owner_uid, media_id=media_id, file_name=file_name)


def file_extension(path: str) -> str:
    file_name = path.rsplit("/", 1)[-1]
    _, dot, ext = file_name.rpartition(".")
    if not dot or not ext:
        return DEFAULT_EXTENSION
    return ext


def public_path_for(owner_uid: str, media_id: str, original_path: str) -> str:
    return f"{PUBLIC_PREFIX}/{owner_uid}/{media_id}.{file_extension(original_path)}"


def public_url(base_url: str, bucket: str, path: str) -> str:
    encoded = quote(path, safe=_URI_COMPONENT_SAFE)
    return f"{base_url.rstrip('/')}/{bucket}/o/{encoded}?alt=media"
