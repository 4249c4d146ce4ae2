"""Storage side effects of a moderation decision."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from strivon.moderation.domain.exceptions import StateError, StorageError
from strivon.moderation.domain.object_store import ObjectNotFoundError, ObjectStore
from strivon.moderation.domain.paths import public_path_for, public_url
from strivon.obs import metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Promotion:
    public_path: str
    public_url: str
    copied: bool


class ObjectMover:
    """Promotes approved media to the public area and discards rejected media."""

    def __init__(self, store: ObjectStore, *, public_url_base: str) -> None:
        self._store = store
        self._public_url_base = public_url_base

    def public_url(self, path: str) -> str:
        return public_url(self._public_url_base, self._store.bucket, path)

    async def promote(self, *, owner_uid: str, media_id: str, original_path: str) -> Promotion:
        """Copy the quarantined object to its public path, then delete the original.

        Safe to repeat: an existing public object counts as already copied and a
        missing original after that counts as already deleted.
        """

        public_path = public_path_for(owner_uid, media_id, original_path)
        copied = False
        if not await self._store.exists(public_path):
            try:
                await self._store.copy(original_path, public_path)
            except ObjectNotFoundError as exc:
                metrics.inc_storage_failure("copy")
                raise StateError("quarantine_object_missing") from exc
            except StorageError:
                metrics.inc_storage_failure("copy")
                raise
            except Exception as exc:
                metrics.inc_storage_failure("copy")
                raise StorageError(f"copy_failed:{original_path}") from exc
            copied = True
        await self._delete_quietly(original_path, op="promote_delete")
        return Promotion(public_path=public_path, public_url=self.public_url(public_path), copied=copied)

    async def discard(self, original_path: str | None) -> bool:
        """Delete a quarantined object; failures are logged, never raised."""

        if not original_path:
            return False
        return await self._delete_quietly(original_path, op="discard")

    async def _delete_quietly(self, path: str, *, op: str) -> bool:
        try:
            await self._store.delete(path)
        except ObjectNotFoundError:
            return True
        except Exception:
            metrics.inc_storage_failure(op)
            logger.warning("object delete failed; leaving %s in place", path, exc_info=True)
            return False
        return True
