"""S3-compatible object store for quarantine and public media."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from strivon.moderation.domain.exceptions import StorageError
from strivon.moderation.domain.object_store import ObjectNotFoundError, ObjectStore
from strivon.settings import settings

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_missing(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code", "")) in _MISSING_CODES


class S3ObjectStore(ObjectStore):
    """Runs blocking boto3 calls in a worker thread."""

    def __init__(self, bucket: str, client: Any) -> None:
        self.bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls) -> "S3ObjectStore":
        client = boto3.client(
            "s3",
            region_name=settings.storage_region,
            endpoint_url=settings.storage_endpoint_url,
        )
        return cls(settings.storage_bucket, client)

    async def exists(self, path: str) -> bool:
        try:
            await asyncio.to_thread(self._client.head_object, Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if _is_missing(exc):
                return False
            raise StorageError(f"head_failed:{path}") from exc
        return True

    async def copy(self, source: str, destination: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.copy_object,
                Bucket=self.bucket,
                Key=destination,
                CopySource={"Bucket": self.bucket, "Key": source},
            )
        except ClientError as exc:
            if _is_missing(exc):
                raise ObjectNotFoundError(f"object_not_found:{source}") from exc
            raise StorageError(f"copy_failed:{source}") from exc

    async def delete(self, path: str) -> None:
        # S3 deletes succeed for absent keys; report them like the other stores do.
        if not await self.exists(path):
            raise ObjectNotFoundError(f"object_not_found:{path}")
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=path)
        except ClientError as exc:
            raise StorageError(f"delete_failed:{path}") from exc

    async def put(self, path: str, data: bytes, *, content_type: Optional[str] = None) -> None:
        extra: dict[str, Any] = {}
        if content_type:
            extra["ContentType"] = content_type
        try:
            await asyncio.to_thread(self._client.put_object, Bucket=self.bucket, Key=path, Body=data, **extra)
        except ClientError as exc:
            raise StorageError(f"put_failed:{path}") from exc
