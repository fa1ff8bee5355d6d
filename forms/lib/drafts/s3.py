"""S3-compatible draft backend using boto3.

Supports AWS S3, MinIO, and any S3-compatible object storage.

Environment Variables:
    AWS_ACCESS_KEY_ID: AWS access key
    AWS_SECRET_ACCESS_KEY: AWS secret key
    AWS_ENDPOINT_URL: Custom S3 endpoint (for MinIO, LocalStack, etc.)
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from forms.lib.drafts.base import DraftStore
from forms.lib.errors import StorageError

logger = logging.getLogger(__name__)

__all__ = ["S3DraftStore"]

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class S3DraftStore(DraftStore):
    """One JSON object per draft under ``s3://bucket/prefix``.

    boto3 is blocking, so every call runs in a worker thread.

    Args:
        bucket: Bucket name
        prefix: Object key prefix inside the bucket
        client: Pre-built boto3 S3 client (built lazily from the
            environment when omitted)
    """

    SUFFIX = ".json"

    def __init__(self, bucket: str, prefix: str = "", client: Any = None, **kwargs: Any):
        super().__init__(**kwargs)
        if not bucket:
            raise ValueError("s3_bucket is required for the S3 draft backend")
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self._client = client

    @property
    def backend(self) -> str:
        return "s3"

    @property
    def client(self) -> Any:
        """Lazy-create the S3 client."""
        if self._client is None:
            endpoint_url = os.environ.get("AWS_ENDPOINT_URL")
            self._client = boto3.client("s3", endpoint_url=endpoint_url)
            logger.debug(
                "Created S3 client for bucket '%s' with endpoint: %s",
                self.bucket,
                endpoint_url or "default",
            )
        return self._client

    def _object_key(self, key: str) -> str:
        name = f"{key}{self.SUFFIX}"
        return f"{self.prefix}/{name}" if self.prefix else name

    def _fail(self, action: str, key: str, e: Exception) -> StorageError:
        return StorageError(
            f"Failed to {action} s3://{self.bucket}/{self._object_key(key)}",
            key=key,
            backend=self.backend,
            cause=e,
        )

    async def _write(self, key: str, payload: str) -> None:
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=self._object_key(key),
                Body=payload.encode("utf-8"),
                ContentType="application/json",
            )
        except (BotoCoreError, ClientError) as e:
            raise self._fail("write", key, e) from e

    async def _read(self, key: str) -> Optional[str]:
        try:
            response = await asyncio.to_thread(
                self.client.get_object, Bucket=self.bucket, Key=self._object_key(key)
            )
            body = await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            if _is_missing(e):
                return None
            raise self._fail("read", key, e) from e
        except BotoCoreError as e:
            raise self._fail("read", key, e) from e
        return body.decode("utf-8")

    async def _exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(
                self.client.head_object, Bucket=self.bucket, Key=self._object_key(key)
            )
        except ClientError as e:
            if _is_missing(e):
                return False
            raise self._fail("check", key, e) from e
        except BotoCoreError as e:
            raise self._fail("check", key, e) from e
        return True

    async def _remove(self, key: str) -> bool:
        # S3 deletes are idempotent, so check first to report existence
        if not await self._exists(key):
            return False
        try:
            await asyncio.to_thread(
                self.client.delete_object, Bucket=self.bucket, Key=self._object_key(key)
            )
        except (BotoCoreError, ClientError) as e:
            raise self._fail("delete", key, e) from e
        return True

    async def _keys(self) -> List[str]:
        return await asyncio.to_thread(self._list_keys_sync)

    def _list_keys_sync(self) -> List[str]:
        list_prefix = f"{self.prefix}/{self.key_prefix}" if self.prefix else self.key_prefix
        keys: List[str] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=list_prefix):
                for obj in page.get("Contents", []):
                    name = obj["Key"].rsplit("/", 1)[-1]
                    if name.endswith(self.SUFFIX):
                        keys.append(name[: -len(self.SUFFIX)])
        except (BotoCoreError, ClientError) as e:
            raise StorageError(
                f"Failed to list s3://{self.bucket}/{list_prefix}",
                backend=self.backend,
                cause=e,
            ) from e
        return keys

    def __repr__(self) -> str:
        return f"S3DraftStore(bucket={self.bucket!r}, prefix={self.prefix!r})"


def _is_missing(e: ClientError) -> bool:
    code = str(e.response.get("Error", {}).get("Code", ""))
    status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _MISSING_CODES or status == 404
