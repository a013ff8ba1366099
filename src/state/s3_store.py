from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from common.errors import StorageError

from .backends import Region, StorageBackend


DEFAULT_PREFIX = "encprefs/"

_NOT_FOUND_CODES = ("NoSuchKey", "404")
# 409 is returned when a concurrent conditional write is still in flight
_CONDITION_FAILED_CODES = ("PreconditionFailed", "412", "ConditionalRequestConflict", "409")


def _error_code(e: ClientError) -> Optional[str]:
    return e.response.get("Error", {}).get("Code")


@dataclass
class S3Location:
    bucket: str
    prefix: str

    def key_for(self, region: Region, name: str) -> str:
        return f"{self.prefix}{region.value}/{name}"

    def region_prefix(self, region: Region) -> str:
        return f"{self.prefix}{region.value}/"


class S3Backend(StorageBackend):
    """
    S3-backed preferences: one object per slot.

    Layout
    - `{prefix}meta/{name}` holds metadata (the encoded key).
    - `{prefix}data/{name}` holds caller entries (base64 ciphertext).

    Notes
    - Object bodies are the UTF-8 slot value; they are already encrypted.
    - `put_string_if_absent` uses `PutObject` with `IfNoneMatch="*"`, so only
      one writer can create a slot. A failed precondition means another
      writer got there first.
    - Writes are durable when `PutObject` returns; `commit()` is a no-op.
    - Unexpected S3 errors, including connection and credential failures
      from botocore, are raised as `StorageError`.
    """

    def __init__(
        self,
        *,
        s3: Optional[object] = None,
        bucket: str,
        prefix: str = DEFAULT_PREFIX,
        region_name: Optional[str] = None,
    ) -> None:
        if not bucket:
            raise ValueError("bucket is required")
        if prefix and not prefix.endswith("/"):
            prefix = prefix + "/"
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._loc = S3Location(bucket=bucket, prefix=prefix)

    def get_string(self, region: Region, name: str) -> Optional[str]:
        key = self._loc.key_for(region, name)
        try:
            resp = self._s3.get_object(Bucket=self._loc.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return None
            raise StorageError(f"Failed to read s3://{self._loc.bucket}/{key}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read s3://{self._loc.bucket}/{key}") from e

        try:
            body = resp["Body"].read()
        except (BotoCoreError, OSError) as e:
            raise StorageError(f"Failed to read body of s3://{self._loc.bucket}/{key}") from e
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as ex:
            raise StorageError(f"Object s3://{self._loc.bucket}/{key} is not UTF-8") from ex

    def put_string(self, region: Region, name: str, value: str) -> None:
        key = self._loc.key_for(region, name)
        try:
            self._s3.put_object(
                Bucket=self._loc.bucket,
                Key=key,
                Body=value.encode("utf-8"),
                ContentType="text/plain; charset=utf-8",
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to write s3://{self._loc.bucket}/{key}") from e

    def put_string_if_absent(self, region: Region, name: str, value: str) -> bool:
        key = self._loc.key_for(region, name)
        try:
            self._s3.put_object(
                Bucket=self._loc.bucket,
                Key=key,
                Body=value.encode("utf-8"),
                ContentType="text/plain; charset=utf-8",
                IfNoneMatch="*",
            )
        except ClientError as e:
            if _error_code(e) in _CONDITION_FAILED_CODES:
                return False
            raise StorageError(f"Failed to create s3://{self._loc.bucket}/{key}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to create s3://{self._loc.bucket}/{key}") from e
        return True

    def remove(self, region: Region, name: str) -> None:
        # DeleteObject succeeds for missing keys
        key = self._loc.key_for(region, name)
        try:
            self._s3.delete_object(Bucket=self._loc.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete s3://{self._loc.bucket}/{key}") from e

    def names(self, region: Region) -> List[str]:
        prefix = self._loc.region_prefix(region)
        out: List[str] = []
        token: Optional[str] = None
        try:
            while True:
                kwargs = {"Bucket": self._loc.bucket, "Prefix": prefix}
                if token:
                    kwargs["ContinuationToken"] = token
                resp = self._s3.list_objects_v2(**kwargs)
                for item in resp.get("Contents", []):
                    out.append(item["Key"][len(prefix):])
                if not resp.get("IsTruncated"):
                    break
                token = resp.get("NextContinuationToken")
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to list s3://{self._loc.bucket}/{prefix}") from e
        return sorted(out)
