from __future__ import annotations

import os
import sys

import pytest
from botocore.exceptions import ClientError


def pytest_configure():
    # Ensure `src/` is importable as top-level for `common.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


class _FakeBody:
    def __init__(self, data: bytes, exc: Exception | None = None) -> None:
        self._data = data
        self._exc = exc

    def read(self) -> bytes:
        if self._exc is not None:
            raise self._exc
        return self._data


class FakeS3:
    """In-memory stand-in for the boto3 S3 client calls the backend makes."""

    def __init__(self, *, page_size: int = 1000) -> None:
        self._store = {}  # (bucket, key) -> bytes
        self.page_size = page_size
        self.fail_with = None  # ClientError code raised by every call
        self.raise_exc = None  # any other exception raised by every call
        self.body_exc = None  # raised from Body.read()

    def _maybe_fail(self, op: str) -> None:
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.fail_with:
            raise ClientError({"Error": {"Code": self.fail_with}}, op)

    def put_object(self, *, Bucket, Key, Body, ContentType, IfNoneMatch=None):
        self._maybe_fail("PutObject")
        if IfNoneMatch == "*" and (Bucket, Key) in self._store:
            raise ClientError({"Error": {"Code": "PreconditionFailed"}}, "PutObject")
        self._store[(Bucket, Key)] = Body
        return {"ETag": f'"fake-{len(Body)}"'}

    def get_object(self, *, Bucket, Key):
        self._maybe_fail("GetObject")
        if (Bucket, Key) not in self._store:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        return {"Body": _FakeBody(self._store[(Bucket, Key)], self.body_exc)}

    def delete_object(self, *, Bucket, Key):
        self._maybe_fail("DeleteObject")
        self._store.pop((Bucket, Key), None)
        return {}

    def list_objects_v2(self, *, Bucket, Prefix, ContinuationToken=None):
        self._maybe_fail("ListObjectsV2")
        keys = sorted(k for (b, k) in self._store if b == Bucket and k.startswith(Prefix))
        start = int(ContinuationToken or 0)
        page = keys[start:start + self.page_size]
        truncated = start + self.page_size < len(keys)
        resp = {"Contents": [{"Key": k} for k in page], "IsTruncated": truncated}
        if truncated:
            resp["NextContinuationToken"] = str(start + self.page_size)
        return resp

    def raw(self, bucket: str, key: str):
        return self._store.get((bucket, key))


@pytest.fixture
def fake_s3():
    return FakeS3()
