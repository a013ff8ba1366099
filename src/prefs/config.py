from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from state.backends import MemoryBackend, StorageBackend
from state.file_store import JsonFileBackend
from state.s3_store import DEFAULT_PREFIX, S3Backend

from .codec import CipherCodec, CipherMode
from .store import EncryptedStore


# Environment variable names for convenience configuration
ENV_BACKEND = "ENCPREFS_BACKEND"
ENV_FILE = "ENCPREFS_FILE"
ENV_BUCKET = "ENCPREFS_BUCKET"
ENV_PREFIX = "ENCPREFS_PREFIX"
ENV_REGION = "ENCPREFS_REGION"
ENV_CIPHER_MODE = "ENCPREFS_CIPHER_MODE"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


class StoreConfig(BaseModel):
    """
    How to build an `EncryptedStore`.

    Environment variables (see `from_env`)
    - `ENCPREFS_BACKEND`:     memory | file | s3 (default memory)
    - `ENCPREFS_FILE`:        JSON file path for the file backend (optional)
    - `ENCPREFS_BUCKET`:      S3 bucket, required for the s3 backend
    - `ENCPREFS_PREFIX`:      S3 key prefix (default "encprefs/")
    - `ENCPREFS_REGION`:      AWS region for the S3 client (optional)
    - `ENCPREFS_CIPHER_MODE`: gcm | legacy-ecb (default gcm)
    """

    backend: Literal["memory", "file", "s3"] = "memory"
    path: Optional[str] = Field(default=None, description="JSON file for the file backend")
    bucket: Optional[str] = Field(default=None, description="S3 bucket for the s3 backend")
    prefix: str = DEFAULT_PREFIX
    region_name: Optional[str] = None
    cipher_mode: CipherMode = CipherMode.GCM

    @model_validator(mode="after")
    def _check_backend_settings(self) -> "StoreConfig":
        if self.backend == "s3" and not self.bucket:
            raise ValueError("bucket is required for the s3 backend")
        return self

    @classmethod
    def from_env(cls) -> "StoreConfig":
        backend = _getenv(ENV_BACKEND, "memory")
        bucket = _getenv(ENV_BUCKET)
        if backend == "s3" and not bucket:
            raise RuntimeError(
                f"Missing required environment variables for S3 preferences store: {ENV_BUCKET}"
            )
        return cls(
            backend=backend,
            path=_getenv(ENV_FILE),
            bucket=bucket,
            prefix=_getenv(ENV_PREFIX, DEFAULT_PREFIX),
            region_name=_getenv(ENV_REGION),
            cipher_mode=_getenv(ENV_CIPHER_MODE, CipherMode.GCM.value),
        )


def build_backend(config: StoreConfig, *, s3: Optional[object] = None) -> StorageBackend:
    if config.backend == "file":
        return JsonFileBackend(config.path)
    if config.backend == "s3":
        return S3Backend(s3=s3, bucket=config.bucket, prefix=config.prefix, region_name=config.region_name)
    return MemoryBackend()


def open_store(config: Optional[StoreConfig] = None, *, s3: Optional[object] = None) -> EncryptedStore:
    config = config or StoreConfig()
    return EncryptedStore(build_backend(config, s3=s3), codec=CipherCodec(config.cipher_mode))


def open_store_from_env(*, s3: Optional[object] = None) -> EncryptedStore:
    return open_store(StoreConfig.from_env(), s3=s3)
