"""
Storage backends for encrypted preferences.

Every backend exposes the same string-keyed interface, split into a metadata
region (key material) and a data region (caller entries). Values reaching a
backend are already encrypted and base64-encoded.
"""

from .backends import MemoryBackend, Region, StorageBackend
from .file_store import JsonFileBackend
from .models import PrefsDocument
from .s3_store import S3Backend

__all__ = [
    "Region",
    "StorageBackend",
    "MemoryBackend",
    "JsonFileBackend",
    "S3Backend",
    "PrefsDocument",
]
