from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from common.errors import StorageError

from .backends import Region, StorageBackend
from .models import PrefsDocument


DEFAULT_PREFS_DIR_ENV = "ENCPREFS_DIR"


def _default_prefs_file() -> Path:
    # ENCPREFS_DIR wins; otherwise the file lives under ./.prefs
    base = os.environ.get(DEFAULT_PREFS_DIR_ENV)
    if base:
        return Path(base) / "encrypted_prefs.json"
    return Path(".prefs") / "encrypted_prefs.json"


class JsonFileBackend(StorageBackend):
    """
    Single JSON file holding both regions: {"meta": {...}, "data": {...}}.

    - Loaded lazily on first access and validated through `PrefsDocument`.
    - `put_string`/`remove` stage changes in memory; `commit()` writes the
      whole document to a temp file and atomically replaces the target.
    - If `commit()` fails, every change staged since the last successful
      commit is discarded, so reads never see a value that was not persisted.
    - `put_string_if_absent` commits immediately so a created key is durable
      before it is handed out.
    - A corrupt file raises `StorageError` instead of starting fresh: resetting
      would silently orphan every entry encrypted under the stored key.
    - Thread-safe within one process. No cross-process locking.
    """

    def __init__(self, path: Optional[os.PathLike[str] | str] = None) -> None:
        self._path = Path(path) if path else _default_prefs_file()
        self._doc = PrefsDocument.empty()
        self._committed = PrefsDocument.empty()
        self._loaded = False
        self._dirty = False
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        if self._path.exists():
            try:
                with self._path.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
                self._doc = PrefsDocument.model_validate(raw)
            except (OSError, ValueError, ValidationError) as ex:
                raise StorageError(f"Failed to load preferences file {self._path}") from ex
        self._committed = self._doc.model_copy(deep=True)
        self._loaded = True

    def _region(self, region: Region):
        self._ensure_loaded()
        return self._doc.meta if region is Region.META else self._doc.data

    def get_string(self, region: Region, name: str) -> Optional[str]:
        with self._lock:
            return self._region(region).get(name)

    def put_string(self, region: Region, name: str, value: str) -> None:
        with self._lock:
            self._region(region)[name] = value
            self._dirty = True

    def put_string_if_absent(self, region: Region, name: str, value: str) -> bool:
        with self._lock:
            slots = self._region(region)
            if name in slots:
                return False
            slots[name] = value
            self._dirty = True
            # Rolled back by commit() on failure
            self.commit()
            return True

    def remove(self, region: Region, name: str) -> None:
        with self._lock:
            if self._region(region).pop(name, None) is not None:
                self._dirty = True

    def names(self, region: Region) -> List[str]:
        with self._lock:
            return sorted(self._region(region))

    def rollback(self) -> None:
        """Discard changes staged since the last successful commit."""
        with self._lock:
            self._doc = self._committed.model_copy(deep=True)
            self._dirty = False

    def commit(self) -> None:
        with self._lock:
            if not self._dirty:
                return
            # Deterministic JSON: stable key order
            payload = json.dumps(self._doc.model_dump(), indent=2, sort_keys=True)
            tmp = self._path.with_name(self._path.name + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with tmp.open("w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, self._path)
            except OSError as ex:
                self.rollback()
                raise StorageError(f"Failed to write preferences file {self._path}") from ex
            self._committed = self._doc.model_copy(deep=True)
            self._dirty = False
