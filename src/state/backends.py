from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional


class Region(str, Enum):
    """Logical storage regions. Key material and caller data never mix."""

    META = "meta"
    DATA = "data"


class StorageBackend(ABC):
    """
    Durable string-keyed mapping split into two regions.

    Contract
    - Writes are visible to subsequent reads in the same process once
      `commit()` returns.
    - `remove` of an absent name is a no-op.
    - `put_string_if_absent` is atomic against the medium: it returns False,
      without writing, when the slot already holds a value.
    - Failures of the medium raise `StorageError`.
    """

    @abstractmethod
    def get_string(self, region: Region, name: str) -> Optional[str]:
        ...

    @abstractmethod
    def put_string(self, region: Region, name: str, value: str) -> None:
        ...

    @abstractmethod
    def put_string_if_absent(self, region: Region, name: str, value: str) -> bool:
        ...

    @abstractmethod
    def remove(self, region: Region, name: str) -> None:
        ...

    @abstractmethod
    def names(self, region: Region) -> List[str]:
        ...

    def commit(self) -> None:
        """Make staged writes durable. Default: writes are already durable."""
        return None


class MemoryBackend(StorageBackend):
    """Process-local backend; useful for tests and ephemeral caches."""

    def __init__(self) -> None:
        self._regions: Dict[Region, Dict[str, str]] = {r: {} for r in Region}
        self._lock = threading.Lock()

    def get_string(self, region: Region, name: str) -> Optional[str]:
        with self._lock:
            return self._regions[region].get(name)

    def put_string(self, region: Region, name: str, value: str) -> None:
        with self._lock:
            self._regions[region][name] = value

    def put_string_if_absent(self, region: Region, name: str, value: str) -> bool:
        with self._lock:
            if name in self._regions[region]:
                return False
            self._regions[region][name] = value
            return True

    def remove(self, region: Region, name: str) -> None:
        with self._lock:
            self._regions[region].pop(name, None)

    def names(self, region: Region) -> List[str]:
        with self._lock:
            return sorted(self._regions[region])
