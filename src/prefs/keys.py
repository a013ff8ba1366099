from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Optional

from common.encoding import decode_blob, encode_blob
from common.errors import KeyCorruptionError, KeyGenerationError, StorageError
from state.backends import Region, StorageBackend


logger = logging.getLogger(__name__)

# Reserved slot in the metadata region; part of the on-disk contract
KEY_SLOT = "PRIVATE_KEY"
KEY_LENGTH = 16  # AES-128


class KeyManager:
    """
    Owns the single symmetric key of a store.

    - The key lives base64-encoded in `KEY_SLOT` of the metadata region.
    - It is generated lazily by `get_or_create_key()` and never replaced.
    - Creation is serialized by a lock and committed through the backend's
      atomic `put_string_if_absent`; a caller that loses the race returns the
      winner's key.
    - A stored key that does not decode to `key_length` bytes is an error,
      never a reason to generate a new one.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        slot: str = KEY_SLOT,
        key_length: int = KEY_LENGTH,
        random_source: Optional[Callable[[int], bytes]] = None,
    ) -> None:
        if key_length not in (16, 24, 32):
            raise ValueError("key_length must be 16, 24 or 32 bytes")
        self._backend = backend
        self._slot = slot
        self._key_length = key_length
        self._random = random_source or os.urandom
        self._lock = threading.Lock()

    @property
    def key_length(self) -> int:
        return self._key_length

    def has_key(self) -> bool:
        return self._backend.get_string(Region.META, self._slot) is not None

    def get_or_create_key(self) -> bytes:
        with self._lock:
            stored = self._backend.get_string(Region.META, self._slot)
            if stored is not None:
                return self._decode(stored)

            key = self._generate()
            if self._backend.put_string_if_absent(Region.META, self._slot, encode_blob(key)):
                self._backend.commit()
                logger.info("Generated new %d-bit store key", self._key_length * 8)
                return key

            logger.debug("Key slot was created concurrently; using the stored key")
            stored = self._backend.get_string(Region.META, self._slot)
            if stored is None:
                raise StorageError("Key slot reported present but could not be read back")
            return self._decode(stored)

    def _generate(self) -> bytes:
        try:
            key = self._random(self._key_length)
        except (OSError, NotImplementedError) as ex:
            raise KeyGenerationError("Random source unavailable for key generation") from ex
        if not isinstance(key, bytes) or len(key) != self._key_length:
            raise KeyGenerationError(f"Random source did not return {self._key_length} bytes")
        return key

    def _decode(self, stored: str) -> bytes:
        try:
            key = decode_blob(stored)
        except ValueError as ex:
            raise KeyCorruptionError(f"Stored key in slot {self._slot!r} is not valid base64") from ex
        if len(key) != self._key_length:
            raise KeyCorruptionError(
                f"Stored key in slot {self._slot!r} is {len(key)} bytes, expected {self._key_length}"
            )
        return key
