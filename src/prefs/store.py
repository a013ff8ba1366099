from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from common.encoding import decode_blob, encode_blob
from common.errors import DecryptionError, EncryptedPrefsError, InvalidNameError
from state.backends import Region, StorageBackend

from .codec import CipherCodec
from .keys import KeyManager


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a store operation: a value (possibly None) or an error."""

    value: Optional[str] = None
    error: Optional[EncryptedPrefsError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Optional[str]:
        """Return the value, raising the captured error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: Optional[str] = None) -> "StoreResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: EncryptedPrefsError) -> "StoreResult":
        return cls(error=error)


def _check_name(name: object) -> str:
    if not isinstance(name, str) or not name:
        raise InvalidNameError(f"Entry name must be a non-empty string, got {name!r}")
    return name


class EncryptedStore:
    """
    String key-value store that encrypts values at rest.

    Usage
    - `put(name, value)` encrypts `value` under the store key (created on first
      use) and writes the base64 ciphertext to the data region.
    - `get(name)` returns `StoreResult(value=None)` for names never written, the
      plaintext for stored ones, or a failed result for entries that cannot be
      decoded or decrypted.
    - `remove(name)` deletes an entry; missing names are a no-op.

    Store failures never raise from `put`/`get`/`remove`: they come back as a
    failed `StoreResult` and are logged as warnings. Caller names live in the
    data region only, so no name can reach the key slot.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        codec: Optional[CipherCodec] = None,
        key_manager: Optional[KeyManager] = None,
    ) -> None:
        self._backend = backend
        self._codec = codec or CipherCodec()
        self._keys = key_manager or KeyManager(backend)

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @property
    def codec(self) -> CipherCodec:
        return self._codec

    @property
    def key_manager(self) -> KeyManager:
        return self._keys

    # -------- Core operations --------
    def put(self, name: str, value: str) -> StoreResult:
        try:
            _check_name(name)
            key = self._keys.get_or_create_key()
            blob = encode_blob(self._codec.encrypt(value, key))
            self._backend.put_string(Region.DATA, name, blob)
            self._backend.commit()
        except EncryptedPrefsError as ex:
            logger.warning("Skipped write of encrypted entry %r: %s", name, ex)
            return StoreResult.failure(ex)
        return StoreResult.success()

    def get(self, name: str) -> StoreResult:
        try:
            _check_name(name)
            blob = self._backend.get_string(Region.DATA, name)
            if blob is None:
                return StoreResult.success(None)
            try:
                ciphertext = decode_blob(blob)
            except ValueError as ex:
                raise DecryptionError(f"Entry {name!r} is not valid base64") from ex
            key = self._keys.get_or_create_key()
            return StoreResult.success(self._codec.decrypt(ciphertext, key))
        except EncryptedPrefsError as ex:
            logger.warning("Failed to read encrypted entry %r: %s", name, ex)
            return StoreResult.failure(ex)

    def remove(self, name: str) -> StoreResult:
        try:
            _check_name(name)
            self._backend.remove(Region.DATA, name)
            self._backend.commit()
        except EncryptedPrefsError as ex:
            logger.warning("Failed to remove encrypted entry %r: %s", name, ex)
            return StoreResult.failure(ex)
        return StoreResult.success()

    # -------- Introspection --------
    def contains(self, name: str) -> bool:
        """True if an entry is stored under `name`. Raises `StorageError` on backend failure."""
        _check_name(name)
        return self._backend.get_string(Region.DATA, name) is not None

    def names(self) -> List[str]:
        """Sorted caller entry names. The key slot is never listed."""
        return self._backend.names(Region.DATA)


class CompatStore:
    """
    Never-throwing wrapper over `EncryptedStore`.

    Every failure degrades to "no effect": `put_string` skips the write,
    `get_string` returns None, `remove_string` does nothing. The cause is only
    visible in the logs, so a None from `get_string` can mean either "never
    set" or "unreadable".
    """

    def __init__(self, store: EncryptedStore) -> None:
        self._store = store

    @property
    def store(self) -> EncryptedStore:
        return self._store

    def put_string(self, name: str, value: str) -> None:
        try:
            self._store.put(name, value)
        except Exception:
            logger.warning("Exception during putting encrypted string %r", name, exc_info=True)

    def get_string(self, name: str) -> Optional[str]:
        try:
            result = self._store.get(name)
        except Exception:
            logger.warning("Exception during getting encrypted string %r", name, exc_info=True)
            return None
        return result.value if result.ok else None

    def remove_string(self, name: str) -> None:
        try:
            self._store.remove(name)
        except Exception:
            logger.warning("Exception during removing encrypted string %r", name, exc_info=True)

    def contains(self, name: str) -> bool:
        try:
            return self._store.contains(name)
        except Exception:
            logger.warning("Exception during lookup of encrypted string %r", name, exc_info=True)
            return False
