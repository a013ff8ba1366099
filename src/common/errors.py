from __future__ import annotations


class EncryptedPrefsError(RuntimeError):
    """Base error for the encrypted preferences store."""


class KeyGenerationError(EncryptedPrefsError):
    """The random source or cipher primitive needed for a new key is unavailable."""


class KeyCorruptionError(EncryptedPrefsError):
    """The stored key slot is not valid base64 or has the wrong length."""


class EncryptionError(EncryptedPrefsError):
    """Encrypting a value failed."""


class DecryptionError(EncryptedPrefsError):
    """Decrypting a value failed or produced invalid UTF-8."""


class StorageError(EncryptedPrefsError):
    """The backing store could not be read or written."""


class InvalidNameError(EncryptedPrefsError):
    """A caller-supplied entry name is empty or not a string."""


__all__ = [
    "EncryptedPrefsError",
    "KeyGenerationError",
    "KeyCorruptionError",
    "EncryptionError",
    "DecryptionError",
    "StorageError",
    "InvalidNameError",
]
