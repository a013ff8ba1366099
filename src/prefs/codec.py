from __future__ import annotations

import os
from enum import Enum

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from common.errors import DecryptionError, EncryptionError


NONCE_SIZE = 12
TAG_SIZE = 16
BLOCK_SIZE = 16


class CipherMode(str, Enum):
    """Block cipher mode used for every value in a store."""

    GCM = "gcm"
    # AES/ECB/PKCS7 without IV; only for reading data written by the old scheme
    LEGACY_ECB = "legacy-ecb"


class CipherCodec:
    """
    AES transform between a plaintext string and ciphertext bytes.

    Modes
    - `CipherMode.GCM` (default): fresh 12-byte random nonce per value,
      output `nonce || ciphertext || tag`. Tampering is detected on decrypt.
    - `CipherMode.LEGACY_ECB`: AES-ECB with PKCS7 padding and no IV, matching
      the old `Cipher.getInstance("AES")` output byte for byte. Identical
      plaintexts give identical ciphertexts, and nothing is authenticated.

    Failures raise `EncryptionError` / `DecryptionError` with the underlying
    library error chained.
    """

    def __init__(self, mode: CipherMode | str = CipherMode.GCM) -> None:
        self._mode = CipherMode(mode)

    @property
    def mode(self) -> CipherMode:
        return self._mode

    def encrypt(self, plaintext: str, key: bytes) -> bytes:
        if not isinstance(plaintext, str):
            raise EncryptionError(f"plaintext must be str, got {type(plaintext).__name__}")
        try:
            data = plaintext.encode("utf-8")
        except UnicodeEncodeError as ex:
            raise EncryptionError("plaintext is not encodable as UTF-8") from ex

        try:
            if self._mode is CipherMode.GCM:
                nonce = os.urandom(NONCE_SIZE)
                return nonce + AESGCM(key).encrypt(nonce, data, None)
            return _ecb_encrypt(data, key)
        except (ValueError, TypeError, OSError, UnsupportedAlgorithm, NotImplementedError) as ex:
            raise EncryptionError(f"AES-{self._mode.value} encryption failed: {ex}") from ex

    def decrypt(self, ciphertext: bytes, key: bytes) -> str:
        if not isinstance(ciphertext, (bytes, bytearray)):
            raise DecryptionError("ciphertext must be bytes")
        ciphertext = bytes(ciphertext)

        try:
            if self._mode is CipherMode.GCM:
                if len(ciphertext) < NONCE_SIZE + TAG_SIZE:
                    raise DecryptionError(
                        f"ciphertext too short for AES-GCM: {len(ciphertext)} bytes"
                    )
                nonce, body = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
                data = AESGCM(key).decrypt(nonce, body, None)
            else:
                if not ciphertext or len(ciphertext) % BLOCK_SIZE:
                    raise DecryptionError(
                        f"ciphertext length {len(ciphertext)} is not a positive multiple of {BLOCK_SIZE}"
                    )
                data = _ecb_decrypt(ciphertext, key)
        except InvalidTag as ex:
            raise DecryptionError("authentication failed: wrong key or tampered value") from ex
        except (ValueError, TypeError, UnsupportedAlgorithm) as ex:
            raise DecryptionError(f"AES-{self._mode.value} decryption failed: {ex}") from ex

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as ex:
            raise DecryptionError("decrypted bytes are not valid UTF-8") from ex


def _ecb_encrypt(data: bytes, key: bytes) -> bytes:
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def _ecb_decrypt(data: bytes, key: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(key), modes.ECB()).decryptor()
    padded = decryptor.update(data) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    # Raises ValueError on bad padding, which is how a wrong key usually shows up
    return unpadder.update(padded) + unpadder.finalize()
