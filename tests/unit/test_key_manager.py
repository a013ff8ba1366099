from __future__ import annotations

import base64
import threading
from typing import List

import pytest

from common.encoding import encode_blob
from common.errors import KeyCorruptionError, KeyGenerationError
from prefs.keys import KEY_SLOT, KeyManager
from state.backends import MemoryBackend, Region


class _CountingBackend(MemoryBackend):
    def __init__(self) -> None:
        super().__init__()
        self.writes: List[tuple] = []
        self.commits = 0

    def put_string(self, region, name, value):
        self.writes.append((region, name))
        super().put_string(region, name, value)

    def put_string_if_absent(self, region, name, value):
        self.writes.append((region, name))
        return super().put_string_if_absent(region, name, value)

    def commit(self):
        self.commits += 1


class _RacingBackend(MemoryBackend):
    """Another writer creates the key between our read and our create."""

    def __init__(self, winner: bytes) -> None:
        super().__init__()
        self._winner = winner

    def put_string_if_absent(self, region, name, value):
        super().put_string(region, name, encode_blob(self._winner))
        return super().put_string_if_absent(region, name, value)


def test_creates_key_on_first_use():
    backend = MemoryBackend()
    km = KeyManager(backend)
    assert not km.has_key()

    key = km.get_or_create_key()
    assert len(key) == 16
    assert km.has_key()
    assert base64.b64decode(backend.get_string(Region.META, KEY_SLOT)) == key


def test_key_creation_is_idempotent():
    km = KeyManager(MemoryBackend())
    assert km.get_or_create_key() == km.get_or_create_key()


def test_generation_performs_exactly_one_write():
    backend = _CountingBackend()
    km = KeyManager(backend)
    km.get_or_create_key()
    km.get_or_create_key()

    assert backend.writes == [(Region.META, KEY_SLOT)]
    assert backend.names(Region.DATA) == []
    assert backend.names(Region.META) == [KEY_SLOT]


def test_key_survives_new_manager_instance():
    backend = MemoryBackend()
    first = KeyManager(backend).get_or_create_key()
    assert KeyManager(backend).get_or_create_key() == first


def test_accepts_line_wrapped_stored_key():
    backend = MemoryBackend()
    raw = bytes(range(16))
    backend.put_string(Region.META, KEY_SLOT, base64.encodebytes(raw).decode("ascii"))
    assert KeyManager(backend).get_or_create_key() == raw


@pytest.mark.parametrize("stored", ["not base64!!", encode_blob(b"\x00" * 8), encode_blob(b"\x00" * 32), ""])
def test_corrupt_key_raises_and_is_not_replaced(stored):
    backend = MemoryBackend()
    backend.put_string(Region.META, KEY_SLOT, stored)

    with pytest.raises(KeyCorruptionError):
        KeyManager(backend).get_or_create_key()
    assert backend.get_string(Region.META, KEY_SLOT) == stored


def test_unavailable_random_source_raises_key_generation_error():
    def broken(_n: int) -> bytes:
        raise NotImplementedError("no entropy")

    backend = MemoryBackend()
    with pytest.raises(KeyGenerationError):
        KeyManager(backend, random_source=broken).get_or_create_key()
    assert backend.names(Region.META) == []


def test_short_random_output_raises_key_generation_error():
    with pytest.raises(KeyGenerationError):
        KeyManager(MemoryBackend(), random_source=lambda n: b"\x00").get_or_create_key()


def test_losing_creation_race_returns_winner_key():
    winner = b"W" * 16
    km = KeyManager(_RacingBackend(winner), random_source=lambda n: b"L" * n)
    assert km.get_or_create_key() == winner


def test_concurrent_first_use_yields_single_key():
    backend = MemoryBackend()
    barrier = threading.Barrier(8)
    keys: List[bytes] = []
    lock = threading.Lock()

    def worker():
        km = KeyManager(backend)
        barrier.wait()
        k = km.get_or_create_key()
        with lock:
            keys.append(k)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(keys) == 8
    assert len(set(keys)) == 1


def test_rejects_unsupported_key_length():
    with pytest.raises(ValueError):
        KeyManager(MemoryBackend(), key_length=10)
