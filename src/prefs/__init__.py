"""
Encrypted key-value preferences.

Values are encrypted with a single AES key that is generated on first use and
kept in the metadata region of the same backend as the data.

Modules:
- codec: AES-GCM (default) and legacy AES-ECB value transforms
- keys: lifecycle of the store key
- store: EncryptedStore (typed results) and CompatStore (never throws)
- config: StoreConfig, environment loading and the open_store factory
"""

from .codec import CipherCodec, CipherMode
from .config import StoreConfig, open_store, open_store_from_env
from .keys import KEY_SLOT, KeyManager
from .store import CompatStore, EncryptedStore, StoreResult

__all__ = [
    "CipherCodec",
    "CipherMode",
    "KeyManager",
    "KEY_SLOT",
    "EncryptedStore",
    "CompatStore",
    "StoreResult",
    "StoreConfig",
    "open_store",
    "open_store_from_env",
]
