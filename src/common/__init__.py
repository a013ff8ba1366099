"""
Common utilities for encrypted-prefs.

Modules:
- encoding: base64 text encoding for binary blobs (keys and ciphertext)
- errors: exception taxonomy shared by backends and the store
"""

__all__ = [
    "encoding",
    "errors",
]
