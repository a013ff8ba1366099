from __future__ import annotations

import base64
import binascii


def encode_blob(data: bytes) -> str:
    """Standard base64 (no line wrapping) for storing bytes in a string slot."""
    return base64.b64encode(data).decode("ascii")


def decode_blob(text: str) -> bytes:
    """Inverse of `encode_blob`.

    Embedded whitespace is ignored so values written by line-wrapping
    encoders (76-column MIME style) still decode. Any other non-alphabet
    character, or bad padding, raises `ValueError`.
    """
    if not isinstance(text, str):
        raise ValueError("blob must be a str")
    compact = "".join(text.split())
    try:
        return base64.b64decode(compact.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as ex:
        raise ValueError("invalid base64 blob") from ex
