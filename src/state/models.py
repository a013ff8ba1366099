from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field


class PrefsDocument(BaseModel):
    """
    On-disk shape of a JSON-file backed preferences store.

    Fields
    - meta: metadata region (holds the encoded key under the reserved slot).
    - data: data region, caller names mapped to base64 ciphertext.

    Notes
    - The two regions never share names; a caller entry called "PRIVATE_KEY"
      lives in `data` and cannot shadow the key in `meta`.
    """

    meta: Dict[str, str] = Field(default_factory=dict, description="Metadata region")
    data: Dict[str, str] = Field(default_factory=dict, description="Caller entries")

    @classmethod
    def empty(cls) -> "PrefsDocument":
        """Convenience constructor for a fresh, empty document."""
        return cls()
