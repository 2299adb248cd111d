"""Key record exchanged with the authority and stored in the cache."""

import binascii
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from ..exceptions import KeyFormatError


@dataclass(frozen=True)
class Key:
    """One candidate authentication key.

    ``account`` travels as ``email`` on the wire; an empty account marks
    a legacy record that cannot be attributed to anyone.
    """
    public_key: str
    public_key_sig: str = ""
    account: str = ""
    ssh_options: str = ""

    def signature_bytes(self) -> bytes:
        """Decode the hex signature; anything undecodable is an empty signature."""
        try:
            return binascii.unhexlify(self.public_key_sig)
        except (binascii.Error, ValueError):
            return b""

    def to_dict(self) -> Dict[str, str]:
        return {
            "public_key": self.public_key,
            "public_key_sig": self.public_key_sig,
            "email": self.account,
            "ssh_options": self.ssh_options,
        }

    @classmethod
    def from_dict(cls, d: Any) -> "Key":
        if not isinstance(d, dict):
            raise KeyFormatError(f"key record must be an object, got {type(d).__name__}")
        public_key = d.get("public_key")
        if not isinstance(public_key, str):
            raise KeyFormatError("key record has no public_key string")
        return cls(
            public_key=public_key,
            public_key_sig=_optional_str(d, "public_key_sig"),
            account=_optional_str(d, "email"),
            ssh_options=_optional_str(d, "ssh_options"),
        )


def _optional_str(d: Dict[str, Any], name: str) -> str:
    value = d.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise KeyFormatError(f"key record field {name!r} must be a string")
    return value


def keys_from_json(data) -> List[Key]:
    """Parse a JSON array of key records (str or bytes)."""
    try:
        doc = json.loads(data)
    except (ValueError, UnicodeDecodeError) as e:
        raise KeyFormatError(f"not valid JSON: {e}") from e
    if not isinstance(doc, list):
        raise KeyFormatError(f"expected a JSON array, got {type(doc).__name__}")
    return [Key.from_dict(entry) for entry in doc]


def keys_to_json(keys: Sequence[Key]) -> str:
    return json.dumps([k.to_dict() for k in keys])
