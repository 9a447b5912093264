"""
Deterministic canonical encoding primitives.

Used for record snapshots (``RecordStore.records_root``) and for deriving pool
authority and ticket addresses, where every party must produce the same bytes
for the same inputs.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

CANONICAL_ENCODING_VERSION = 1

_DOMAIN_PREFIX = b"stakepool:"


def _require_canonical(value: Any, path: str = "$") -> None:
    """Reject values without a single canonical JSON form (floats, non-str keys)."""
    if isinstance(value, float):
        raise TypeError(f"{path}: floats are not allowed in canonical encoding")
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError(f"{path}: dict keys must be str, got {type(k).__name__}")
            _require_canonical(v, f"{path}.{k}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _require_canonical(item, f"{path}[{i}]")


def canonical_json_bytes(value: Any) -> bytes:
    """
    Canonical JSON encoding for hashing.

    UTF-8, sorted keys, no whitespace, NaN disallowed. Amounts and timestamps
    are integers, so floats are rejected outright.
    """
    _require_canonical(value)
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = CANONICAL_ENCODING_VERSION) -> bytes:
    """
    ``stakepool:<label>:v<version>\\x00``.

    ASCII-only and NUL-terminated so a label can never run into the seeds that follow it.
    """
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label or not label.isascii():
        raise ValueError(f"label must be ASCII without NUL: {label!r}")
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return _DOMAIN_PREFIX + label.encode("ascii") + b":v%d\x00" % version


def encode_uvarint(value: int) -> bytes:
    """Unsigned LEB128."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"uvarint must be a non-negative int, got {value!r}")
    out = bytearray()
    while value > 0x7F:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def encode_str(value: str) -> bytes:
    """Length-prefixed UTF-8 (so seed concatenation stays unambiguous)."""
    if not isinstance(value, str):
        raise TypeError("value must be str")
    data = value.encode("utf-8")
    return encode_uvarint(len(data)) + data
