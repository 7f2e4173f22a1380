"""Deterministic fingerprints used for idempotent naming."""

import json
from typing import Any

from pydantic import BaseModel

_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193

# Alphanumerics without vowels or look-alike characters, so encoded hashes
# can never spell words and are always valid DNS label fragments.
_SAFE_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"


def _canonical(value: Any) -> bytes:
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str).encode()


def fnv32a(data: bytes) -> int:
    h = _FNV32_OFFSET
    for byte in data:
        h ^= byte
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return h


def safe_encode(value: str) -> str:
    """Map every character onto the safe alphabet."""
    return "".join(_SAFE_ALPHABET[ord(c) % len(_SAFE_ALPHABET)] for c in value)


def compute_hash(value: Any) -> str:
    """Fingerprint any JSON-serialisable value (or pydantic model).

    Dict key order does not affect the result.
    """
    return safe_encode(str(fnv32a(_canonical(value))))
