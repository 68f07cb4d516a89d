"""
Module 03 - Scalar Field
Arithmetic helpers over the BLS12-381 scalar field.

Owner: Protocol/Crypto Engineer
Module ID: M03

Elements are plain Python ints in [0, P). On the wire every element is
exactly FIELD_BYTES big-endian bytes; values >= P are not canonical and
are rejected on decode.
"""
from __future__ import annotations

import secrets

from .hashing import expand

P = 0x73EDA753299D7D483339D80809A1D80553BDA402FFFE5BFEFFFFFFFF00000001
FIELD_BYTES = 32

# 16 extra bytes keep the modular bias below 2^-128.
_WIDE_BYTES = FIELD_BYTES + 16


def to_bytes(x: int) -> bytes:
    """Encode a field element as 32 big-endian bytes."""
    return (x % P).to_bytes(FIELD_BYTES, "big")


def from_bytes(data: bytes) -> int:
    """
    Decode a canonical field element.

    Raises:
        ValueError: If data is not 32 bytes or encodes a value >= P
    """
    if len(data) != FIELD_BYTES:
        raise ValueError(f"field element must be {FIELD_BYTES} bytes, got {len(data)}")
    value = int.from_bytes(data, "big")
    if value >= P:
        raise ValueError("field element is not canonical (>= modulus)")
    return value


def reduce_wide(data: bytes) -> int:
    return int.from_bytes(data, "big") % P


def hash_to_field(label: str, *parts: bytes) -> int:
    """Map a label and parts to a uniformly distributed field element."""
    return reduce_wide(expand(label, _WIDE_BYTES, *parts))


def elements_from_stream(label: str, count: int, *parts: bytes) -> list[int]:
    """Expand `count` field elements from one SHAKE-256 stream."""
    stream = expand(label, count * _WIDE_BYTES, *parts)
    return [
        reduce_wide(stream[i * _WIDE_BYTES:(i + 1) * _WIDE_BYTES])
        for i in range(count)
    ]


def random_element() -> int:
    """Sample a uniform field element from the OS CSPRNG."""
    return secrets.randbelow(P)


__all__ = [
    "P",
    "FIELD_BYTES",
    "to_bytes",
    "from_bytes",
    "reduce_wide",
    "hash_to_field",
    "elements_from_stream",
    "random_element",
]
