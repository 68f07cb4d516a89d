"""
Module 02 - Hashing Utilities
Byte-oriented hashing helpers shared by the token scheme.

Owner: Protocol/Crypto Engineer
Module ID: M02

This module provides:
- SHA-256 hashing for raw bytes
- Domain-separated hashing with length-prefixed parts
- Extendable output (SHAKE-256) for tapes and full-domain hashes
- Hex encoding with 0x prefix

Security/Determinism Notes:
- Every multi-part hash length-prefixes its parts, so ("ab", "c") and
  ("a", "bc") never collide
- Labels are ASCII and unique per use site
"""
from __future__ import annotations

import hashlib
import struct


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Args:
        data: Raw bytes to hash

    Returns:
        32-byte SHA-256 digest

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def _frame(label: str, parts: tuple[bytes, ...]) -> bytes:
    encoded = label.encode("ascii")
    chunks = [struct.pack(">H", len(encoded)), encoded]
    for part in parts:
        chunks.append(struct.pack(">I", len(part)))
        chunks.append(part)
    return b"".join(chunks)


def domain_hash(label: str, *parts: bytes) -> bytes:
    """
    Hash a sequence of byte strings under a domain label.

    Each part is prefixed with its 4-byte length before hashing.

    Args:
        label: ASCII domain label (e.g. "divtokens/zk/commit")
        *parts: Byte strings to bind

    Returns:
        32-byte SHA-256 digest
    """
    return sha256(_frame(label, parts))


def expand(label: str, length: int, *parts: bytes) -> bytes:
    """
    Derive `length` pseudorandom bytes from a label and parts (SHAKE-256).

    Used for MPC random tapes and the RSA full-domain hash.
    """
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    return hashlib.shake_256(_frame(label, parts)).digest(length)


def to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string with 0x prefix.

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        '0xdeadbeef'
    """
    return "0x" + data.hex()


__all__ = [
    "sha256",
    "domain_hash",
    "expand",
    "to_hex",
]
