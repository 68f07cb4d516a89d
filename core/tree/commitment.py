"""
Module 04 - Root Commitment

c_root = C(root, DOM_COMMIT + D). Computed once at issuance; spend proofs
re-derive it inside the circuit so no sibling hashes are ever stored.
"""
from __future__ import annotations

from core.crypto.field import random_element, to_bytes as field_to_bytes
from core.crypto.mimc import DOM_COMMIT, compress
from core.tokens.types import Commitment

from .derivation import secret_to_int


def commit(root: bytes, denomination: int) -> Commitment:
    value = compress(secret_to_int(root), DOM_COMMIT + denomination)
    return Commitment(denomination=denomination, value=field_to_bytes(value))


def verify_commitment(root: bytes, commitment: Commitment) -> bool:
    return commit(root, commitment.denomination) == commitment


def generate_root() -> bytes:
    """Fresh root secret from the OS CSPRNG."""
    return field_to_bytes(random_element())


__all__ = [
    "commit",
    "verify_commitment",
    "generate_root",
]
