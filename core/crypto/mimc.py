"""
Module 03 - MiMC One-Way Function

MiMC-p/p block cipher with the permutation x -> x^5 over the scalar field
and a Miyaguchi-Preneel compression built on top of it. The compression
function is the only one-way primitive of the token scheme: child
derivation, serials, tags and root commitments are all C(key, message)
with distinct domain messages.

Owner: Protocol/Crypto Engineer
Module ID: M03
"""
from __future__ import annotations

import struct

from .field import P, hash_to_field

EXPONENT = 5
# ceil(log_5(P))
ROUNDS = 110

ROUND_CONSTANTS: tuple[int, ...] = tuple(
    hash_to_field("divtokens/mimc/round-constant", struct.pack(">H", i))
    for i in range(ROUNDS)
)

DOM_CHILD = hash_to_field("divtokens/domain/child")
DOM_SERIAL = hash_to_field("divtokens/domain/serial")
DOM_TAG = hash_to_field("divtokens/domain/tag")
DOM_COMMIT = hash_to_field("divtokens/domain/commit")


def encrypt(key: int, message: int) -> int:
    """E_k(m): ROUNDS applications of x -> (x + k + c_i)^5, then a final key add."""
    x = message % P
    for c in ROUND_CONSTANTS:
        x = pow((x + key + c) % P, EXPONENT, P)
    return (x + key) % P


def compress(key: int, message: int) -> int:
    """Miyaguchi-Preneel compression C(k, m) = E_k(m) + k + m."""
    return (encrypt(key, message) + key + message) % P


__all__ = [
    "EXPONENT",
    "ROUNDS",
    "ROUND_CONSTANTS",
    "DOM_CHILD",
    "DOM_SERIAL",
    "DOM_TAG",
    "DOM_COMMIT",
    "encrypt",
    "compress",
]
