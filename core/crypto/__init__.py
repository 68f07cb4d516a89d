"""
Core cryptographic utilities.

Module 02 provides hashing utilities.
Module 03 provides the scalar field and the MiMC one-way function.
Module 06 provides blind RSA issuance signatures.
"""
from .hashing import (
    sha256,
    domain_hash,
    expand,
    to_hex,
)
from .field import (
    P,
    FIELD_BYTES,
    to_bytes,
    from_bytes,
    hash_to_field,
    random_element,
)
from .mimc import (
    ROUNDS,
    ROUND_CONSTANTS,
    DOM_CHILD,
    DOM_SERIAL,
    DOM_TAG,
    DOM_COMMIT,
    encrypt,
    compress,
)

__all__ = [
    "sha256",
    "domain_hash",
    "expand",
    "to_hex",
    "P",
    "FIELD_BYTES",
    "to_bytes",
    "from_bytes",
    "hash_to_field",
    "random_element",
    "ROUNDS",
    "ROUND_CONSTANTS",
    "DOM_CHILD",
    "DOM_SERIAL",
    "DOM_TAG",
    "DOM_COMMIT",
    "encrypt",
    "compress",
]
