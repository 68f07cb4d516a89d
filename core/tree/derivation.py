"""
Module 04 - Key Derivation Tree
Binary tree of secrets derived top-down from one root secret.

Owner: Protocol/Crypto Engineer
Module ID: M04

This module provides:
- Child derivation s_{p||b} = C(s_p, DOM_CHILD + b)
- Serial and tag of a node: C(s, DOM_SERIAL), C(s, DOM_TAG)
- Derivation of any node from the root along a bit-string path
- Breadth expansion of a subtree (auditing and tests only)

Security Notes:
- C is one-way, so a node secret reveals its descendants and nothing else
- Nodes are never materialised; derive() keeps one secret at a time
- Secrets are canonical 32-byte big-endian field elements
"""
from __future__ import annotations

from dataclasses import dataclass, field

from core.crypto.field import FIELD_BYTES, from_bytes as field_from_bytes, to_bytes as field_to_bytes
from core.crypto.mimc import DOM_CHILD, DOM_SERIAL, DOM_TAG, compress
from core.schemas.errors import CapacityError, DerivationError, DerivationErrorReason
from core.tokens.types import MAX_DENOMINATION, value_at


def secret_to_int(secret: bytes) -> int:
    """Decode a node secret, raising DerivationError if it is not canonical."""
    try:
        return field_from_bytes(secret)
    except ValueError as e:
        raise DerivationError(
            f"secret is not a canonical field element: {e}",
            reason=DerivationErrorReason.INVALID_SECRET,
        ) from e


def validate_path(path: str, depth: int | None = None) -> str:
    """
    Check that path is a bit string no longer than depth.

    Raises:
        ValueError: If path contains characters other than '0' and '1'
        CapacityError: If len(path) > depth
    """
    if any(bit not in "01" for bit in path):
        raise ValueError(f"path must be a string of '0' and '1', got {path!r}")
    if depth is not None and len(path) > depth:
        raise CapacityError(
            f"path of length {len(path)} exceeds token depth {depth}",
            details={"path_length": len(path), "depth": depth},
        )
    return path


def derive_child(secret: bytes, bit: int) -> bytes:
    if bit not in (0, 1):
        raise ValueError(f"bit must be 0 or 1, got {bit}")
    return field_to_bytes(compress(secret_to_int(secret), DOM_CHILD + bit))


def serial_of(secret: bytes) -> bytes:
    return field_to_bytes(compress(secret_to_int(secret), DOM_SERIAL))


def tag_of(secret: bytes) -> bytes:
    return field_to_bytes(compress(secret_to_int(secret), DOM_TAG))


def derive(root: bytes, path: str, depth: int | None = None) -> bytes:
    """Apply derive_child once per path bit, in order."""
    validate_path(path, depth)
    secret = root
    for bit in path:
        secret = derive_child(secret, int(bit))
    return secret


def chain(root: bytes, path: str) -> list[bytes]:
    """All secrets from the root to the node at path, root first."""
    validate_path(path)
    secrets_along = [root]
    for bit in path:
        secrets_along.append(derive_child(secrets_along[-1], int(bit)))
    return secrets_along


def expand(secret: bytes, depth: int) -> list[bytes]:
    """
    Return the 2^depth descendants of secret at the given relative depth,
    left to right.
    """
    if depth < 0:
        raise ValueError(f"depth must be non-negative, got {depth}")
    level = [secret]
    for _ in range(depth):
        level = [derive_child(s, bit) for s in level for bit in (0, 1)]
    return level


@dataclass(frozen=True)
class Node:
    """One node of a token tree. The secret is never printed."""
    path: str
    secret: bytes = field(repr=False)
    denomination: int

    @property
    def level(self) -> int:
        return len(self.path)

    @property
    def value(self) -> int:
        return value_at(self.denomination, self.level)

    @property
    def serial(self) -> bytes:
        return serial_of(self.secret)

    @property
    def tag(self) -> bytes:
        return tag_of(self.secret)


class KeyDerivationTree:
    """
    Derivation bound to one token depth.

    Usage:
        tree = KeyDerivationTree(denomination=8)
        node = tree.node(root, "0110")
        node.value   # 16
        node.serial  # 32 bytes
    """

    def __init__(self, denomination: int, max_depth: int = MAX_DENOMINATION) -> None:
        if not 0 <= denomination <= max_depth:
            raise DerivationError(
                f"denomination {denomination} exceeds maximum depth {max_depth}",
                reason=DerivationErrorReason.DEPTH_EXCEEDED,
                details={"denomination": denomination, "max_depth": max_depth},
            )
        self.denomination = denomination

    derive_child = staticmethod(derive_child)
    serial_of = staticmethod(serial_of)
    tag_of = staticmethod(tag_of)
    expand = staticmethod(expand)

    def derive(self, root: bytes, path: str) -> bytes:
        return derive(root, path, self.denomination)

    def node(self, root: bytes, path: str) -> Node:
        return Node(path=path, secret=self.derive(root, path), denomination=self.denomination)


__all__ = [
    "secret_to_int",
    "validate_path",
    "derive_child",
    "serial_of",
    "tag_of",
    "derive",
    "chain",
    "expand",
    "Node",
    "KeyDerivationTree",
]
