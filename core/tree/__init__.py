"""
Key derivation tree, root commitment and holder wallet.
"""

from .commitment import commit, generate_root, verify_commitment
from .derivation import (
    KeyDerivationTree,
    Node,
    chain,
    derive,
    derive_child,
    expand,
    secret_to_int,
    serial_of,
    tag_of,
    validate_path,
)
from .wallet import NodeMark, TokenWallet, overlaps

__all__ = [
    "commit",
    "generate_root",
    "verify_commitment",
    "KeyDerivationTree",
    "Node",
    "chain",
    "derive",
    "derive_child",
    "expand",
    "secret_to_int",
    "serial_of",
    "tag_of",
    "validate_path",
    "NodeMark",
    "TokenWallet",
    "overlaps",
]
