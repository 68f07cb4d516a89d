"""
Token value types and their fixed-field binary encodings.
"""

from .types import (
    KEY_ID_BYTES,
    MAX_DENOMINATION,
    Commitment,
    IssuanceCredential,
    SpendReceipt,
    SpendStatement,
    SpendWitness,
    Token,
    signed_message,
    value_at,
)
from .wire import WIRE_VERSION, WireReader, WireWriter

__all__ = [
    "KEY_ID_BYTES",
    "MAX_DENOMINATION",
    "Commitment",
    "IssuanceCredential",
    "SpendReceipt",
    "SpendStatement",
    "SpendWitness",
    "Token",
    "signed_message",
    "value_at",
    "WIRE_VERSION",
    "WireReader",
    "WireWriter",
]
