"""
Module 01 - Schemas
File: __init__.py

Purpose: Export the public API for the schemas module.
This is the main entry point for other modules to import error and message definitions.
"""

# Error models and exceptions
from .errors import (
    CapacityError,
    DerivationError,
    DerivationErrorReason,
    DivTokensError,
    DivTokensException,
    DoubleSpendError,
    ErrorCodes,
    InsufficientBalanceError,
    ProofError,
    ProofErrorReason,
    SignatureError,
    SignatureErrorReason,
    StateTransitionException,
    UnknownAccountError,
    WireFormatError,
)

# Transport messages
from .messages import (
    IssueRequest,
    IssueResponse,
    PublicKeyInfo,
    RedeemRequest,
    RedeemResponse,
    RedemptionResult,
    SettlementRecord,
    b64decode,
    b64encode,
)

__all__ = [
    # Errors
    "CapacityError",
    "DerivationError",
    "DerivationErrorReason",
    "DivTokensError",
    "DivTokensException",
    "DoubleSpendError",
    "ErrorCodes",
    "InsufficientBalanceError",
    "ProofError",
    "ProofErrorReason",
    "SignatureError",
    "SignatureErrorReason",
    "StateTransitionException",
    "UnknownAccountError",
    "WireFormatError",
    # Messages
    "IssueRequest",
    "IssueResponse",
    "PublicKeyInfo",
    "RedeemRequest",
    "RedeemResponse",
    "RedemptionResult",
    "SettlementRecord",
    "b64decode",
    "b64encode",
]
