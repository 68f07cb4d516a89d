"""
Module 08 - Receipt Verification

The checks a Publisher runs before forwarding and the Exchange runs again
before touching the ledger. Neither side trusts the other.
"""
from __future__ import annotations

from core.issuance.keyring import IssuerKeyring
from core.schemas.errors import (
    DerivationError,
    DerivationErrorReason,
    ProofError,
    ProofErrorReason,
)
from core.tokens.types import SpendReceipt
from core.zk.spend import SpendProofSystem


def check_receipt(
    receipt: SpendReceipt,
    keyring: IssuerKeyring,
    proofs: SpendProofSystem,
    max_denomination: int,
) -> None:
    """
    Raises:
        DerivationError: DepthExceeded if D is above max_denomination,
            LevelMismatch if the level is outside [0, D]
        SignatureError: UnknownKey or InvalidIssuance for the credential
        ProofError: Malformed or Invalid spend proof
    """
    if receipt.denomination > max_denomination:
        raise DerivationError(
            f"denomination {receipt.denomination} exceeds maximum {max_denomination}",
            reason=DerivationErrorReason.DEPTH_EXCEEDED,
            details={"denomination": receipt.denomination, "max": max_denomination},
        )
    if receipt.credential.denomination != receipt.denomination:
        raise ProofError(
            "receipt denomination differs from its credential",
            reason=ProofErrorReason.INVALID,
            details={
                "receipt": receipt.denomination,
                "credential": receipt.credential.denomination,
            },
        )
    statement = receipt.statement()
    keyring.check_credential(receipt.credential)
    proofs.check(receipt.proof, statement)


__all__ = ["check_receipt"]
