"""
Module 01 - Schemas
File: errors.py

Purpose: Standard error taxonomy across issuance, spending and redemption.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the scheme."""

    # Proof Errors
    PROOF_INVALID = "PROOF_INVALID"
    PROOF_MALFORMED = "PROOF_MALFORMED"

    # Signature / Credential Errors
    SIGNATURE_INVALID_ISSUANCE = "SIGNATURE_INVALID_ISSUANCE"
    SIGNATURE_UNKNOWN_KEY = "SIGNATURE_UNKNOWN_KEY"

    # Ledger Errors
    DOUBLE_SPEND = "DOUBLE_SPEND"

    # Derivation Errors
    DERIVATION_LEVEL_MISMATCH = "DERIVATION_LEVEL_MISMATCH"
    DERIVATION_DEPTH_EXCEEDED = "DERIVATION_DEPTH_EXCEEDED"
    DERIVATION_INVALID_SECRET = "DERIVATION_INVALID_SECRET"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"

    # Issuance Errors
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    UNKNOWN_ACCOUNT = "UNKNOWN_ACCOUNT"

    # Protocol Errors
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"


class ProofErrorReason:
    INVALID = "Invalid"
    MALFORMED = "Malformed"


class SignatureErrorReason:
    INVALID_ISSUANCE = "InvalidIssuance"
    UNKNOWN_KEY = "UnknownKey"


class DerivationErrorReason:
    LEVEL_MISMATCH = "LevelMismatch"
    DEPTH_EXCEEDED = "DepthExceeded"
    INVALID_SECRET = "InvalidSecret"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class DivTokensError(BaseModel):
    """
    Base error model for structured error communication.

    Carried inside redemption outcomes and API responses so a Publisher can
    tell "resend a corrected receipt" (retryable) from "refuse" (not retryable).
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.DOUBLE_SPEND],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried with corrected input",
    )

    def to_exception(self) -> "DivTokensException":
        """Convert this error model back to the matching exception class."""
        exc_cls = _EXCEPTIONS_BY_CODE.get(self.code)
        if exc_cls is None:
            return DivTokensException(
                message=self.message,
                code=self.code,
                details=self.details,
                retryable=self.retryable,
            )
        exc = DivTokensException.__new__(exc_cls)
        DivTokensException.__init__(
            exc,
            message=self.message,
            code=self.code,
            details=self.details,
            retryable=self.retryable,
        )
        exc._restore_from_details()
        return exc


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class DivTokensException(Exception):
    """
    Base exception for all divtokens errors.

    This exception carries structured error information and can be
    converted to/from DivTokensError models.
    """

    def __init__(
        self,
        message: str,
        code: str = "DIVTOKENS_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    @property
    def reason(self) -> str | None:
        return self.details.get("reason")

    def _restore_from_details(self) -> None:
        """Rebuild subclass attributes after construction from an error model."""

    def to_error_model(self) -> DivTokensError:
        """Convert this exception to a DivTokensError model."""
        return DivTokensError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ProofError(DivTokensException):
    """A spend proof was rejected (Invalid) or could not be decoded (Malformed)."""

    def __init__(
        self,
        message: str,
        reason: str = ProofErrorReason.INVALID,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = dict(details or {})
        full_details["reason"] = reason
        malformed = reason == ProofErrorReason.MALFORMED
        super().__init__(
            message=message,
            code=ErrorCodes.PROOF_MALFORMED if malformed else ErrorCodes.PROOF_INVALID,
            details=full_details,
            retryable=malformed,
        )


class WireFormatError(ProofError):
    """Raised when a serialized structure cannot be decoded."""

    def __init__(
        self,
        message: str,
        structure: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = dict(details or {})
        if structure:
            full_details["structure"] = structure
        super().__init__(
            message=message,
            reason=ProofErrorReason.MALFORMED,
            details=full_details,
        )


class SignatureError(DivTokensException):
    """An issuance credential failed verification or names an unknown key."""

    def __init__(
        self,
        message: str,
        reason: str = SignatureErrorReason.INVALID_ISSUANCE,
        key_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = dict(details or {})
        full_details["reason"] = reason
        if key_id:
            full_details["key_id"] = key_id
        unknown = reason == SignatureErrorReason.UNKNOWN_KEY
        super().__init__(
            message=message,
            code=ErrorCodes.SIGNATURE_UNKNOWN_KEY if unknown else ErrorCodes.SIGNATURE_INVALID_ISSUANCE,
            details=full_details,
            retryable=unknown,
        )


class DoubleSpendError(DivTokensException):
    """The serial was already accepted in this epoch. Terminal."""

    def __init__(
        self,
        serial: str,
        first_seen: datetime | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = dict(details or {})
        full_details["serial"] = serial
        if first_seen is not None:
            full_details["first_seen"] = first_seen.isoformat()
        super().__init__(
            message=f"Serial {serial} already spent",
            code=ErrorCodes.DOUBLE_SPEND,
            details=full_details,
            retryable=False,
        )
        self.serial = serial
        self.first_seen = first_seen

    def _restore_from_details(self) -> None:
        self.serial = self.details.get("serial", "")
        first_seen = self.details.get("first_seen")
        self.first_seen = datetime.fromisoformat(first_seen) if first_seen else None


class DerivationError(DivTokensException):
    """A witness or path is inconsistent with the token it claims to belong to."""

    def __init__(
        self,
        message: str,
        reason: str = DerivationErrorReason.LEVEL_MISMATCH,
        details: dict[str, Any] | None = None,
        code: str | None = None,
    ) -> None:
        full_details = dict(details or {})
        full_details["reason"] = reason
        if code is None:
            code = {
                DerivationErrorReason.LEVEL_MISMATCH: ErrorCodes.DERIVATION_LEVEL_MISMATCH,
                DerivationErrorReason.DEPTH_EXCEEDED: ErrorCodes.DERIVATION_DEPTH_EXCEEDED,
            }.get(reason, ErrorCodes.DERIVATION_INVALID_SECRET)
        super().__init__(
            message=message,
            code=code,
            details=full_details,
            retryable=False,
        )


class CapacityError(DerivationError):
    """Raised when a path exceeds the token depth or the wallet cannot cover a value."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            reason=DerivationErrorReason.DEPTH_EXCEEDED,
            details=details,
            code=ErrorCodes.CAPACITY_EXCEEDED,
        )


class InsufficientBalanceError(DivTokensException):
    """Raised when an issuance request exceeds the account's prepaid balance."""

    def __init__(
        self,
        account_id: str,
        requested: int,
        available: int,
    ) -> None:
        super().__init__(
            message=(
                f"Account {account_id} has {available} units, "
                f"issuance requires {requested}"
            ),
            code=ErrorCodes.INSUFFICIENT_BALANCE,
            details={
                "account_id": account_id,
                "requested": requested,
                "available": available,
            },
            retryable=False,
        )


class UnknownAccountError(DivTokensException):
    """Raised when an issuance request names an account the key store lacks."""

    def __init__(self, account_id: str) -> None:
        super().__init__(
            message=f"Unknown account: {account_id}",
            code=ErrorCodes.UNKNOWN_ACCOUNT,
            details={"account_id": account_id},
            retryable=False,
        )


class StateTransitionException(DivTokensException):
    """Raised on an illegal redemption state change. Indicates a bug."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            message=f"Illegal transition {current} -> {target}",
            code=ErrorCodes.INVALID_STATE_TRANSITION,
            details={"current": current, "target": target},
            retryable=False,
        )


_EXCEPTIONS_BY_CODE: dict[str, type[DivTokensException]] = {
    ErrorCodes.PROOF_INVALID: ProofError,
    ErrorCodes.PROOF_MALFORMED: ProofError,
    ErrorCodes.SIGNATURE_INVALID_ISSUANCE: SignatureError,
    ErrorCodes.SIGNATURE_UNKNOWN_KEY: SignatureError,
    ErrorCodes.DOUBLE_SPEND: DoubleSpendError,
    ErrorCodes.DERIVATION_LEVEL_MISMATCH: DerivationError,
    ErrorCodes.DERIVATION_DEPTH_EXCEEDED: DerivationError,
    ErrorCodes.DERIVATION_INVALID_SECRET: DerivationError,
    ErrorCodes.CAPACITY_EXCEEDED: CapacityError,
    ErrorCodes.INSUFFICIENT_BALANCE: InsufficientBalanceError,
    ErrorCodes.UNKNOWN_ACCOUNT: UnknownAccountError,
}
