"""
Module 01 - Schemas
File: messages.py

Purpose: Messages exchanged between Holder, Publisher and Exchange over a
transport. Binary structures travel as base64 of their fixed-field
encodings; identifiers travel as lowercase hex.
"""

import base64
import binascii
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import DivTokensError, WireFormatError


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str, structure: str = "base64") -> bytes:
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise WireFormatError(f"invalid base64 in {structure}: {e}", structure=structure) from e


class IssueRequest(BaseModel):
    """Holder -> Exchange: sign a blinded commitment for a prepaid account."""

    model_config = ConfigDict(extra="forbid")

    key_id: str = Field(
        ...,
        description="Hex key id of the issuer key to sign with",
        min_length=64,
        max_length=64,
    )
    account_id: str = Field(
        ...,
        description="Prepaid account to debit",
        min_length=1,
    )
    denomination: int = Field(
        ...,
        ge=0,
        le=255,
        description="Token depth D; the token is worth 2^D units",
    )
    blinded: str = Field(
        ...,
        description="Base64 big-endian blinded full-domain hash",
    )


class IssueResponse(BaseModel):
    """Exchange -> Holder: the blind signature."""

    model_config = ConfigDict(extra="forbid")

    key_id: str
    denomination: int
    blind_signature: str = Field(
        ...,
        description="Base64 big-endian blind signature",
    )


class PublicKeyInfo(BaseModel):
    """One published issuer key."""

    model_config = ConfigDict(extra="forbid")

    key_id: str
    bits: int
    pem: str


class RedeemRequest(BaseModel):
    """Publisher -> Exchange: a batch of receipts for one advertiser."""

    model_config = ConfigDict(extra="forbid")

    publisher_id: str = Field(..., min_length=1)
    advertiser_id: str = Field(..., min_length=1)
    receipts: list[str] = Field(
        default_factory=list,
        description="Base64 SpendReceipt encodings",
    )


class SettlementRecord(BaseModel):
    """A billable unit of value: emitted once per accepted serial."""

    model_config = ConfigDict(extra="forbid")

    serial: str
    value: int = Field(..., ge=1)
    publisher_id: str
    advertiser_id: str
    settled_at: datetime | None = None


class RedemptionResult(BaseModel):
    """Outcome of redeeming one receipt."""

    model_config = ConfigDict(extra="forbid")

    accepted: bool
    serial: str | None = Field(
        default=None,
        description="Hex serial, absent when the receipt could not be decoded",
    )
    value: int = 0
    error: DivTokensError | None = None
    settlement: SettlementRecord | None = None
    cached: bool = Field(
        default=False,
        description="True when a Publisher answered from its acknowledgement cache",
    )

    @property
    def rejected(self) -> bool:
        return not self.accepted

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable


class RedeemResponse(BaseModel):
    """Exchange -> Publisher: one result per submitted receipt, in order."""

    model_config = ConfigDict(extra="forbid")

    results: list[RedemptionResult] = Field(default_factory=list)

    @property
    def accepted_value(self) -> int:
        return sum(r.value for r in self.results if r.accepted)

    def summary(self) -> dict[str, Any]:
        return {
            "submitted": len(self.results),
            "accepted": sum(1 for r in self.results if r.accepted),
            "rejected": sum(1 for r in self.results if not r.accepted),
            "value": self.accepted_value,
        }
