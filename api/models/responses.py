"""
Module 09D - API Response Models

Pydantic models for API response serialization.
"""

from typing import Any

from pydantic import BaseModel, Field

from core.schemas.messages import IssueResponse, PublicKeyInfo, RedeemResponse, RedemptionResult


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "divtokens-exchange"
    version: str = "v1"


class KeysResponse(BaseModel):
    """Response for GET /keys endpoint."""

    keys: list[PublicKeyInfo] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """Error detail in response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)
    retryable: bool = Field(default=False)


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: ErrorDetail


__all__ = [
    "HealthResponse",
    "KeysResponse",
    "IssueResponse",
    "RedeemResponse",
    "RedemptionResult",
    "ErrorDetail",
    "ErrorResponse",
]
