"""API request and response models."""

from api.models.requests import IssueRequest, RedeemRequest
from api.models.responses import (
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    IssueResponse,
    KeysResponse,
    RedeemResponse,
    RedemptionResult,
)

__all__ = [
    "IssueRequest",
    "RedeemRequest",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "IssueResponse",
    "KeysResponse",
    "RedeemResponse",
    "RedemptionResult",
]
