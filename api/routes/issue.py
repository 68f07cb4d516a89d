"""
Module 09D - Issue Route

Blind-signs a token commitment against a prepaid account.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import get_exchange
from api.models.requests import IssueRequest
from api.models.responses import IssueResponse
from core.redemption.exchange import Exchange


logger = logging.getLogger(__name__)

router = APIRouter(tags=["issuance"])


@router.post("/issue", response_model=IssueResponse)
def issue_token(request: IssueRequest, exchange: Exchange = Depends(get_exchange)) -> IssueResponse:
    """
    Sign a blinded commitment.

    Errors use the standard envelope: INSUFFICIENT_BALANCE (402),
    UNKNOWN_ACCOUNT (404), SIGNATURE_UNKNOWN_KEY (404),
    DERIVATION_DEPTH_EXCEEDED (422).
    """
    return exchange.issue(request)
