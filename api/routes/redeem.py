"""
Module 09D - Redeem Route

Redeems a batch of receipts for one Publisher and advertiser. Each
receipt gets its own outcome; a rejected receipt never fails the batch.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import get_exchange
from api.models.requests import RedeemRequest
from api.models.responses import RedeemResponse
from core.redemption.exchange import Exchange


logger = logging.getLogger(__name__)

router = APIRouter(tags=["redemption"])


@router.post("/redeem", response_model=RedeemResponse)
def redeem_receipts(request: RedeemRequest, exchange: Exchange = Depends(get_exchange)) -> RedeemResponse:
    response = exchange.handle_redeem(request)
    logger.info("Redeem from %s: %s", request.publisher_id, response.summary())
    return response
