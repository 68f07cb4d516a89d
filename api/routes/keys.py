"""
Module 09D - Keys Route

Publishes the Exchange's issuer public keys.
"""

from fastapi import APIRouter, Depends

from api.deps import get_exchange
from api.models.responses import KeysResponse
from core.redemption.exchange import Exchange


router = APIRouter(tags=["keys"])


@router.get("/keys", response_model=KeysResponse)
def list_keys(exchange: Exchange = Depends(get_exchange)) -> KeysResponse:
    return KeysResponse(keys=exchange.public_keys())
