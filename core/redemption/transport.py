"""
Module 08 - Exchange Transport

How Holders and Publishers reach the Exchange. The in-process transport
calls an Exchange object directly; the HTTP transport talks to the API in
api/ through HttpClient.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from core.http.client import HttpClient, HttpError, HttpResponse
from core.schemas.errors import DivTokensError
from core.schemas.messages import (
    IssueRequest,
    IssueResponse,
    PublicKeyInfo,
    RedeemRequest,
    RedeemResponse,
)

if TYPE_CHECKING:
    from .exchange import Exchange

logger = logging.getLogger(__name__)


class ExchangeTransport(ABC):
    @abstractmethod
    def public_keys(self) -> list[PublicKeyInfo]:
        ...

    @abstractmethod
    def issue(self, request: IssueRequest) -> IssueResponse:
        ...

    @abstractmethod
    def redeem(self, request: RedeemRequest) -> RedeemResponse:
        ...


class InProcessTransport(ExchangeTransport):
    def __init__(self, exchange: "Exchange") -> None:
        self.exchange = exchange

    def public_keys(self) -> list[PublicKeyInfo]:
        return self.exchange.public_keys()

    def issue(self, request: IssueRequest) -> IssueResponse:
        return self.exchange.issue(request)

    def redeem(self, request: RedeemRequest) -> RedeemResponse:
        return self.exchange.handle_redeem(request)


class HttpExchangeTransport(ExchangeTransport):
    """
    Usage:
        transport = HttpExchangeTransport("http://exchange:8000")
        keys = transport.public_keys()
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[HttpClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or HttpClient(
            timeout=timeout,
            default_headers={"Accept": "application/json"},
        )

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @staticmethod
    def _unwrap(response: HttpResponse) -> Any:
        """Return the JSON body, re-raising API error envelopes as domain exceptions."""
        if response.ok:
            return response.json()
        try:
            body = response.json()
        except ValueError:
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and "code" in error:
            raise DivTokensError(
                code=error["code"],
                message=error.get("message", ""),
                details=error.get("details") or {},
                retryable=bool(error.get("retryable", False)),
            ).to_exception()
        raise HttpError(
            f"HTTP {response.status_code}",
            status_code=response.status_code,
            response=response,
        )

    def public_keys(self) -> list[PublicKeyInfo]:
        body = self._unwrap(self.client.get(self._url("/keys")))
        return [PublicKeyInfo.model_validate(k) for k in body["keys"]]

    def issue(self, request: IssueRequest) -> IssueResponse:
        body = self._unwrap(self.client.post(self._url("/issue"), json=request.model_dump()))
        return IssueResponse.model_validate(body)

    def redeem(self, request: RedeemRequest) -> RedeemResponse:
        logger.debug("Forwarding %d receipts to %s", len(request.receipts), self.base_url)
        body = self._unwrap(self.client.post(self._url("/redeem"), json=request.model_dump()))
        return RedeemResponse.model_validate(body)

    def close(self) -> None:
        self.client.close()


__all__ = [
    "ExchangeTransport",
    "InProcessTransport",
    "HttpExchangeTransport",
]
