"""
Module 09D - API Request Models

Request bodies are the transport messages shared with HttpExchangeTransport.
"""

from core.schemas.messages import IssueRequest, RedeemRequest

__all__ = [
    "IssueRequest",
    "RedeemRequest",
]
