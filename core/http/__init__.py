"""
HTTP Client Module

requests-based client used by the Exchange HTTP transport.
"""

from .client import HttpClient, HttpError, HttpResponse

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
]
