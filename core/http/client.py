"""
HTTP Client

JSON-over-HTTP client the Exchange transport runs on. Wraps a requests
session so tests can hand in any object with the same request() shape.
"""

from __future__ import annotations

import json as jsonlib
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    status_code: int
    content: bytes
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """
        Raises:
            ValueError: If the body is not JSON
        """
        return jsonlib.loads(self.content)


class HttpError(Exception):
    """Transport failure, or a non-2xx answer that carried no error envelope."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[HttpResponse] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class HttpClient:
    """
    Usage:
        client = HttpClient(timeout=10.0)
        response = client.get("http://exchange:8000/keys")
        keys = response.json()["keys"]
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        default_headers: Optional[dict[str, str]] = None,
        proxy: Optional[str] = None,
        session: Any = None,
    ) -> None:
        """
        Args:
            timeout: Per-request timeout in seconds
            default_headers: Sent with every request
            proxy: Proxy URL applied to http and https
            session: Object with a requests-compatible request(); built lazily when omitted
        """
        self.timeout = timeout
        self.default_headers = default_headers or {}
        self.proxy = proxy
        self._session = session

    @property
    def session(self) -> Any:
        if self._session is None:
            import requests

            session = requests.Session()
            if self.proxy:
                session.proxies = {"http": self.proxy, "https": self.proxy}
            self._session = session
        return self._session

    def request(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        """
        Send one request.

        Raises:
            HttpError: If the connection fails or times out. Non-2xx answers
                are returned, not raised.
        """
        import requests

        merged = {**self.default_headers, **(headers or {})}
        try:
            raw = self.session.request(
                method=method,
                url=url,
                headers=merged,
                json=json,
                timeout=timeout or self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise HttpError(str(e)) from e

        response = HttpResponse(
            status_code=raw.status_code,
            content=raw.content,
            headers=dict(raw.headers),
            url=str(raw.url),
            elapsed_ms=raw.elapsed.total_seconds() * 1000,
        )
        logger.debug("%s %s -> %d (%.1f ms)", method, url, response.status_code, response.elapsed_ms)
        return response

    def get(self, url: str, **kwargs: Any) -> HttpResponse:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, json: Optional[Any] = None, **kwargs: Any) -> HttpResponse:
        return self.request("POST", url, json=json, **kwargs)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()
