"""
Module 09D - API Error Handling

Standardized error handling for the API.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models.responses import ErrorDetail, ErrorResponse
from core.schemas.errors import DivTokensException, ErrorCodes


class APIError(Exception):
    """Base API error with structured response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.retryable = retryable
        super().__init__(message)

    @classmethod
    def from_domain(cls, exc: DivTokensException) -> "APIError":
        return cls(
            code=exc.code,
            message=exc.message,
            status_code=STATUS_BY_CODE.get(exc.code, 400),
            details=exc.details,
            retryable=exc.retryable,
        )

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                details=self.details,
                retryable=self.retryable,
            ),
        )


STATUS_BY_CODE: dict[str, int] = {
    ErrorCodes.INSUFFICIENT_BALANCE: 402,
    ErrorCodes.UNKNOWN_ACCOUNT: 404,
    ErrorCodes.SIGNATURE_UNKNOWN_KEY: 404,
    ErrorCodes.DOUBLE_SPEND: 409,
    ErrorCodes.DERIVATION_DEPTH_EXCEEDED: 422,
}


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


async def domain_error_handler(request: Request, exc: DivTokensException) -> JSONResponse:
    """Handle divtokens exceptions raised by the Exchange."""
    return await api_error_handler(request, APIError.from_domain(exc))


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                details={"type": type(exc).__name__},
            ),
        ).model_dump(),
    )
