"""
Module 09D - FastAPI Application

Main application setup and configuration.

Usage:
    uvicorn api.app:app --reload

    # Or run directly
    python -m api.app
"""

import logging
import os

from fastapi import FastAPI

from api.errors import APIError, api_error_handler, domain_error_handler, generic_error_handler
from api.routes import health, issue, keys, redeem
from core.schemas.errors import DivTokensException


def _resolve_log_level() -> int:
    """Resolve log level from DIVTOKENS_LOG_LEVEL, defaulting to INFO."""
    raw = os.getenv("DIVTOKENS_LOG_LEVEL")
    return getattr(logging, (raw or "INFO").upper(), logging.INFO)


logging.basicConfig(
    level=_resolve_log_level(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="divtokens Exchange API",
        description="""
HTTP API for the divtokens Exchange.

## Endpoints

- **GET /health** - Health check
- **GET /keys** - Issuer public keys, by key id
- **POST /issue** - Blind-sign a token commitment, debiting a prepaid account
- **POST /redeem** - Redeem a batch of spend receipts (one outcome per receipt)
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Register exception handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(DivTokensException, domain_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(keys.router)
    app.include_router(issue.router)
    app.include_router(redeem.router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
