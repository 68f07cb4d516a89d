"""
Runtime Configuration Module

Provides configuration loading and management for divtokens.
"""

from .runtime import (
    HttpConfig,
    IssuerConfig,
    LedgerConfig,
    ProofConfig,
    RuntimeConfig,
    TokenConfig,
)

__all__ = [
    "HttpConfig",
    "IssuerConfig",
    "LedgerConfig",
    "ProofConfig",
    "RuntimeConfig",
    "TokenConfig",
]
