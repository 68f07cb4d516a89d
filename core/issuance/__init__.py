"""
Blind issuance of tokens against prepaid balances.
"""

from .accounts import AccountStore, InMemoryAccountStore
from .client import PendingIssuance, finalize_issuance, prepare_issuance
from .keyring import IssuerKeyring
from .server import TokenIssuer

__all__ = [
    "AccountStore",
    "InMemoryAccountStore",
    "PendingIssuance",
    "finalize_issuance",
    "prepare_issuance",
    "IssuerKeyring",
    "TokenIssuer",
]
