"""
Module 09C - divtokens CLI

Command-line interface for divtokens.

Usage:
    python -m divtokens_cli keygen --out issuer.pem
    python -m divtokens_cli demo [--json]
    python -m divtokens_cli inspect receipt.b64 --key issuer.pem
"""

__version__ = "0.1.0"
