"""
Test fixtures package for divtokens tests.

This package provides factory functions for creating test objects:
- common.py: keys, tokens, receipts and wired-up parties

Usage:
    from fixtures.common import make_token, make_receipt

    def test_something():
        token = make_token(denomination=4)
        receipt = make_receipt(token, "01")
"""

from .common import (
    TEST_ACCOUNT,
    TEST_DENOMINATION,
    TEST_KEY_SIZE,
    TEST_REPETITIONS,
    Scenario,
    make_exchange,
    make_keypair,
    make_proofs,
    make_receipt,
    make_root,
    make_scenario,
    make_statement,
    make_token,
)

__all__ = [
    "TEST_ACCOUNT",
    "TEST_DENOMINATION",
    "TEST_KEY_SIZE",
    "TEST_REPETITIONS",
    "Scenario",
    "make_exchange",
    "make_keypair",
    "make_proofs",
    "make_receipt",
    "make_root",
    "make_scenario",
    "make_statement",
    "make_token",
]
