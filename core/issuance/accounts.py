"""
Module 06 - Prepaid Accounts

Balances the Exchange debits when it signs a token. The account store is a
collaborator: the in-memory implementation here backs tests, the CLI demo
and the reference API.
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator

from core.schemas.errors import InsufficientBalanceError, UnknownAccountError


class AccountStore(ABC):
    """Balance storage with per-account mutual exclusion."""

    @abstractmethod
    def lock(self, account_id: str) -> threading.Lock:
        """Lock serializing check-and-debit for one account."""

    @abstractmethod
    def balance(self, account_id: str) -> int:
        """Current balance. Raises UnknownAccountError."""

    @abstractmethod
    def _set_balance(self, account_id: str, balance: int) -> None:
        ...

    @contextmanager
    def debit_guard(self, account_id: str, amount: int) -> Iterator[None]:
        """
        Hold the account lock, check the balance, run the body, then debit.

        If the body raises, nothing is debited.

        Raises:
            InsufficientBalanceError: If balance < amount
        """
        with self.lock(account_id):
            available = self.balance(account_id)
            if available < amount:
                raise InsufficientBalanceError(account_id, amount, available)
            yield
            self._set_balance(account_id, available - amount)

    def credit(self, account_id: str, amount: int) -> int:
        if amount < 0:
            raise ValueError(f"credit amount must be non-negative, got {amount}")
        with self.lock(account_id):
            try:
                current = self.balance(account_id)
            except UnknownAccountError:
                current = 0
            self._set_balance(account_id, current + amount)
            return current + amount


class InMemoryAccountStore(AccountStore):
    """
    Usage:
        accounts = InMemoryAccountStore({"acme": 1024})
        accounts.balance("acme")  # 1024
    """

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = dict(balances or {})
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._registry_lock = threading.Lock()

    def lock(self, account_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks[account_id]

    def balance(self, account_id: str) -> int:
        try:
            return self._balances[account_id]
        except KeyError:
            raise UnknownAccountError(account_id) from None

    def _set_balance(self, account_id: str, balance: int) -> None:
        self._balances[account_id] = balance

    def accounts(self) -> dict[str, int]:
        return dict(self._balances)


__all__ = [
    "AccountStore",
    "InMemoryAccountStore",
]
