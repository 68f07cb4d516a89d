"""
Module 08 - Spend Lifecycle

    UNSPENT -> PROOF_GENERATED -> SUBMITTED -> ACCEPTED -> SETTLED
                     |                |
                     +----------------+--> REJECTED

PROOF_GENERATED -> REJECTED covers receipts a Publisher refuses locally.
Any other move is a programming error.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from core.schemas.errors import StateTransitionException
from core.schemas.messages import RedemptionResult
from core.tokens.types import SpendReceipt


class SpendState(str, Enum):
    UNSPENT = "unspent"
    PROOF_GENERATED = "proof_generated"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SETTLED = "settled"


TRANSITIONS: dict[SpendState, frozenset[SpendState]] = {
    SpendState.UNSPENT: frozenset({SpendState.PROOF_GENERATED}),
    SpendState.PROOF_GENERATED: frozenset({SpendState.SUBMITTED, SpendState.REJECTED}),
    SpendState.SUBMITTED: frozenset({SpendState.ACCEPTED, SpendState.REJECTED}),
    SpendState.ACCEPTED: frozenset({SpendState.SETTLED}),
    SpendState.REJECTED: frozenset(),
    SpendState.SETTLED: frozenset(),
}


@dataclass
class SpendAttempt:
    """One node of one token on its way from the Holder to settlement."""
    path: str
    state: SpendState = SpendState.UNSPENT
    receipt: Optional[SpendReceipt] = None
    result: Optional[RedemptionResult] = None
    history: list[tuple[SpendState, datetime]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @classmethod
    def from_receipt(cls, receipt: SpendReceipt) -> "SpendAttempt":
        """Attempt for a receipt built elsewhere (the Publisher never sees the path)."""
        attempt = cls(path="")
        attempt.attach_receipt(receipt)
        return attempt

    def transition(self, target: SpendState) -> None:
        with self._lock:
            if target not in TRANSITIONS[self.state]:
                raise StateTransitionException(self.state.value, target.value)
            self.history.append((self.state, datetime.now(timezone.utc)))
            self.state = target

    def attach_receipt(self, receipt: SpendReceipt) -> None:
        self.transition(SpendState.PROOF_GENERATED)
        self.receipt = receipt

    def resolve(self, result: RedemptionResult) -> None:
        """Apply the Exchange's answer to a submitted attempt."""
        self.transition(SpendState.ACCEPTED if result.accepted else SpendState.REJECTED)
        self.result = result
        if result.accepted and result.settlement is not None:
            self.transition(SpendState.SETTLED)

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.state]

    @property
    def value(self) -> int:
        return self.receipt.value if self.receipt else 0


__all__ = [
    "SpendState",
    "TRANSITIONS",
    "SpendAttempt",
]
