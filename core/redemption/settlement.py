"""
Module 08 - Settlement Sink

Billing collaborator that receives one SettlementRecord per accepted
serial. Pricing and advertiser billing policy live behind this interface.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict

from core.schemas.messages import SettlementRecord

logger = logging.getLogger(__name__)


class SettlementSink(ABC):
    @abstractmethod
    def record(self, settlement: SettlementRecord) -> None:
        """Persist one settlement. Must not raise for a well-formed record."""


class InMemoryBillingLedger(SettlementSink):
    """
    Usage:
        billing = InMemoryBillingLedger()
        billing.total_value  # 0
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[SettlementRecord] = []
        self._by_publisher: defaultdict[str, int] = defaultdict(int)
        self._by_advertiser: defaultdict[str, int] = defaultdict(int)

    def record(self, settlement: SettlementRecord) -> None:
        with self._lock:
            self._records.append(settlement)
            self._by_publisher[settlement.publisher_id] += settlement.value
            self._by_advertiser[settlement.advertiser_id] += settlement.value
        logger.debug(
            "Settled %d units: %s -> %s",
            settlement.value, settlement.advertiser_id, settlement.publisher_id,
        )

    @property
    def records(self) -> list[SettlementRecord]:
        with self._lock:
            return list(self._records)

    @property
    def total_value(self) -> int:
        with self._lock:
            return sum(r.value for r in self._records)

    def publisher_total(self, publisher_id: str) -> int:
        with self._lock:
            return self._by_publisher.get(publisher_id, 0)

    def advertiser_total(self, advertiser_id: str) -> int:
        with self._lock:
            return self._by_advertiser.get(advertiser_id, 0)


__all__ = [
    "SettlementSink",
    "InMemoryBillingLedger",
]
