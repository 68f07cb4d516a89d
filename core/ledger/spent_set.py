"""
Module 07 - Double-Spend Ledger

The set of serials accepted in the current billing epoch. The only
operation that must be serialized is check-and-insert; it is atomic per
serial and concurrent inserts of the same serial admit exactly one.
"""
from __future__ import annotations

import logging
import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .bloom import BloomFilter

logger = logging.getLogger(__name__)

SERIAL_BYTES = 32


@dataclass(frozen=True)
class SpentRecord:
    serial: bytes
    tag: bytes
    first_seen: datetime


@dataclass(frozen=True)
class InsertResult:
    """inserted=False means the serial was already present; record is the original."""
    inserted: bool
    record: SpentRecord

    @property
    def duplicate(self) -> bool:
        return not self.inserted


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SpentSet(ABC):
    """Storage contract for spent serials."""

    @abstractmethod
    def contains(self, serial: bytes) -> bool:
        ...

    @abstractmethod
    def get(self, serial: bytes) -> Optional[SpentRecord]:
        ...

    @abstractmethod
    def insert_if_absent(self, serial: bytes, tag: bytes) -> InsertResult:
        """Atomically insert serial unless present."""

    @abstractmethod
    def reset_epoch(self) -> None:
        """Forget every serial. Called by the external epoch policy."""

    @abstractmethod
    def __len__(self) -> int:
        ...

    def __contains__(self, serial: bytes) -> bool:
        return self.contains(serial)

    def close(self) -> None:
        pass


class _Shard:
    def __init__(self, expected_items: int, false_positive_rate: float) -> None:
        self.lock = threading.Lock()
        self.bloom = BloomFilter(expected_items, false_positive_rate)
        self.records: dict[bytes, SpentRecord] = {}
        self.bloom_hits = 0
        self.false_positives = 0


class ShardedSpentSet(SpentSet):
    """
    In-memory spent set.

    Serials are spread over shards by their leading bytes; each shard has
    its own lock, Bloom filter and exact index, so inserts of different
    serials rarely contend.

    Usage:
        spent = ShardedSpentSet(shards=16, expected_items=1_000_000)
        result = spent.insert_if_absent(serial, tag)
        if result.duplicate: ...
    """

    def __init__(
        self,
        shards: int = 16,
        expected_items: int = 1_000_000,
        false_positive_rate: float = 1e-6,
    ) -> None:
        if shards < 1:
            raise ValueError(f"shards must be positive, got {shards}")
        self.num_shards = shards
        self.expected_items = expected_items
        self.false_positive_rate = false_positive_rate
        per_shard = max(1, math.ceil(expected_items / shards))
        self._shards = [_Shard(per_shard, false_positive_rate) for _ in range(shards)]

    def _shard(self, serial: bytes) -> _Shard:
        if len(serial) != SERIAL_BYTES:
            raise ValueError(f"serial must be {SERIAL_BYTES} bytes, got {len(serial)}")
        return self._shards[int.from_bytes(serial[:4], "big") % self.num_shards]

    def contains(self, serial: bytes) -> bool:
        shard = self._shard(serial)
        with shard.lock:
            if serial not in shard.bloom:
                return False
            return serial in shard.records

    def get(self, serial: bytes) -> Optional[SpentRecord]:
        shard = self._shard(serial)
        with shard.lock:
            return shard.records.get(serial)

    def insert_if_absent(self, serial: bytes, tag: bytes) -> InsertResult:
        shard = self._shard(serial)
        candidate = SpentRecord(serial=serial, tag=tag, first_seen=_now())
        with shard.lock:
            if serial in shard.bloom:
                shard.bloom_hits += 1
                existing = shard.records.get(serial)
                if existing is not None:
                    return InsertResult(inserted=False, record=existing)
                shard.false_positives += 1
            shard.bloom.add(serial)
            shard.records[serial] = candidate
        return InsertResult(inserted=True, record=candidate)

    def reset_epoch(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.bloom.clear()
                shard.records.clear()
                shard.bloom_hits = 0
                shard.false_positives = 0
        logger.info("Spent set reset for new epoch")

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.records)
        return total

    def stats(self) -> dict[str, int]:
        hits = fps = size = 0
        for shard in self._shards:
            with shard.lock:
                hits += shard.bloom_hits
                fps += shard.false_positives
                size += shard.bloom.size_bytes
        return {
            "shards": self.num_shards,
            "serials": len(self),
            "bloom_hits": hits,
            "bloom_false_positives": fps,
            "bloom_bytes": size,
        }


__all__ = [
    "SERIAL_BYTES",
    "SpentRecord",
    "InsertResult",
    "SpentSet",
    "ShardedSpentSet",
]
