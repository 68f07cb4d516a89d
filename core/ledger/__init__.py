"""
Double-spend ledger: the per-epoch set of accepted serials.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .bloom import BloomFilter, optimal_parameters
from .spent_set import InsertResult, ShardedSpentSet, SpentRecord, SpentSet
from .sqlite_store import SqliteSpentSet

if TYPE_CHECKING:
    from core.config.runtime import LedgerConfig


def create_spent_set(config: "LedgerConfig") -> SpentSet:
    """Build the spent set named by config.backend ("memory" or "sqlite")."""
    if config.backend == "memory":
        return ShardedSpentSet(
            shards=config.shards,
            expected_items=config.expected_items,
            false_positive_rate=config.false_positive_rate,
        )
    if config.backend == "sqlite":
        return SqliteSpentSet(config.sqlite_path)
    raise ValueError(f"Unknown ledger backend: {config.backend}")


__all__ = [
    "BloomFilter",
    "optimal_parameters",
    "InsertResult",
    "ShardedSpentSet",
    "SpentRecord",
    "SpentSet",
    "SqliteSpentSet",
    "create_spent_set",
]
