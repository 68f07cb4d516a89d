"""
Module 07 - Bloom Filter

Pre-filter in front of the exact spent-serial index. A negative answer is
authoritative; a positive answer must be confirmed against the exact index.
"""
from __future__ import annotations

import hashlib
import math


def optimal_parameters(expected_items: int, false_positive_rate: float) -> tuple[int, int]:
    """
    Bit count m and hash count k for n items at false-positive rate p.

        m = -n ln p / (ln 2)^2
        k = (m / n) ln 2
    """
    if expected_items < 1:
        raise ValueError(f"expected_items must be positive, got {expected_items}")
    if not 0.0 < false_positive_rate < 1.0:
        raise ValueError(f"false_positive_rate must be in (0, 1), got {false_positive_rate}")
    m = math.ceil(-expected_items * math.log(false_positive_rate) / (math.log(2) ** 2))
    k = max(1, round(m / expected_items * math.log(2)))
    return m, k


class BloomFilter:
    """
    Usage:
        bloom = BloomFilter(expected_items=100_000, false_positive_rate=1e-6)
        bloom.add(serial)
        serial in bloom  # True
    """

    def __init__(self, expected_items: int, false_positive_rate: float) -> None:
        self.num_bits, self.num_hashes = optimal_parameters(expected_items, false_positive_rate)
        self._bits = bytearray((self.num_bits + 7) // 8)
        self.count = 0

    def _indexes(self, item: bytes) -> list[int]:
        # Double hashing: h1 + i * h2 (Kirsch-Mitzenmacher)
        digest = hashlib.sha256(item).digest()
        h1 = int.from_bytes(digest[:8], "big")
        h2 = int.from_bytes(digest[8:16], "big") | 1
        return [(h1 + i * h2) % self.num_bits for i in range(self.num_hashes)]

    def add(self, item: bytes) -> None:
        for idx in self._indexes(item):
            self._bits[idx >> 3] |= 1 << (idx & 7)
        self.count += 1

    def __contains__(self, item: bytes) -> bool:
        return all(self._bits[idx >> 3] & (1 << (idx & 7)) for idx in self._indexes(item))

    def clear(self) -> None:
        self._bits = bytearray(len(self._bits))
        self.count = 0

    @property
    def size_bytes(self) -> int:
        return len(self._bits)


__all__ = [
    "optimal_parameters",
    "BloomFilter",
]
