"""
Module 04 - Holder Wallet
Tracks which parts of one token tree are still spendable.

A node may be spent only if no ancestor or descendant of it was already
spent or burned. The wallet enforces that discipline on the holder side;
the Exchange's spent set catches anything that slips past it.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional

from core.schemas.errors import CapacityError
from core.tokens.types import Token, value_at

from .derivation import KeyDerivationTree, Node, validate_path

logger = logging.getLogger(__name__)


class NodeMark(str, Enum):
    SPENT = "spent"
    BURNED = "burned"


def overlaps(a: str, b: str) -> bool:
    """True if one path is an ancestor of (or equal to) the other."""
    return a.startswith(b) or b.startswith(a)


class TokenWallet:
    """
    Spend bookkeeping for a single token.

    Usage:
        wallet = TokenWallet(token)
        for path in wallet.plan(48):
            node = wallet.reserve(path)
            ...
    """

    def __init__(self, token: Token, tree: Optional[KeyDerivationTree] = None) -> None:
        self.token = token
        self.tree = tree or KeyDerivationTree(token.denomination)
        self._marks: dict[str, NodeMark] = {}
        self._lock = threading.Lock()

    @property
    def denomination(self) -> int:
        return self.token.denomination

    @property
    def marks(self) -> dict[str, NodeMark]:
        with self._lock:
            return dict(self._marks)

    def _conflict(self, path: str, extra: tuple[str, ...] = ()) -> Optional[str]:
        for marked in list(self._marks) + list(extra):
            if overlaps(path, marked):
                return marked
        return None

    def is_available(self, path: str) -> bool:
        validate_path(path, self.denomination)
        with self._lock:
            return self._conflict(path) is None

    def reserve(self, path: str) -> Node:
        """
        Mark the node at path as spent and return it.

        Raises:
            CapacityError: If the path is deeper than the token or overlaps
                a node that was already spent or burned
        """
        validate_path(path, self.denomination)
        with self._lock:
            conflict = self._conflict(path)
            if conflict is not None:
                raise CapacityError(
                    f"node {path or '<root>'} overlaps used node {conflict or '<root>'}",
                    details={"path": path, "conflict": conflict},
                )
            self._marks[path] = NodeMark.SPENT
        logger.debug("Reserved node %s (value %d)", path or "<root>", value_at(self.denomination, len(path)))
        return self.tree.node(self.token.root, path)

    def burn(self, path: str) -> None:
        """Mark a disclosed subtree as unusable. Idempotent."""
        validate_path(path, self.denomination)
        with self._lock:
            self._marks.setdefault(path, NodeMark.BURNED)
        logger.info("Burned node %s", path or "<root>")

    @property
    def remaining_value(self) -> int:
        with self._lock:
            marked = list(self._marks)
        covering = [
            p for p in marked
            if not any(q != p and p.startswith(q) for q in marked)
        ]
        used = sum(value_at(self.denomination, len(p)) for p in covering)
        return self.token.value - used

    def _find_free(self, level: int, taken: tuple[str, ...]) -> Optional[str]:
        blocked = list(self._marks) + list(taken)

        def visit(path: str) -> Optional[str]:
            if any(path.startswith(q) for q in blocked):
                return None
            if len(path) == level:
                if any(q.startswith(path) for q in blocked):
                    return None
                return path
            for bit in "01":
                found = visit(path + bit)
                if found is not None:
                    return found
            return None

        return visit("")

    def plan(self, value: int) -> list[str]:
        """
        Choose free nodes whose values sum to exactly `value`.

        Follows the binary representation of value, largest node first.
        When no free node exists at a level the need is split into two
        needs one level down.

        Raises:
            CapacityError: If value exceeds the remaining value
        """
        if value < 0:
            raise ValueError(f"value must be non-negative, got {value}")
        remaining = self.remaining_value
        if value > remaining:
            raise CapacityError(
                f"requested value {value} exceeds remaining {remaining}",
                details={"requested": value, "remaining": remaining},
            )
        levels = [
            self.denomination - bit
            for bit in range(self.denomination, -1, -1)
            if value >> bit & 1
        ]
        chosen: list[str] = []
        with self._lock:
            while levels:
                level = levels.pop(0)
                path = self._find_free(level, tuple(chosen))
                if path is not None:
                    chosen.append(path)
                    continue
                if level >= self.denomination:
                    raise CapacityError(
                        f"no free node to cover value {value}",
                        details={"requested": value, "remaining": remaining},
                    )
                levels[0:0] = [level + 1, level + 1]
        return sorted(chosen)


__all__ = [
    "NodeMark",
    "overlaps",
    "TokenWallet",
]
