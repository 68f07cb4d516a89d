"""
Module 05 - Proving Backend Interface

A backend proves knowledge of circuit inputs that produce given public
outputs. The spend layer only talks to this interface so the proof system
can be swapped without touching issuance or redemption.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Sequence

from core.schemas.errors import ProofError

from .circuit import ArithmeticCircuit

logger = logging.getLogger(__name__)


class ProvingBackend(ABC):
    """Abstract proof system over ArithmeticCircuit."""

    name: str = "abstract"

    @abstractmethod
    def prove(self, circuit: ArithmeticCircuit, inputs: Sequence[int], context: bytes) -> bytes:
        """
        Produce a proof that `inputs` drive `circuit` to its outputs.

        Args:
            circuit: The relation
            inputs: Private witness values
            context: Public bytes the proof is bound to (the statement)
        """

    @abstractmethod
    def check(
        self,
        circuit: ArithmeticCircuit,
        proof: bytes,
        public_outputs: Sequence[int],
        context: bytes,
    ) -> None:
        """
        Verify a proof.

        Raises:
            ProofError: Malformed if the proof cannot be decoded or has the
                wrong shape, Invalid if it does not verify
        """

    def verify(
        self,
        circuit: ArithmeticCircuit,
        proof: bytes,
        public_outputs: Sequence[int],
        context: bytes,
    ) -> bool:
        try:
            self.check(circuit, proof, public_outputs, context)
        except ProofError as e:
            logger.debug("Proof rejected by %s: %s", self.name, e.message)
            return False
        return True


__all__ = ["ProvingBackend"]
