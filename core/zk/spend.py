"""
Module 05 - Spend Proofs

Binds the spend relation to a proving backend:

    public:  c_root, D, level l, serial, tag (value 2^(D-l) follows)
    private: root secret, l path bits, the secrets along the path

The proof shows Commit(root, D) = c_root, that walking derive_child along
the bits ends in a node with the given serial and tag, that there are
exactly l bits and that every bit is 0 or 1.
"""
from __future__ import annotations

import logging
from typing import Optional

from core.schemas.errors import (
    DerivationError,
    DerivationErrorReason,
    ProofError,
    ProofErrorReason,
)
from core.tokens.types import SpendStatement, SpendWitness
from core.tree.commitment import commit
from core.tree.derivation import derive, secret_to_int, serial_of, tag_of

from .backend import ProvingBackend
from .circuit import ArithmeticCircuit, spend_circuit
from .mpc import DEFAULT_REPETITIONS, MpcInTheHeadBackend

logger = logging.getLogger(__name__)


def expected_outputs(statement: SpendStatement) -> list[int]:
    """Public outputs of the spend circuit: c_root, serial, tag, then one zero per bit."""
    try:
        outputs = statement.public_outputs()
    except ValueError as e:
        raise ProofError(
            f"statement holds a non-canonical field element: {e}",
            reason=ProofErrorReason.INVALID,
        ) from e
    return outputs + [0] * statement.level


class SpendProofSystem:
    """
    Prove and verify spends of one node.

    Usage:
        system = SpendProofSystem(repetitions=219)
        proof = system.prove(witness, statement)
        system.verify(proof, statement)  # True
    """

    def __init__(self, backend: Optional[ProvingBackend] = None, repetitions: int = DEFAULT_REPETITIONS) -> None:
        self.backend = backend or MpcInTheHeadBackend(repetitions=repetitions)

    @staticmethod
    def circuit_for(statement: SpendStatement) -> ArithmeticCircuit:
        return spend_circuit(statement.level, statement.denomination)

    def prove(self, witness: SpendWitness, statement: SpendStatement) -> bytes:
        """
        Raises:
            DerivationError: LevelMismatch if the witness path length differs
                from the statement level or the witness does not open the
                statement's commitment, serial or tag
        """
        if witness.level != statement.level:
            raise DerivationError(
                f"witness path has {witness.level} bits, statement level is {statement.level}",
                reason=DerivationErrorReason.LEVEL_MISMATCH,
                details={"witness_level": witness.level, "statement_level": statement.level},
            )
        if commit(witness.root, statement.denomination).value != statement.c_root:
            raise DerivationError(
                "witness root does not open the commitment",
                reason=DerivationErrorReason.LEVEL_MISMATCH,
            )
        leaf = derive(witness.root, witness.path, statement.denomination)
        if serial_of(leaf) != statement.serial or tag_of(leaf) != statement.tag:
            raise DerivationError(
                "witness node does not match the statement serial/tag",
                reason=DerivationErrorReason.LEVEL_MISMATCH,
            )
        inputs = [secret_to_int(witness.root)] + witness.bits
        return self.backend.prove(self.circuit_for(statement), inputs, statement.to_bytes())

    def check(self, proof: bytes, statement: SpendStatement) -> None:
        """
        Raises:
            ProofError: Malformed if the proof cannot be decoded, Invalid if
                it does not prove the statement
        """
        self.backend.check(
            self.circuit_for(statement),
            proof,
            expected_outputs(statement),
            statement.to_bytes(),
        )

    def verify(self, proof: bytes, statement: SpendStatement) -> bool:
        try:
            self.check(proof, statement)
        except ProofError as e:
            logger.debug("Spend proof rejected: %s", e.message)
            return False
        return True


__all__ = [
    "expected_outputs",
    "SpendProofSystem",
]
