"""
Zero-knowledge spend proofs: arithmetic circuits, the proving backend
interface and the MPC-in-the-head backend.
"""

from .backend import ProvingBackend
from .circuit import ArithmeticCircuit, CircuitBuilder, Gate, GateKind, compress_gadget, spend_circuit
from .mpc import DEFAULT_REPETITIONS, MpcInTheHeadBackend, ProofTranscript, RepetitionProof, challenge_trits
from .spend import SpendProofSystem, expected_outputs

__all__ = [
    "ProvingBackend",
    "ArithmeticCircuit",
    "CircuitBuilder",
    "Gate",
    "GateKind",
    "compress_gadget",
    "spend_circuit",
    "DEFAULT_REPETITIONS",
    "MpcInTheHeadBackend",
    "ProofTranscript",
    "RepetitionProof",
    "challenge_trits",
    "SpendProofSystem",
    "expected_outputs",
]
