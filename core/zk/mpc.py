"""
Module 05 - MPC-in-the-Head Backend
Zero-knowledge proofs for arithmetic circuits from a simulated 3-party
computation (ZKB++ style) made non-interactive with Fiat-Shamir.

Owner: Protocol/Crypto Engineer
Module ID: M05

Per repetition the prover:
1. Picks three seeds; each party's random tape is SHAKE-256 over its seed.
2. Shares the inputs additively. Parties 0 and 1 read their shares from
   their tapes; party 2's share is the correction term `aux`.
3. Runs the circuit on shares. Linear gates are local; multiplication
   gate j gives party i
       z_i = x_i*y_i + x_{i+1}*y_i + x_i*y_{i+1} + R_i[j] - R_{i+1}[j]
4. Commits to each party's view (seed, aux for party 2, MUL outputs).

The challenge hashes the statement, all commitments and all output shares
into one trit e per repetition. The proof opens parties e and e+1: both
seeds, aux if party 2 is opened, party e+1's MUL outputs and the
commitment of the hidden party. Each repetition has soundness error 2/3.

Proof layout:
    magic "DTZK" | ver u8 | reps u16 | inputs u16 | muls u32 | salt 32 | challenge 32
    per repetition: seed 32 | seed 32 | commitment 32 | aux flag u8 | [aux] | msgs
"""
from __future__ import annotations

import logging
import secrets
import struct
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from core.crypto.field import FIELD_BYTES, P, elements_from_stream, to_bytes as field_to_bytes
from core.crypto.hashing import domain_hash, expand
from core.schemas.errors import ProofError, ProofErrorReason, WireFormatError
from core.tokens.wire import WireReader, WireWriter

from .backend import ProvingBackend
from .circuit import ArithmeticCircuit, GateKind

logger = logging.getLogger(__name__)

NUM_PARTIES = 3
PROOF_MAGIC = b"DTZK"
PROOF_VERSION = 1
SEED_BYTES = 32
SALT_BYTES = 32
DIGEST_BYTES = 32
# (2/3)^219 < 2^-128
DEFAULT_REPETITIONS = 219

_TAPE_LABEL = "divtokens/zk/tape"
_VIEW_LABEL = "divtokens/zk/view"
_CHALLENGE_LABEL = "divtokens/zk/challenge"
_TRIT_LABEL = "divtokens/zk/trits"


# =============================================================================
# Transcript encoding
# =============================================================================

@dataclass(frozen=True)
class RepetitionProof:
    seeds: tuple[bytes, bytes]
    commitment: bytes
    aux: Optional[tuple[int, ...]]
    msgs: tuple[int, ...]


@dataclass(frozen=True)
class ProofTranscript:
    num_inputs: int
    num_muls: int
    salt: bytes
    challenge: bytes
    repetitions: tuple[RepetitionProof, ...]

    def to_bytes(self) -> bytes:
        w = (
            WireWriter()
            .raw(PROOF_MAGIC)
            .u8(PROOF_VERSION)
            .u16(len(self.repetitions))
            .u16(self.num_inputs)
            .u32(self.num_muls)
            .fixed(self.salt, SALT_BYTES)
            .fixed(self.challenge, DIGEST_BYTES)
        )
        for rep in self.repetitions:
            w.fixed(rep.seeds[0], SEED_BYTES).fixed(rep.seeds[1], SEED_BYTES)
            w.fixed(rep.commitment, DIGEST_BYTES)
            if rep.aux is None:
                w.u8(0)
            else:
                w.u8(1).raw(_encode_elements(rep.aux))
            w.raw(_encode_elements(rep.msgs))
        return w.getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> "ProofTranscript":
        reader = WireReader(data, "Proof")
        if reader.fixed(len(PROOF_MAGIC)) != PROOF_MAGIC:
            raise WireFormatError("bad proof magic", structure="Proof")
        reader.version(PROOF_VERSION)
        count = reader.u16()
        num_inputs = reader.u16()
        num_muls = reader.u32()
        salt = reader.fixed(SALT_BYTES)
        challenge = reader.fixed(DIGEST_BYTES)
        reps = []
        for _ in range(count):
            seeds = (reader.fixed(SEED_BYTES), reader.fixed(SEED_BYTES))
            commitment = reader.fixed(DIGEST_BYTES)
            flag = reader.u8()
            if flag not in (0, 1):
                raise WireFormatError(f"bad aux flag {flag}", structure="Proof")
            aux = _read_elements(reader, num_inputs) if flag else None
            msgs = _read_elements(reader, num_muls)
            reps.append(RepetitionProof(seeds=seeds, commitment=commitment, aux=aux, msgs=msgs))
        reader.finish()
        return cls(
            num_inputs=num_inputs,
            num_muls=num_muls,
            salt=salt,
            challenge=challenge,
            repetitions=tuple(reps),
        )


def _encode_elements(values: Sequence[int]) -> bytes:
    return b"".join(field_to_bytes(v) for v in values)


def _read_elements(reader: WireReader, count: int) -> tuple[int, ...]:
    raw = reader.fixed(count * FIELD_BYTES)
    values = tuple(
        int.from_bytes(raw[i * FIELD_BYTES:(i + 1) * FIELD_BYTES], "big")
        for i in range(count)
    )
    if any(v >= P for v in values):
        raise WireFormatError("non-canonical field element in proof", structure="Proof")
    return values


# =============================================================================
# Shared-circuit evaluation
# =============================================================================

def _tape(salt: bytes, rep: int, party: int, seed: bytes, count: int) -> list[int]:
    return elements_from_stream(_TAPE_LABEL, count, salt, struct.pack(">IB", rep, party), seed)


def _evaluate_shares(
    circuit: ArithmeticCircuit,
    parties: Sequence[int],
    input_shares: dict[int, Sequence[int]],
    randomness: dict[int, Sequence[int]],
    given_msgs: dict[int, Sequence[int]],
) -> tuple[dict[int, list[int]], dict[int, list[int]]]:
    """
    Run the circuit on additive shares for the listed parties.

    A party in given_msgs takes its MUL outputs from there instead of
    computing them; every other party needs its own and its successor's
    randomness and wires.
    """
    n = circuit.num_inputs
    w = {p: [0] * circuit.num_wires for p in parties}
    for p in parties:
        w[p][:n] = input_shares[p]
    msgs: dict[int, list[int]] = {p: [] for p in parties}
    j = 0
    for g in circuit.gates:
        kind = g.kind
        if kind is GateKind.ADD:
            for p in parties:
                wp = w[p]
                wp[g.out] = (wp[g.a] + wp[g.b]) % P
        elif kind is GateKind.ADDC:
            for p in parties:
                wp = w[p]
                wp[g.out] = (wp[g.a] + g.const) % P if p == 0 else wp[g.a]
        elif kind is GateKind.MULC:
            for p in parties:
                wp = w[p]
                wp[g.out] = (wp[g.a] * g.const) % P
        else:
            for p in parties:
                if p in given_msgs:
                    z = given_msgs[p][j]
                else:
                    q = (p + 1) % NUM_PARTIES
                    wp, wq = w[p], w[q]
                    xa, xb = wp[g.a], wp[g.b]
                    z = (
                        xa * xb + wq[g.a] * xb + xa * wq[g.b]
                        + randomness[p][j] - randomness[q][j]
                    ) % P
                w[p][g.out] = z
                msgs[p].append(z)
            j += 1
    return w, msgs


def _view_commitment(
    salt: bytes,
    rep: int,
    party: int,
    seed: bytes,
    aux: Optional[Sequence[int]],
    msgs: Sequence[int],
) -> bytes:
    return domain_hash(
        _VIEW_LABEL,
        salt,
        struct.pack(">IB", rep, party),
        seed,
        _encode_elements(aux) if aux is not None else b"",
        _encode_elements(msgs),
    )


def _challenge(
    context: bytes,
    circuit: ArithmeticCircuit,
    salt: bytes,
    commitments: Sequence[Sequence[bytes]],
    output_shares: Sequence[Sequence[Sequence[int]]],
) -> bytes:
    parts = [context, circuit.name.encode("ascii"), salt]
    for commits, ys in zip(commitments, output_shares):
        parts.extend(commits)
        parts.extend(_encode_elements(y) for y in ys)
    return domain_hash(_CHALLENGE_LABEL, *parts)


def challenge_trits(challenge: bytes, count: int) -> list[int]:
    """Map a challenge digest to `count` values in {0, 1, 2} by rejection sampling 2-bit chunks."""
    trits: list[int] = []
    counter = 0
    while len(trits) < count:
        block = expand(_TRIT_LABEL, 64, challenge, struct.pack(">I", counter))
        counter += 1
        for byte in block:
            for shift in (6, 4, 2, 0):
                t = (byte >> shift) & 3
                if t == 3:
                    continue
                trits.append(t)
                if len(trits) == count:
                    return trits
    return trits


# =============================================================================
# Backend
# =============================================================================

class MpcInTheHeadBackend(ProvingBackend):
    """
    ZKB++-style proof system.

    Usage:
        backend = MpcInTheHeadBackend(repetitions=219)
        proof = backend.prove(circuit, witness, context)
        backend.check(circuit, proof, public_outputs, context)
    """

    name = "mpc-in-the-head"

    def __init__(self, repetitions: int = DEFAULT_REPETITIONS) -> None:
        if not 1 <= repetitions <= 0xFFFF:
            raise ValueError(f"repetitions must be in [1, 65535], got {repetitions}")
        self.repetitions = repetitions

    def prove(self, circuit: ArithmeticCircuit, inputs: Sequence[int], context: bytes) -> bytes:
        started = time.perf_counter()
        inputs = [x % P for x in inputs]
        circuit.evaluate(inputs)
        n, muls = circuit.num_inputs, circuit.num_muls
        salt = secrets.token_bytes(SALT_BYTES)

        runs = []
        all_commits = []
        all_ys = []
        for r in range(self.repetitions):
            seeds = [secrets.token_bytes(SEED_BYTES) for _ in range(NUM_PARTIES)]
            tapes = [
                _tape(salt, r, p, seeds[p], (n if p < 2 else 0) + muls)
                for p in range(NUM_PARTIES)
            ]
            aux = [(x - a - b) % P for x, a, b in zip(inputs, tapes[0][:n], tapes[1][:n])]
            shares = {0: tapes[0][:n], 1: tapes[1][:n], 2: aux}
            rand = {0: tapes[0][n:], 1: tapes[1][n:], 2: tapes[2]}
            w, msgs = _evaluate_shares(circuit, (0, 1, 2), shares, rand, {})
            ys = [[w[p][o] for o in circuit.outputs] for p in range(NUM_PARTIES)]
            commits = [
                _view_commitment(salt, r, p, seeds[p], aux if p == 2 else None, msgs[p])
                for p in range(NUM_PARTIES)
            ]
            runs.append((seeds, aux, msgs, commits))
            all_commits.append(commits)
            all_ys.append(ys)

        challenge = _challenge(context, circuit, salt, all_commits, all_ys)
        reps = []
        for (seeds, aux, msgs, commits), e in zip(runs, challenge_trits(challenge, self.repetitions)):
            first, second, hidden = e, (e + 1) % NUM_PARTIES, (e + 2) % NUM_PARTIES
            reps.append(
                RepetitionProof(
                    seeds=(seeds[first], seeds[second]),
                    commitment=commits[hidden],
                    aux=tuple(aux) if hidden != 2 else None,
                    msgs=tuple(msgs[second]),
                )
            )
        transcript = ProofTranscript(
            num_inputs=n,
            num_muls=muls,
            salt=salt,
            challenge=challenge,
            repetitions=tuple(reps),
        )
        logger.debug(
            "Proved %s (%d muls x %d reps) in %.1f ms",
            circuit.name, muls, self.repetitions, (time.perf_counter() - started) * 1000,
        )
        return transcript.to_bytes()

    def check(
        self,
        circuit: ArithmeticCircuit,
        proof: bytes,
        public_outputs: Sequence[int],
        context: bytes,
    ) -> None:
        started = time.perf_counter()
        transcript = ProofTranscript.from_bytes(proof)
        if len(transcript.repetitions) != self.repetitions:
            raise ProofError(
                f"proof has {len(transcript.repetitions)} repetitions, expected {self.repetitions}",
                reason=ProofErrorReason.MALFORMED,
            )
        if transcript.num_inputs != circuit.num_inputs or transcript.num_muls != circuit.num_muls:
            raise ProofError(
                f"proof shape does not match circuit {circuit.name}",
                reason=ProofErrorReason.INVALID,
                details={
                    "inputs": transcript.num_inputs,
                    "muls": transcript.num_muls,
                },
            )
        if len(public_outputs) != len(circuit.outputs):
            raise ProofError(
                f"circuit {circuit.name} has {len(circuit.outputs)} outputs, got {len(public_outputs)}",
                reason=ProofErrorReason.INVALID,
            )

        n, muls, salt = circuit.num_inputs, circuit.num_muls, transcript.salt
        trits = challenge_trits(transcript.challenge, self.repetitions)
        all_commits = []
        all_ys = []
        for r, (rep, e) in enumerate(zip(transcript.repetitions, trits)):
            first, second, hidden = e, (e + 1) % NUM_PARTIES, (e + 2) % NUM_PARTIES
            opened = (first, second)
            if (rep.aux is not None) != (2 in opened):
                raise ProofError(
                    f"repetition {r}: aux presence does not match challenge",
                    reason=ProofErrorReason.INVALID,
                )
            shares = {}
            rand = {}
            for p, seed in zip(opened, rep.seeds):
                tape = _tape(salt, r, p, seed, (n if p < 2 else 0) + muls)
                if p < 2:
                    shares[p], rand[p] = tape[:n], tape[n:]
                else:
                    shares[p], rand[p] = list(rep.aux), tape
            w, msgs = _evaluate_shares(circuit, opened, shares, rand, {second: rep.msgs})

            ys: list[list[int]] = [[], [], []]
            ys[first] = [w[first][o] for o in circuit.outputs]
            ys[second] = [w[second][o] for o in circuit.outputs]
            ys[hidden] = [
                (y - a - b) % P for y, a, b in zip(public_outputs, ys[first], ys[second])
            ]
            commits = [b"", b"", b""]
            for p, seed in zip(opened, rep.seeds):
                commits[p] = _view_commitment(
                    salt, r, p, seed, rep.aux if p == 2 else None, msgs[p]
                )
            commits[hidden] = rep.commitment
            all_commits.append(commits)
            all_ys.append(ys)

        expected = _challenge(context, circuit, salt, all_commits, all_ys)
        if not secrets.compare_digest(expected, transcript.challenge):
            raise ProofError(
                f"proof does not verify for circuit {circuit.name}",
                reason=ProofErrorReason.INVALID,
            )
        logger.debug(
            "Verified %s in %.1f ms", circuit.name, (time.perf_counter() - started) * 1000
        )


__all__ = [
    "NUM_PARTIES",
    "PROOF_MAGIC",
    "PROOF_VERSION",
    "DEFAULT_REPETITIONS",
    "RepetitionProof",
    "ProofTranscript",
    "challenge_trits",
    "MpcInTheHeadBackend",
]
