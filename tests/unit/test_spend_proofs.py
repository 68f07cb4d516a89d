"""
Module 05 - Spend Proof Unit Tests
Tests for core/zk/mpc.py and core/zk/spend.py

Tests:
- Honest proofs verify at every level
- Proofs do not verify against a different serial, tag, level or commitment
- Tampered proofs are rejected as Invalid, undecodable ones as Malformed
- The prover refuses witnesses that do not open the statement
- Proofs are randomized (two proofs of one statement differ)
"""
from dataclasses import replace

import pytest

from core.schemas.errors import (
    DerivationError,
    ErrorCodes,
    ProofError,
    ProofErrorReason,
    WireFormatError,
)
from core.tokens.types import SpendWitness
from core.zk.circuit import CircuitBuilder
from core.zk.mpc import (
    PROOF_MAGIC,
    MpcInTheHeadBackend,
    ProofTranscript,
    challenge_trits,
)
from core.zk.spend import SpendProofSystem, expected_outputs
from fixtures.common import TEST_REPETITIONS, make_statement, make_token


def _prove(proofs, token, path):
    statement = make_statement(token, path)
    return statement, proofs.prove(SpendWitness(root=token.root, path=path), statement)


class TestChallengeTrits:
    """Tests for challenge_trits()."""

    def test_values_and_count(self):
        trits = challenge_trits(b"\x01" * 32, 500)

        assert len(trits) == 500
        assert set(trits) == {0, 1, 2}

    def test_deterministic(self):
        assert challenge_trits(b"abc", 50) == challenge_trits(b"abc", 50)


class TestBackend:
    """MpcInTheHeadBackend on a tiny circuit."""

    @pytest.fixture
    def circuit(self):
        cb = CircuitBuilder("test/square", num_inputs=1)
        x = cb.input(0)
        cb.output(cb.mul(cb.mul(x, x), x))
        return cb.build()

    def test_prove_and_verify(self, circuit):
        backend = MpcInTheHeadBackend(repetitions=16)
        proof = backend.prove(circuit, [3], b"ctx")

        assert backend.verify(circuit, proof, [27], b"ctx")

    def test_wrong_output(self, circuit):
        backend = MpcInTheHeadBackend(repetitions=16)
        proof = backend.prove(circuit, [3], b"ctx")

        assert not backend.verify(circuit, proof, [28], b"ctx")

    def test_wrong_context(self, circuit):
        backend = MpcInTheHeadBackend(repetitions=16)
        proof = backend.prove(circuit, [3], b"ctx")

        assert not backend.verify(circuit, proof, [27], b"other")

    def test_repetition_count_enforced(self, circuit):
        proof = MpcInTheHeadBackend(repetitions=4).prove(circuit, [3], b"ctx")
        with pytest.raises(ProofError) as exc_info:
            MpcInTheHeadBackend(repetitions=16).check(circuit, proof, [27], b"ctx")

        assert exc_info.value.reason == ProofErrorReason.MALFORMED

    def test_transcript_round_trip(self, circuit):
        proof = MpcInTheHeadBackend(repetitions=6).prove(circuit, [3], b"ctx")
        transcript = ProofTranscript.from_bytes(proof)

        assert proof.startswith(PROOF_MAGIC)
        assert len(transcript.repetitions) == 6
        assert transcript.to_bytes() == proof

    def test_opened_aux_matches_challenge(self, circuit):
        """aux travels only in repetitions that open party 2."""
        proof = MpcInTheHeadBackend(repetitions=30).prove(circuit, [3], b"ctx")
        transcript = ProofTranscript.from_bytes(proof)
        trits = challenge_trits(transcript.challenge, 30)
        for rep, e in zip(transcript.repetitions, trits):
            assert (rep.aux is not None) == (e != 0)

    def test_invalid_repetitions(self):
        with pytest.raises(ValueError):
            MpcInTheHeadBackend(repetitions=0)


class TestSpendProofSystem:
    """SpendProofSystem end to end."""

    @pytest.mark.parametrize("path", ["", "1", "0110"])
    def test_honest_proof_verifies(self, token, proofs, path):
        statement, proof = _prove(proofs, token, path)

        assert proofs.verify(proof, statement)

    def test_wrong_serial(self, token, proofs):
        statement, proof = _prove(proofs, token, "01")
        other = make_statement(token, "00")

        assert not proofs.verify(proof, replace(statement, serial=other.serial))

    def test_wrong_tag(self, token, proofs):
        statement, proof = _prove(proofs, token, "01")
        other = make_statement(token, "00")

        assert not proofs.verify(proof, replace(statement, tag=other.tag))

    def test_claimed_higher_value(self, token, proofs):
        """A level-2 proof presented as a level-1 spend is rejected."""
        statement, proof = _prove(proofs, token, "01")

        with pytest.raises(ProofError) as exc_info:
            proofs.check(proof, replace(statement, level=1))

        assert exc_info.value.code == ErrorCodes.PROOF_INVALID

    def test_other_token_commitment(self, token, proofs, keypair):
        other = make_token(keypair=keypair)
        statement, proof = _prove(proofs, token, "01")

        assert not proofs.verify(proof, replace(statement, c_root=other.c_root))

    def test_tampered_message_byte(self, token, proofs):
        statement, proof = _prove(proofs, token, "1")
        tampered = bytearray(proof)
        tampered[-5] ^= 0x01

        assert not proofs.verify(bytes(tampered), statement)

    def test_tampered_seed(self, token, proofs):
        statement, proof = _prove(proofs, token, "1")
        transcript = ProofTranscript.from_bytes(proof)
        rep = transcript.repetitions[0]
        bad = replace(rep, seeds=(bytes(32), rep.seeds[1]))
        forged = replace(transcript, repetitions=(bad,) + transcript.repetitions[1:])

        with pytest.raises(ProofError) as exc_info:
            proofs.check(forged.to_bytes(), statement)

        assert exc_info.value.reason == ProofErrorReason.INVALID

    def test_garbage_is_malformed(self, token, proofs):
        statement = make_statement(token, "1")
        with pytest.raises(WireFormatError) as exc_info:
            proofs.check(b"not a proof", statement)

        assert exc_info.value.code == ErrorCodes.PROOF_MALFORMED

    def test_truncated_is_malformed(self, token, proofs):
        statement, proof = _prove(proofs, token, "1")
        with pytest.raises(WireFormatError):
            proofs.check(proof[:-1], statement)

    def test_proofs_are_randomized(self, token, proofs):
        _, p1 = _prove(proofs, token, "10")
        _, p2 = _prove(proofs, token, "10")

        assert p1 != p2

    def test_proof_hides_witness(self, token, proofs):
        _, proof = _prove(proofs, token, "10")

        assert token.root not in proof

    def test_prover_rejects_wrong_root(self, token, proofs, keypair):
        other = make_token(keypair=keypair)
        statement = make_statement(token, "01")
        with pytest.raises(DerivationError):
            proofs.prove(SpendWitness(root=other.root, path="01"), statement)

    def test_prover_rejects_wrong_path(self, token, proofs):
        statement = make_statement(token, "01")
        with pytest.raises(DerivationError):
            proofs.prove(SpendWitness(root=token.root, path="00"), statement)

    def test_prover_rejects_level_mismatch(self, token, proofs):
        statement = make_statement(token, "01")
        with pytest.raises(DerivationError) as exc_info:
            proofs.prove(SpendWitness(root=token.root, path="011"), statement)

        assert exc_info.value.code == ErrorCodes.DERIVATION_LEVEL_MISMATCH

    def test_expected_outputs(self, token):
        statement = make_statement(token, "011")
        outputs = expected_outputs(statement)

        assert len(outputs) == 3 + 3
        assert outputs[3:] == [0, 0, 0]

    def test_non_canonical_statement(self, token, proofs):
        statement, proof = _prove(proofs, token, "1")
        with pytest.raises(ProofError):
            proofs.check(proof, replace(statement, serial=b"\xff" * 32))

    def test_default_repetitions(self):
        assert SpendProofSystem().backend.repetitions == 219
        assert SpendProofSystem(repetitions=TEST_REPETITIONS).backend.repetitions == TEST_REPETITIONS
