"""
Module 05 - Arithmetic Circuit Unit Tests
Tests for core/zk/circuit.py

Tests:
- The compression gadget evaluates to MiMC compress()
- The spend circuit outputs c_root, serial, tag and zero bit checks
- Non-bit inputs produce a non-zero bit check
"""
import pytest

from core.crypto.field import P, from_bytes as field_from_bytes
from core.crypto.mimc import DOM_SERIAL, ROUNDS, compress
from core.tree.commitment import commit
from core.tree.derivation import derive, secret_to_int, serial_of, tag_of
from core.zk.circuit import CircuitBuilder, GateKind, compress_gadget, spend_circuit
from fixtures.common import make_root


class TestCircuitBuilder:
    """Tests for CircuitBuilder/ArithmeticCircuit."""

    def test_simple_circuit(self):
        cb = CircuitBuilder("test", num_inputs=2)
        x, y = cb.input(0), cb.input(1)
        cb.output(cb.add_const(cb.mul(x, y), 3))
        circuit = cb.build()

        assert circuit.num_muls == 1
        assert circuit.evaluate([4, 5]) == [23]

    def test_wrong_input_count(self):
        circuit = CircuitBuilder("test", num_inputs=1).build()
        with pytest.raises(ValueError):
            circuit.evaluate([1, 2])

    def test_input_out_of_range(self):
        with pytest.raises(IndexError):
            CircuitBuilder("test", num_inputs=1).input(1)

    def test_constants_reduced(self):
        cb = CircuitBuilder("test", num_inputs=1)
        cb.output(cb.mul_const(cb.input(0), P + 2))

        assert cb.build().evaluate([5]) == [10]


class TestCompressGadget:
    """Tests for compress_gadget()."""

    def test_constant_message(self):
        cb = CircuitBuilder("test", num_inputs=1)
        cb.output(compress_gadget(cb, cb.input(0), DOM_SERIAL))
        circuit = cb.build()
        key = secret_to_int(make_root())

        assert circuit.evaluate([key]) == [compress(key, DOM_SERIAL)]
        assert circuit.num_muls == 3 * ROUNDS

    def test_wire_message(self):
        cb = CircuitBuilder("test", num_inputs=2)
        cb.output(compress_gadget(cb, cb.input(0), 100, message_wire=cb.input(1)))
        circuit = cb.build()

        assert circuit.evaluate([7, 1]) == [compress(7, 101)]


class TestSpendCircuit:
    """Tests for spend_circuit()."""

    def test_outputs_match_native(self):
        root = make_root()
        path = "0110"
        circuit = spend_circuit(len(path), 8)
        outputs = circuit.evaluate([secret_to_int(root)] + [int(b) for b in path])
        leaf = derive(root, path)

        assert outputs[0] == field_from_bytes(commit(root, 8).value)
        assert outputs[1] == field_from_bytes(serial_of(leaf))
        assert outputs[2] == field_from_bytes(tag_of(leaf))
        assert outputs[3:] == [0, 0, 0, 0]

    def test_root_spend(self):
        root = make_root()
        circuit = spend_circuit(0, 4)
        outputs = circuit.evaluate([secret_to_int(root)])

        assert len(outputs) == 3
        assert outputs[1] == field_from_bytes(serial_of(root))

    def test_non_bit_detected(self):
        circuit = spend_circuit(1, 4)
        outputs = circuit.evaluate([secret_to_int(make_root()), 2])

        assert outputs[3] == 2

    def test_shape(self):
        circuit = spend_circuit(3, 8)

        assert circuit.num_inputs == 4
        assert len(circuit.outputs) == 3 + 3
        assert circuit.num_muls == (3 + 3) * 3 * ROUNDS + 3
        assert circuit.name == "divtokens/spend/l3/D8"

    def test_cached(self):
        assert spend_circuit(2, 4) is spend_circuit(2, 4)

    def test_level_above_depth(self):
        with pytest.raises(ValueError):
            spend_circuit(5, 4)

    def test_gate_kinds(self):
        kinds = {g.kind for g in spend_circuit(1, 1).gates}
        assert kinds == {GateKind.ADD, GateKind.ADDC, GateKind.MULC, GateKind.MUL}
