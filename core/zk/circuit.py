"""
Module 05 - Arithmetic Circuits
Straight-line arithmetic circuits over the scalar field.

Owner: Protocol/Crypto Engineer
Module ID: M05

A circuit is a list of gates over numbered wires. Wires 0..num_inputs-1
hold the private inputs; every gate writes one new wire. Four gate kinds
are enough for MiMC and the spend relation:

    ADD   out = a + b
    ADDC  out = a + const
    MULC  out = a * const
    MUL   out = a * b        (the only non-linear gate)

Outputs are a list of wires whose values are public.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Sequence

from core.crypto.field import P
from core.crypto.mimc import DOM_CHILD, DOM_COMMIT, DOM_SERIAL, DOM_TAG, ROUND_CONSTANTS


class GateKind(str, Enum):
    ADD = "add"
    ADDC = "addc"
    MULC = "mulc"
    MUL = "mul"


@dataclass(frozen=True)
class Gate:
    kind: GateKind
    a: int
    b: int = -1
    const: int = 0
    out: int = -1


@dataclass
class ArithmeticCircuit:
    """Immutable once built; shared between provers and verifiers."""
    name: str
    num_inputs: int
    gates: tuple[Gate, ...]
    outputs: tuple[int, ...]
    num_wires: int
    num_muls: int = field(init=False)

    def __post_init__(self) -> None:
        self.num_muls = sum(1 for g in self.gates if g.kind is GateKind.MUL)

    def evaluate(self, inputs: Sequence[int]) -> list[int]:
        """Plain (non-shared) evaluation; returns the output wire values."""
        if len(inputs) != self.num_inputs:
            raise ValueError(f"circuit {self.name} takes {self.num_inputs} inputs, got {len(inputs)}")
        w = [0] * self.num_wires
        w[:self.num_inputs] = [x % P for x in inputs]
        for g in self.gates:
            if g.kind is GateKind.ADD:
                w[g.out] = (w[g.a] + w[g.b]) % P
            elif g.kind is GateKind.ADDC:
                w[g.out] = (w[g.a] + g.const) % P
            elif g.kind is GateKind.MULC:
                w[g.out] = (w[g.a] * g.const) % P
            else:
                w[g.out] = (w[g.a] * w[g.b]) % P
        return [w[o] for o in self.outputs]


class CircuitBuilder:
    """Appends gates and hands out wire indices."""

    def __init__(self, name: str, num_inputs: int) -> None:
        self.name = name
        self.num_inputs = num_inputs
        self._gates: list[Gate] = []
        self._outputs: list[int] = []
        self._next = num_inputs

    def input(self, index: int) -> int:
        if not 0 <= index < self.num_inputs:
            raise IndexError(f"input {index} out of range")
        return index

    def _emit(self, kind: GateKind, a: int, b: int = -1, const: int = 0) -> int:
        out = self._next
        self._next += 1
        self._gates.append(Gate(kind=kind, a=a, b=b, const=const % P, out=out))
        return out

    def add(self, a: int, b: int) -> int:
        return self._emit(GateKind.ADD, a, b)

    def add_const(self, a: int, const: int) -> int:
        return self._emit(GateKind.ADDC, a, const=const)

    def mul_const(self, a: int, const: int) -> int:
        return self._emit(GateKind.MULC, a, const=const)

    def mul(self, a: int, b: int) -> int:
        return self._emit(GateKind.MUL, a, b)

    def output(self, wire: int) -> None:
        self._outputs.append(wire)

    def build(self) -> ArithmeticCircuit:
        return ArithmeticCircuit(
            name=self.name,
            num_inputs=self.num_inputs,
            gates=tuple(self._gates),
            outputs=tuple(self._outputs),
            num_wires=self._next,
        )


def _pow5(cb: CircuitBuilder, t: int) -> int:
    t2 = cb.mul(t, t)
    t4 = cb.mul(t2, t2)
    return cb.mul(t4, t)


def compress_gadget(
    cb: CircuitBuilder,
    key: int,
    message_const: int,
    message_wire: int | None = None,
) -> int:
    """
    C(k, m) = E_k(m) + k + m in gates.

    The message is message_const, plus message_wire when given. A purely
    constant message folds into the first round's constant.
    """
    if message_wire is None:
        x = cb.add_const(key, message_const + ROUND_CONSTANTS[0])
    else:
        x = cb.add(key, message_wire)
        x = cb.add_const(x, message_const + ROUND_CONSTANTS[0])
    x = _pow5(cb, x)
    for c in ROUND_CONSTANTS[1:]:
        t = cb.add(x, key)
        t = cb.add_const(t, c)
        x = _pow5(cb, t)
    # E_k(m) + k + m = x + 2k + m
    out = cb.add(x, cb.mul_const(key, 2))
    if message_wire is not None:
        out = cb.add(out, message_wire)
    return cb.add_const(out, message_const)


@lru_cache(maxsize=64)
def spend_circuit(level: int, denomination: int) -> ArithmeticCircuit:
    """
    The spend relation for one (level, D).

    Inputs:  [root, b_1, ..., b_level]
    Outputs: [Commit(root, D), Serial(leaf), Tag(leaf), b_i * (b_i - 1) for each i]
    """
    if not 0 <= level <= denomination:
        raise ValueError(f"level {level} outside [0, {denomination}]")
    cb = CircuitBuilder(f"divtokens/spend/l{level}/D{denomination}", num_inputs=1 + level)
    root = cb.input(0)
    bits = [cb.input(1 + i) for i in range(level)]

    c_root = compress_gadget(cb, root, DOM_COMMIT + denomination)
    secret = root
    for b in bits:
        secret = compress_gadget(cb, secret, DOM_CHILD, message_wire=b)
    serial = compress_gadget(cb, secret, DOM_SERIAL)
    tag = compress_gadget(cb, secret, DOM_TAG)

    cb.output(c_root)
    cb.output(serial)
    cb.output(tag)
    for b in bits:
        # b * (b - 1) = b*b - b
        sq = cb.mul(b, b)
        cb.output(cb.add(sq, cb.mul_const(b, P - 1)))
    return cb.build()


__all__ = [
    "GateKind",
    "Gate",
    "ArithmeticCircuit",
    "CircuitBuilder",
    "compress_gadget",
    "spend_circuit",
]
