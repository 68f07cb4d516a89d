"""
Token value types.

Frozen dataclasses for the structures exchanged between Holder, Publisher
and Exchange. Each has a fixed-field binary encoding (see wire.py) and
validates its field sizes on construction.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass, field

from core.crypto.field import FIELD_BYTES, from_bytes as field_from_bytes
from core.crypto.hashing import to_hex
from core.schemas.errors import DerivationError, DerivationErrorReason, WireFormatError

from .wire import WireReader, WireWriter

KEY_ID_BYTES = 32
MAX_DENOMINATION = 255


def _check_size(name: str, value: bytes, size: int) -> None:
    if len(value) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(value)}")


def _check_denomination(denomination: int) -> None:
    if not 0 <= denomination <= MAX_DENOMINATION:
        raise ValueError(f"denomination must be in [0, {MAX_DENOMINATION}], got {denomination}")


def value_at(denomination: int, level: int) -> int:
    """Value in units of a node at `level` of a depth-`denomination` tree."""
    return 1 << (denomination - level)


@dataclass(frozen=True)
class Commitment:
    """Public commitment c_root = Commit(root, D)."""
    denomination: int
    value: bytes

    def __post_init__(self) -> None:
        _check_denomination(self.denomination)
        _check_size("commitment", self.value, FIELD_BYTES)

    def to_bytes(self) -> bytes:
        return WireWriter().u8(1).u8(self.denomination).fixed(self.value, FIELD_BYTES).getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> "Commitment":
        reader = WireReader(data, "Commitment")
        reader.version()
        denomination = reader.u8()
        value = reader.fixed(FIELD_BYTES)
        reader.finish()
        return cls(denomination=denomination, value=value)

    @property
    def hex(self) -> str:
        return to_hex(self.value)


@dataclass(frozen=True)
class IssuanceCredential:
    """Exchange signature over (c_root, D) under the key named by key_id."""
    key_id: bytes
    denomination: int
    c_root: bytes
    signature: bytes

    def __post_init__(self) -> None:
        _check_size("key_id", self.key_id, KEY_ID_BYTES)
        _check_denomination(self.denomination)
        _check_size("c_root", self.c_root, FIELD_BYTES)

    @property
    def commitment(self) -> Commitment:
        return Commitment(denomination=self.denomination, value=self.c_root)

    @property
    def value(self) -> int:
        return value_at(self.denomination, 0)

    def message(self) -> bytes:
        """Bytes covered by the issuer signature."""
        return signed_message(self.c_root, self.denomination)

    def write(self, writer: WireWriter) -> WireWriter:
        return (
            writer.u8(1)
            .u8(self.denomination)
            .fixed(self.key_id, KEY_ID_BYTES)
            .fixed(self.c_root, FIELD_BYTES)
            .blob16(self.signature)
        )

    def to_bytes(self) -> bytes:
        return self.write(WireWriter()).getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> "IssuanceCredential":
        reader = WireReader(data, "IssuanceCredential")
        reader.version()
        denomination = reader.u8()
        key_id = reader.fixed(KEY_ID_BYTES)
        c_root = reader.fixed(FIELD_BYTES)
        signature = reader.blob16()
        reader.finish()
        return cls(key_id=key_id, denomination=denomination, c_root=c_root, signature=signature)


def signed_message(c_root: bytes, denomination: int) -> bytes:
    return struct.pack(">B", denomination) + c_root


@dataclass(frozen=True)
class Token:
    """A spendable token. The root secret never leaves the holder."""
    root: bytes = field(repr=False)
    denomination: int
    credential: IssuanceCredential

    def __post_init__(self) -> None:
        _check_denomination(self.denomination)
        _check_size("root", self.root, FIELD_BYTES)
        if self.credential.denomination != self.denomination:
            raise DerivationError(
                "credential denomination does not match token",
                reason=DerivationErrorReason.LEVEL_MISMATCH,
                details={
                    "token": self.denomination,
                    "credential": self.credential.denomination,
                },
            )

    @property
    def value(self) -> int:
        return value_at(self.denomination, 0)

    @property
    def c_root(self) -> bytes:
        return self.credential.c_root

    def to_bytes(self) -> bytes:
        return (
            WireWriter()
            .u8(1)
            .u8(self.denomination)
            .fixed(self.root, FIELD_BYTES)
            .blob32(self.credential.to_bytes())
            .getvalue()
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "Token":
        reader = WireReader(data, "Token")
        reader.version()
        denomination = reader.u8()
        root = reader.fixed(FIELD_BYTES)
        credential = IssuanceCredential.from_bytes(reader.blob32())
        reader.finish()
        return cls(root=root, denomination=denomination, credential=credential)


@dataclass(frozen=True)
class SpendStatement:
    """Public inputs of a spend proof."""
    c_root: bytes
    denomination: int
    level: int
    serial: bytes
    tag: bytes

    def __post_init__(self) -> None:
        _check_denomination(self.denomination)
        _check_size("c_root", self.c_root, FIELD_BYTES)
        _check_size("serial", self.serial, FIELD_BYTES)
        _check_size("tag", self.tag, FIELD_BYTES)
        if not 0 <= self.level <= self.denomination:
            raise DerivationError(
                f"level {self.level} outside [0, {self.denomination}]",
                reason=DerivationErrorReason.LEVEL_MISMATCH,
                details={"level": self.level, "denomination": self.denomination},
            )

    @property
    def value(self) -> int:
        return value_at(self.denomination, self.level)

    def public_outputs(self) -> list[int]:
        """Field elements the spend circuit must output (bit checks excluded)."""
        return [
            field_from_bytes(self.c_root),
            field_from_bytes(self.serial),
            field_from_bytes(self.tag),
        ]

    def to_bytes(self) -> bytes:
        return (
            WireWriter()
            .u8(1)
            .u8(self.denomination)
            .u8(self.level)
            .fixed(self.c_root, FIELD_BYTES)
            .fixed(self.serial, FIELD_BYTES)
            .fixed(self.tag, FIELD_BYTES)
            .getvalue()
        )


@dataclass(frozen=True)
class SpendWitness:
    """Private inputs of a spend proof: the root secret and the path bits."""
    root: bytes = field(repr=False)
    path: str = field(repr=False)

    def __post_init__(self) -> None:
        _check_size("root", self.root, FIELD_BYTES)
        if any(bit not in "01" for bit in self.path):
            raise ValueError("path must be a string of '0' and '1'")

    @property
    def level(self) -> int:
        return len(self.path)

    @property
    def bits(self) -> list[int]:
        return [int(bit) for bit in self.path]


@dataclass(frozen=True)
class SpendReceipt:
    """Everything a Publisher and the Exchange need to accept one spend."""
    denomination: int
    level: int
    serial: bytes
    tag: bytes
    credential: IssuanceCredential
    proof: bytes = field(repr=False)

    def __post_init__(self) -> None:
        _check_denomination(self.denomination)
        _check_size("serial", self.serial, FIELD_BYTES)
        _check_size("tag", self.tag, FIELD_BYTES)
        if not 0 <= self.level <= self.denomination:
            raise ValueError(f"level {self.level} outside [0, {self.denomination}]")

    @property
    def value(self) -> int:
        return value_at(self.denomination, self.level)

    @property
    def serial_hex(self) -> str:
        return self.serial.hex()

    def statement(self) -> SpendStatement:
        return SpendStatement(
            c_root=self.credential.c_root,
            denomination=self.denomination,
            level=self.level,
            serial=self.serial,
            tag=self.tag,
        )

    def to_bytes(self) -> bytes:
        return (
            WireWriter()
            .u8(1)
            .u8(self.denomination)
            .u8(self.level)
            .fixed(self.serial, FIELD_BYTES)
            .fixed(self.tag, FIELD_BYTES)
            .blob32(self.credential.to_bytes())
            .blob32(self.proof)
            .getvalue()
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "SpendReceipt":
        reader = WireReader(data, "SpendReceipt")
        reader.version()
        denomination = reader.u8()
        level = reader.u8()
        serial = reader.fixed(FIELD_BYTES)
        tag = reader.fixed(FIELD_BYTES)
        credential = IssuanceCredential.from_bytes(reader.blob32())
        proof = reader.blob32()
        reader.finish()
        try:
            return cls(
                denomination=denomination,
                level=level,
                serial=serial,
                tag=tag,
                credential=credential,
                proof=proof,
            )
        except ValueError as e:
            raise WireFormatError(str(e), structure="SpendReceipt") from e
