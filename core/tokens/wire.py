"""
Fixed-field binary encoding helpers.

All integers are big-endian. Variable-length fields carry an explicit
length prefix; decoders reject truncated input and trailing bytes.
"""
from __future__ import annotations

import struct

from core.crypto.field import FIELD_BYTES, from_bytes as field_from_bytes, to_bytes as field_to_bytes
from core.schemas.errors import WireFormatError

WIRE_VERSION = 1


class WireWriter:
    """Accumulates fixed-field encodings."""

    def __init__(self) -> None:
        self._chunks: list[bytes] = []

    def u8(self, value: int) -> "WireWriter":
        self._chunks.append(struct.pack(">B", value))
        return self

    def u16(self, value: int) -> "WireWriter":
        self._chunks.append(struct.pack(">H", value))
        return self

    def u32(self, value: int) -> "WireWriter":
        self._chunks.append(struct.pack(">I", value))
        return self

    def fixed(self, data: bytes, size: int) -> "WireWriter":
        if len(data) != size:
            raise ValueError(f"expected {size} bytes, got {len(data)}")
        self._chunks.append(data)
        return self

    def field(self, value: int) -> "WireWriter":
        self._chunks.append(field_to_bytes(value))
        return self

    def blob16(self, data: bytes) -> "WireWriter":
        return self.u16(len(data)).raw(data)

    def blob32(self, data: bytes) -> "WireWriter":
        return self.u32(len(data)).raw(data)

    def raw(self, data: bytes) -> "WireWriter":
        self._chunks.append(data)
        return self

    def getvalue(self) -> bytes:
        return b"".join(self._chunks)


class WireReader:
    """Cursor over an encoded structure; every failure is a WireFormatError."""

    def __init__(self, data: bytes, structure: str) -> None:
        self._data = memoryview(data)
        self._pos = 0
        self.structure = structure

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if size < 0 or end > len(self._data):
            raise WireFormatError(
                f"{self.structure} truncated at offset {self._pos}",
                structure=self.structure,
                details={"offset": self._pos, "wanted": size},
            )
        chunk = self._data[self._pos:end].tobytes()
        self._pos = end
        return chunk

    def u8(self) -> int:
        return struct.unpack(">B", self._take(1))[0]

    def u16(self) -> int:
        return struct.unpack(">H", self._take(2))[0]

    def u32(self) -> int:
        return struct.unpack(">I", self._take(4))[0]

    def fixed(self, size: int) -> bytes:
        return self._take(size)

    def field(self) -> int:
        try:
            return field_from_bytes(self._take(FIELD_BYTES))
        except ValueError as e:
            raise WireFormatError(str(e), structure=self.structure) from e

    def blob16(self) -> bytes:
        return self._take(self.u16())

    def blob32(self) -> bytes:
        return self._take(self.u32())

    def version(self, expected: int = WIRE_VERSION) -> int:
        version = self.u8()
        if version != expected:
            raise WireFormatError(
                f"unsupported {self.structure} version {version}",
                structure=self.structure,
                details={"version": version},
            )
        return version

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def finish(self) -> None:
        if self.remaining:
            raise WireFormatError(
                f"{self.remaining} trailing bytes after {self.structure}",
                structure=self.structure,
            )
