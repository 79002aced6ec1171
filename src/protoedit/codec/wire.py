"""Wire-level primitives: tags, varints, fixed-width values and field nodes.

This module provides the low-level reading and writing of the tag/wire-type
binary scheme, plus the FieldNode tree produced by decoding.
All multi-byte fixed-width values are little-endian.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

MAX_FIELD_NUMBER = (1 << 29) - 1
MAX_VARINT_BYTES = 10
UINT32_MAX = (1 << 32) - 1
UINT64_MAX = (1 << 64) - 1


def varint_size(value: int) -> int:
    """Number of bytes in the minimal varint encoding of an unsigned value."""
    return max(1, (value.bit_length() + 6) // 7)


class WireType(enum.IntEnum):
    """The 3-bit wire category carried in every tag."""

    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    FIXED32 = 5

    @classmethod
    def from_name(cls, name: str) -> WireType:
        """Look up a wire type by its display name (case-insensitive).

        Raises:
            ValueError: If the name is not a wire type name
        """
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown wire type name: {name!r}") from None


FieldValue = Union[int, bytes, None]


@dataclass(frozen=True)
class FieldNode:
    """One decoded occurrence of a field on the wire.

    Repeated occurrences of a field number are separate sibling nodes in wire
    order. Nodes are immutable; editing builds a new tree.

    Attributes:
        number: Field number (1 to 2**29 - 1)
        wire_type: Wire category the value was (or will be) encoded with
        value: Raw integer for VARINT/FIXED32/FIXED64, raw payload bytes for
            LENGTH_DELIMITED, None when only children exist
        children: Nested fields of a decoded sub-message or group
        name: Field name from the schema, if known
        declared_type: Scalar type name from the schema ("int32", "message", ...)
        is_message: Whether the schema declares this field as a message
        message_type_name: Fully-qualified name of the declared message type
        packed: Whether the schema encodes this repeated field packed
        varint_width: Byte width of a VARINT value read in non-minimal form;
            encoding pads the value back to that width
    """

    number: int
    wire_type: WireType
    value: FieldValue = None
    children: Tuple[FieldNode, ...] = ()
    name: Optional[str] = None
    declared_type: Optional[str] = None
    is_message: bool = False
    message_type_name: Optional[str] = None
    packed: bool = False
    varint_width: Optional[int] = field(default=None, compare=False, repr=False)

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def has_schema_info(self) -> bool:
        return self.declared_type is not None

    @property
    def key(self) -> str:
        """Text key for this field: schema name, or field_<number> fallback."""
        return self.name if self.name is not None else f"field_{self.number}"

    def __str__(self) -> str:
        if self.has_children:
            body = f"nested message with {len(self.children)} fields"
        else:
            body = repr(self.value)
        return f"Field {self.number} [{self.wire_type.name}]: {body}"


class WireReader:
    """Reads tags and values sequentially from a byte buffer.

    Example:
        >>> reader = WireReader(b"\\x08\\x96\\x01")
        >>> reader.read_tag()
        (1, <WireType.VARINT: 0>)
        >>> reader.read_varint()
        150
    """

    def __init__(self, data: bytes) -> None:
        """Initialize a reader over the given data.

        Args:
            data: Byte buffer to read
        """
        self._data = bytes(data)
        self._position = 0

    def at_end(self) -> bool:
        return self._position >= len(self._data)

    def position(self) -> int:
        return self._position

    def bytes_remaining(self) -> int:
        return len(self._data) - self._position

    def read_varint(self) -> int:
        """Read a little-endian base-128 varint.

        Returns:
            Unsigned integer value (at most 64 bits)

        Raises:
            IndexError: If the buffer ends before the varint terminates
            ValueError: If the varint is longer than 10 bytes or exceeds 64 bits
        """
        result = 0
        shift = 0
        for _ in range(MAX_VARINT_BYTES):
            if self._position >= len(self._data):
                raise IndexError(f"Truncated varint at offset {self._position}")
            byte = self._data[self._position]
            self._position += 1
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                if result > UINT64_MAX:
                    raise ValueError(f"Varint exceeds 64 bits ending at offset {self._position}")
                return result
            shift += 7
        raise ValueError(f"Varint longer than {MAX_VARINT_BYTES} bytes at offset {self._position}")

    def read_bytes(self, num_bytes: int) -> bytes:
        """Read exactly num_bytes raw bytes.

        Raises:
            IndexError: If not enough bytes are available
        """
        if num_bytes > self.bytes_remaining():
            raise IndexError(
                f"Not enough bytes: need {num_bytes}, have {self.bytes_remaining()}"
            )
        start = self._position
        self._position += num_bytes
        return self._data[start:self._position]

    def read_fixed32(self) -> int:
        return struct.unpack("<I", self.read_bytes(4))[0]

    def read_fixed64(self) -> int:
        return struct.unpack("<Q", self.read_bytes(8))[0]

    def read_length_delimited(self) -> bytes:
        """Read a varint length prefix followed by that many bytes.

        Raises:
            IndexError: If the length exceeds the remaining buffer
        """
        length = self.read_varint()
        if length > self.bytes_remaining():
            raise IndexError(
                f"Length {length} exceeds remaining buffer ({self.bytes_remaining()} bytes)"
            )
        return self.read_bytes(length)

    def read_tag(self) -> tuple[int, WireType]:
        """Read a tag and split it into (field number, wire type).

        Raises:
            IndexError: If the tag is truncated
            ValueError: If the wire type nibble is unknown or the field number is invalid
        """
        offset = self._position
        tag = self.read_varint()
        number = tag >> 3
        try:
            wire_type = WireType(tag & 0x07)
        except ValueError:
            raise ValueError(f"Unknown wire type {tag & 0x07} at offset {offset}") from None
        if number < 1 or number > MAX_FIELD_NUMBER:
            raise ValueError(f"Invalid field number {number} at offset {offset}")
        return number, wire_type


class WireWriter:
    """Writes tags and values into a growing byte buffer.

    Example:
        >>> writer = WireWriter()
        >>> writer.write_tag(1, WireType.VARINT)
        >>> writer.write_varint(150)
        >>> writer.to_bytes()
        b'\\x08\\x96\\x01'
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_varint(self, value: int, min_width: int = 1) -> None:
        """Write a varint.

        Negative values are written as their 64-bit two's complement, the way
        int32/int64 negatives appear on the wire. A min_width above the minimal
        size pads with continuation bytes, reproducing a non-minimal encoding.

        Raises:
            ValueError: If value does not fit in 64 bits
        """
        if value < 0:
            if value < -(1 << 63):
                raise ValueError(f"Varint value {value} below the 64-bit signed minimum")
            value += 1 << 64
        if value > UINT64_MAX:
            raise ValueError(f"Varint value {value} exceeds 64 bits")

        written = 1
        while True:
            byte = value & 0x7F
            value >>= 7
            if value or written < min_width:
                self._buffer.append(byte | 0x80)
                written += 1
            else:
                self._buffer.append(byte)
                return

    def write_fixed32(self, value: int) -> None:
        """Write 4 little-endian bytes (signed values are two's complement)."""
        if not -(1 << 31) <= value <= UINT32_MAX:
            raise ValueError(f"Value {value} does not fit in 32 bits")
        self._buffer.extend(struct.pack("<I", value & UINT32_MAX))

    def write_fixed64(self, value: int) -> None:
        """Write 8 little-endian bytes (signed values are two's complement)."""
        if not -(1 << 63) <= value <= UINT64_MAX:
            raise ValueError(f"Value {value} does not fit in 64 bits")
        self._buffer.extend(struct.pack("<Q", value & UINT64_MAX))

    def write_bytes(self, data: bytes) -> None:
        self._buffer.extend(data)

    def write_length_delimited(self, data: bytes) -> None:
        self.write_varint(len(data))
        self._buffer.extend(data)

    def write_tag(self, number: int, wire_type: WireType) -> None:
        """Write the tag (number << 3) | wire_type.

        Raises:
            ValueError: If the field number is out of range
        """
        if number < 1 or number > MAX_FIELD_NUMBER:
            raise ValueError(f"Field number must be 1-{MAX_FIELD_NUMBER}, got {number}")
        self.write_varint((number << 3) | int(wire_type))

    def __len__(self) -> int:
        return len(self._buffer)

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)
