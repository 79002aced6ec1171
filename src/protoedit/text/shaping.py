"""Value shaping between raw wire values and typed text values.

This module converts raw wire integers and payloads into the values shown in
text documents (signed/unsigned reinterpretation, zigzag, IEEE-754 bit
casts, UTF-8, base64, packed arrays) and back again.
"""

from __future__ import annotations

import base64
import binascii
import math
import struct
from typing import Any, List, Optional, Tuple, Union

from ..codec.wire import UINT64_MAX, WireReader, WireType, WireWriter
from ..exceptions import EncodeError
from ..schema.model import EnumType, ScalarType

ScalarValue = Union[int, float, bool, str]

VARINT_KINDS = frozenset(
    {"int32", "int64", "uint32", "uint64", "sint32", "sint64", "bool", "enum"}
)
FIXED32_KINDS = frozenset({"fixed32", "sfixed32", "float"})
FIXED64_KINDS = frozenset({"fixed64", "sfixed64", "double"})
PACKABLE_KINDS = VARINT_KINDS | FIXED32_KINDS | FIXED64_KINDS
LENGTH_DELIMITED_KINDS = frozenset({"string", "bytes", "message"})


def zigzag_decode(value: int) -> int:
    """Map an unsigned zigzag value back to a signed integer."""
    return (value >> 1) ^ -(value & 1)


def zigzag_encode(value: int) -> int:
    """Map a signed 64-bit integer to its unsigned zigzag form."""
    return ((value << 1) ^ (value >> 63)) & UINT64_MAX


def to_signed(value: int, bits: int) -> int:
    """Reinterpret an unsigned integer as two's complement of the given width."""
    if value >= 1 << (bits - 1):
        return value - (1 << bits)
    return value


def float_from_bits(value: int, bits: int) -> float:
    """Reinterpret the raw bits of a fixed-width integer as IEEE-754."""
    if bits == 32:
        return struct.unpack("<f", struct.pack("<I", value & 0xFFFFFFFF))[0]
    return struct.unpack("<d", struct.pack("<Q", value & UINT64_MAX))[0]


def float_to_bits(value: float, bits: int) -> int:
    """Return the raw IEEE-754 bits of a float as an unsigned integer.

    Raises:
        OverflowError: If the value is finite but too large for 32-bit floats
    """
    if bits == 32:
        return struct.unpack("<I", struct.pack("<f", value))[0]
    return struct.unpack("<Q", struct.pack("<d", value))[0]


def is_wire_compatible(declared_type: Optional[str], wire_type: WireType) -> bool:
    """Check whether a declared type can be carried by an observed wire type.

    Numeric types also accept LENGTH_DELIMITED, the packed repeated encoding.
    """
    if declared_type is None:
        return False
    if declared_type in VARINT_KINDS:
        return wire_type in (WireType.VARINT, WireType.LENGTH_DELIMITED)
    if declared_type in FIXED32_KINDS:
        return wire_type in (WireType.FIXED32, WireType.LENGTH_DELIMITED)
    if declared_type in FIXED64_KINDS:
        return wire_type in (WireType.FIXED64, WireType.LENGTH_DELIMITED)
    if declared_type in LENGTH_DELIMITED_KINDS:
        return wire_type is WireType.LENGTH_DELIMITED
    return False


def shape_scalar(declared_type: str, raw: int) -> ScalarValue:
    """Interpret a raw varint or fixed-width integer under a declared type.

    Args:
        declared_type: Scalar type name
        raw: Raw unsigned value from the wire

    Returns:
        Typed value for the text document
    """
    if declared_type in ("int32", "int64", "enum", "sfixed64"):
        return to_signed(raw, 64)
    if declared_type in ("sint32", "sint64"):
        return zigzag_decode(raw)
    if declared_type == "bool":
        return raw != 0
    if declared_type == "sfixed32":
        return to_signed(raw, 32)
    if declared_type == "float":
        return float_from_bits(raw, 32)
    if declared_type == "double":
        return float_from_bits(raw, 64)
    # uint32, uint64, fixed32, fixed64
    return raw


def is_text_safe(declared_type: str, raw: int) -> bool:
    """Whether a raw value survives the trip through a text number.

    Text holds a single NaN, so a float or double NaN with any other sign or
    payload bits does not.
    """
    if declared_type not in ("float", "double"):
        return True
    bits = 32 if declared_type == "float" else 64
    return not math.isnan(float_from_bits(raw, bits)) or raw == float_to_bits(math.nan, bits)


def unpack_raw(declared_type: str, payload: bytes) -> List[int]:
    """Split a packed repeated payload into raw element values.

    Elements are shaped separately with shape_scalar().

    Args:
        declared_type: Numeric scalar type of the elements
        payload: Back-to-back element encodings

    Returns:
        Raw element values in payload order

    Raises:
        IndexError: If the payload ends in a partial element
        ValueError: If a varint element is over-long or the type cannot be packed
    """
    reader = WireReader(payload)
    values: List[int] = []
    while not reader.at_end():
        if declared_type in VARINT_KINDS:
            raw = reader.read_varint()
        elif declared_type in FIXED32_KINDS:
            raw = reader.read_fixed32()
        elif declared_type in FIXED64_KINDS:
            raw = reader.read_fixed64()
        else:
            raise ValueError(f"Type {declared_type} cannot be packed")
        values.append(raw)
    return values


def _require_integer(field_name: str, declared_type: str, value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise EncodeError(
        f"Field {field_name}: expected an integer for {declared_type}, got {value!r}"
    )


def _require_number(field_name: str, declared_type: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EncodeError(
            f"Field {field_name}: expected a number for {declared_type}, got {value!r}"
        )
    return float(value)


def encode_scalar(
    field_name: str,
    declared_type: ScalarType,
    value: Any,
    enum_type: Optional[EnumType] = None,
) -> Tuple[WireType, Union[int, bytes]]:
    """Encode a text value under its declared type.

    This is the inverse of the shaping rules: zigzag for signed types, bit
    packing for floats, UTF-8 for strings and base64 decoding for bytes.

    Args:
        field_name: Field name used in error messages
        declared_type: Declared scalar type
        value: Value taken from the text document
        enum_type: Enum definition, used to accept value names for enum fields

    Returns:
        Tuple of (wire type, raw integer or payload bytes)

    Raises:
        EncodeError: If the value does not fit the declared type
    """
    kind = declared_type.value

    if kind == "bool":
        if not isinstance(value, (bool, int)):
            raise EncodeError(f"Field {field_name}: expected a boolean, got {value!r}")
        return WireType.VARINT, 1 if value else 0

    if kind == "enum" and isinstance(value, str):
        if enum_type is None or value not in enum_type.values:
            raise EncodeError(f"Field {field_name}: unknown enum value {value!r}")
        return WireType.VARINT, enum_type.values[value]

    if kind in ("int32", "int64", "enum"):
        number = _require_integer(field_name, kind, value)
        if not -(1 << 63) <= number <= UINT64_MAX:
            raise EncodeError(f"Field {field_name}: {number} does not fit in 64 bits")
        return WireType.VARINT, number & UINT64_MAX

    if kind in ("uint32", "uint64", "fixed32", "fixed64"):
        number = _require_integer(field_name, kind, value)
        limit = 0xFFFFFFFF if kind == "fixed32" else UINT64_MAX
        if not 0 <= number <= limit:
            raise EncodeError(f"Field {field_name}: {number} out of range for {kind}")
        return declared_type.wire_type, number

    if kind in ("sint32", "sint64"):
        number = _require_integer(field_name, kind, value)
        if not -(1 << 63) <= number < 1 << 63:
            raise EncodeError(f"Field {field_name}: {number} out of range for {kind}")
        return WireType.VARINT, zigzag_encode(number)

    if kind in ("sfixed32", "sfixed64"):
        number = _require_integer(field_name, kind, value)
        bits = 32 if kind == "sfixed32" else 64
        if not -(1 << (bits - 1)) <= number < 1 << (bits - 1):
            raise EncodeError(f"Field {field_name}: {number} out of range for {kind}")
        return declared_type.wire_type, number & ((1 << bits) - 1)

    if kind in ("float", "double"):
        number = _require_number(field_name, kind, value)
        bits = 32 if kind == "float" else 64
        try:
            return declared_type.wire_type, float_to_bits(number, bits)
        except (OverflowError, struct.error) as e:
            raise EncodeError(f"Field {field_name}: {number} does not fit a {kind}") from e

    if kind == "string":
        if not isinstance(value, str):
            raise EncodeError(f"Field {field_name}: expected a string, got {value!r}")
        return WireType.LENGTH_DELIMITED, value.encode("utf-8")

    if kind == "bytes":
        if not isinstance(value, str):
            raise EncodeError(f"Field {field_name}: expected base64 text, got {value!r}")
        try:
            return WireType.LENGTH_DELIMITED, base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncodeError(f"Field {field_name}: invalid base64: {e}") from e

    raise EncodeError(f"Field {field_name}: a scalar value cannot be encoded as {kind}")


def pack_values(
    field_name: str,
    declared_type: ScalarType,
    values: List[Any],
    enum_type: Optional[EnumType] = None,
) -> bytes:
    """Encode values back to back as one packed repeated payload.

    Raises:
        EncodeError: If the type is not packable or a value does not fit
    """
    if not declared_type.is_packable:
        raise EncodeError(f"Field {field_name}: {declared_type.value} values cannot be packed")
    writer = WireWriter()
    for value in values:
        wire_type, raw = encode_scalar(field_name, declared_type, value, enum_type)
        if wire_type is WireType.VARINT:
            writer.write_varint(raw)
        elif wire_type is WireType.FIXED32:
            writer.write_fixed32(raw)
        else:
            writer.write_fixed64(raw)
    return writer.to_bytes()
