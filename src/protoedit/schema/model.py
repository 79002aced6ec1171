"""In-memory schema model built from schema-definition text.

This module provides the message, enum and field definitions produced by the
schema parser. Message and enum references are stored as name strings and
resolved lazily against the TypeRegistry, so forward references and types
from imported files resolve regardless of declaration order.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from ..codec.wire import WireType


class ScalarType(str, enum.Enum):
    """Declared kind of a field."""

    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    SINT32 = "sint32"
    SINT64 = "sint64"
    BOOL = "bool"
    ENUM = "enum"
    FIXED32 = "fixed32"
    SFIXED32 = "sfixed32"
    FLOAT = "float"
    FIXED64 = "fixed64"
    SFIXED64 = "sfixed64"
    DOUBLE = "double"
    STRING = "string"
    BYTES = "bytes"
    MESSAGE = "message"

    @classmethod
    def from_keyword(cls, keyword: str) -> Optional[ScalarType]:
        """Map a primitive type keyword to its scalar type.

        Returns None for "enum"/"message" and for any non-primitive token,
        which the parser treats as a type reference.
        """
        return _KEYWORDS.get(keyword.lower())

    @property
    def wire_type(self) -> WireType:
        """Wire category used for a single (unpacked) value of this type."""
        return _WIRE_TYPES[self]

    @property
    def is_packable(self) -> bool:
        """Whether repeated values of this type may be packed into one payload."""
        return _WIRE_TYPES[self] in (WireType.VARINT, WireType.FIXED32, WireType.FIXED64)


_WIRE_TYPES: Dict[ScalarType, WireType] = {
    ScalarType.INT32: WireType.VARINT,
    ScalarType.INT64: WireType.VARINT,
    ScalarType.UINT32: WireType.VARINT,
    ScalarType.UINT64: WireType.VARINT,
    ScalarType.SINT32: WireType.VARINT,
    ScalarType.SINT64: WireType.VARINT,
    ScalarType.BOOL: WireType.VARINT,
    ScalarType.ENUM: WireType.VARINT,
    ScalarType.FIXED32: WireType.FIXED32,
    ScalarType.SFIXED32: WireType.FIXED32,
    ScalarType.FLOAT: WireType.FIXED32,
    ScalarType.FIXED64: WireType.FIXED64,
    ScalarType.SFIXED64: WireType.FIXED64,
    ScalarType.DOUBLE: WireType.FIXED64,
    ScalarType.STRING: WireType.LENGTH_DELIMITED,
    ScalarType.BYTES: WireType.LENGTH_DELIMITED,
    ScalarType.MESSAGE: WireType.LENGTH_DELIMITED,
}

_KEYWORDS: Dict[str, ScalarType] = {
    scalar.value: scalar
    for scalar in ScalarType
    if scalar not in (ScalarType.ENUM, ScalarType.MESSAGE)
}


@dataclass(frozen=True)
class FieldSpec:
    """Schema information for a single field.

    Attributes:
        name: Field name
        number: Field number, unique within the owning message
        scalar_type: Declared kind of the field
        repeated: Whether the field is declared repeated
        type_name: Referenced type name as written, for enum and message fields
        oneof_index: Index of the oneof group this field belongs to, if any
        packed: Whether repeated values are encoded as one packed payload
            (the proto3 default for numeric types, or an explicit packed option)
    """

    name: str
    number: int
    scalar_type: ScalarType
    repeated: bool = False
    type_name: Optional[str] = None
    oneof_index: Optional[int] = None
    packed: bool = False

    @property
    def is_message(self) -> bool:
        return self.scalar_type is ScalarType.MESSAGE

    @property
    def is_enum(self) -> bool:
        return self.scalar_type is ScalarType.ENUM


@dataclass(frozen=True)
class EnumType:
    """An enum definition.

    Attributes:
        name: Simple enum name
        full_name: Fully-qualified name (package and enclosing messages)
        values: Value names mapped to numbers, in declaration order
    """

    name: str
    full_name: str
    values: Dict[str, int] = field(default_factory=dict)

    def name_for(self, number: int) -> Optional[str]:
        """Return the first value name declared with the given number."""
        for value_name, value_number in self.values.items():
            if value_number == number:
                return value_name
        return None


@dataclass(frozen=True)
class MessageType:
    """A message definition.

    Example:
        >>> user = registry.lookup("User")
        >>> user.field_by_number(1).name
        'user_id'
        >>> user.field_by_name("username").number
        2
    """

    name: str
    full_name: str
    fields_by_number: Dict[int, FieldSpec] = field(default_factory=dict)
    fields_by_name: Dict[str, FieldSpec] = field(default_factory=dict)
    nested_messages: List[MessageType] = field(default_factory=list)
    nested_enums: List[EnumType] = field(default_factory=list)
    oneof_groups: Dict[str, FrozenSet[int]] = field(default_factory=dict)

    @property
    def scope(self) -> str:
        """Name scope used to resolve references made inside this message."""
        return self.full_name

    @property
    def fields(self) -> List[FieldSpec]:
        """Field specs ordered by field number."""
        return [self.fields_by_number[number] for number in sorted(self.fields_by_number)]

    def field_by_number(self, number: int) -> Optional[FieldSpec]:
        return self.fields_by_number.get(number)

    def field_by_name(self, name: str) -> Optional[FieldSpec]:
        return self.fields_by_name.get(name)

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class SchemaFile:
    """A parsed schema file.

    A SchemaFile owns the types declared directly in it; types from imports
    are referenced through `imports`, never copied.

    Attributes:
        name: Import key of the file (file name or import path)
        package: Package declared by the file, or empty string
        syntax: Declared syntax ("proto2" when the file declares none)
        messages: Top-level message definitions
        enums: Top-level enum definitions
        imports: Resolved imported schema files
        path: Filesystem path the file was loaded from, if any
    """

    name: str
    package: str = ""
    syntax: str = "proto2"
    messages: List[MessageType] = field(default_factory=list)
    enums: List[EnumType] = field(default_factory=list)
    imports: List[SchemaFile] = field(default_factory=list)
    path: Optional[str] = None

    def iter_messages(self) -> List[MessageType]:
        """All messages declared in this file, nested ones included (parents first)."""
        result: List[MessageType] = []
        pending = list(self.messages)
        while pending:
            message = pending.pop(0)
            result.append(message)
            pending.extend(message.nested_messages)
        return result

    def iter_enums(self) -> List[EnumType]:
        """All enums declared in this file, nested ones included."""
        result = list(self.enums)
        for message in self.iter_messages():
            result.extend(message.nested_enums)
        return result


def qualify(scope: str, name: str) -> str:
    """Join a scope and a name with a dot, omitting the dot for an empty scope."""
    return f"{scope}.{name}" if scope else name

