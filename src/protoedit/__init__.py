"""protoedit: Schema-aware wire payload inspector and editor

A Python library for decoding protocol-buffer style wire payloads into field
trees, rendering them as editable JSON text with the help of schema files,
and encoding edited text back into byte-exact payloads.

Key Features:
- Generic wire decoding that keeps every field, known or not, in wire order
- Lightweight schema-file parser with import resolution and a type registry
- Schema-gated nested decoding (strings that look like messages stay strings)
- Lossless text rendering: mismatched and unknown fields round-trip exactly

Quick Start:
    >>> from protoedit import ProtoCodec
    >>>
    >>> codec = ProtoCodec()
    >>> codec.load_text('''
    ...     syntax = "proto3";
    ...     message User {
    ...         string name = 1;
    ...         int32 age = 2;
    ...     }
    ... ''', name="user.proto")
    >>> payload = bytes.fromhex("0a05416c696365101e")
    >>> print(codec.decode_to_text(payload, "User"))
    {
      "name": "Alice",
      "age": 30
    }
    >>> codec.encode_from_text('{"name": "Alice", "age": 31}', "User").hex()
    '0a05416c696365101f'
"""

from __future__ import annotations

from .api import ProtoCodec
from .cache import MessageSchemaCache
from .codec import FieldNode, WireType, decode, encode, is_valid_wire_format
from .config import CodecConfig
from .exceptions import (
    DecodeError,
    EncodeError,
    ProtoeditError,
    SchemaError,
    SchemaParseError,
    SchemaResolutionError,
    StructuralDecodeError,
    TextParseError,
    TypeRequiredError,
)
from .schema import EnumType, FieldSpec, MessageType, ScalarType, SchemaFile, SchemaParser, TypeRegistry
from .text import SchemaMismatch, from_text, to_text
from .utils import format_hex_dump

__version__ = "0.1.0"

__all__ = [
    # Core API
    "ProtoCodec",
    "CodecConfig",
    "encode",
    "decode",
    "is_valid_wire_format",
    "FieldNode",
    "WireType",
    # Schema
    "SchemaParser",
    "TypeRegistry",
    "MessageType",
    "FieldSpec",
    "EnumType",
    "ScalarType",
    "SchemaFile",
    # Text
    "to_text",
    "from_text",
    "SchemaMismatch",
    # Cache
    "MessageSchemaCache",
    # Exceptions
    "ProtoeditError",
    "SchemaError",
    "SchemaParseError",
    "SchemaResolutionError",
    "TypeRequiredError",
    "EncodeError",
    "DecodeError",
    "StructuralDecodeError",
    "TextParseError",
    # Utilities
    "format_hex_dump",
    # Version
    "__version__",
]
