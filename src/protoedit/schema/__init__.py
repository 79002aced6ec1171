"""Schema definitions for protoedit.

This module provides the schema model, the type registry and the schema
definition parser.
"""

from __future__ import annotations

from .model import EnumType, FieldSpec, MessageType, ScalarType, SchemaFile
from .parser import SchemaParser, strip_comments
from .registry import TypeRegistry

__all__ = [
    "EnumType",
    "FieldSpec",
    "MessageType",
    "ScalarType",
    "SchemaFile",
    "SchemaParser",
    "TypeRegistry",
    "strip_comments",
]
