"""Exception hierarchy for protoedit.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from ProtoeditError for easy catching of any protoedit-specific error.
"""

from __future__ import annotations


class ProtoeditError(Exception):
    """Base exception for all protoedit errors."""

    pass


class SchemaError(ProtoeditError):
    """Raised when schema definitions are missing or unusable.

    Examples:
        - No schemas loaded when a type is requested
        - Unknown message type name
    """

    pass


class SchemaParseError(SchemaError):
    """Raised when a schema file cannot be parsed.

    Aborts loading of that one file only; directory loading continues with
    the remaining files.

    Examples:
        - Unbalanced braces in a message or enum body
        - Schema file not found or unreadable
    """

    pass


class SchemaResolutionError(SchemaError):
    """Raised when a type reference cannot be resolved against the registry.

    Unresolved imports are logged and skipped instead of raising; this error
    is reserved for references that are needed to complete an operation.
    """

    pass


class TypeRequiredError(ProtoeditError):
    """Raised when decoding, encoding or transcoding is attempted without a type.

    There is no schema-less path: every operation needs a concrete message
    type, and every field converted from text needs schema information.
    """

    pass


class EncodeError(ProtoeditError):
    """Raised when encoding a value fails.

    Examples:
        - Value of the wrong kind for the declared field type
        - Integer out of range for its wire representation
        - Invalid base64 payload for a bytes field
        - Unknown enum value name
    """

    pass


class DecodeError(ProtoeditError):
    """Raised when decoding binary data fails."""

    pass


class StructuralDecodeError(DecodeError):
    """Raised when a buffer is not structurally valid wire data.

    Fatal to the single decode call; nothing is partially applied.

    Examples:
        - Truncated varint or varint longer than 10 bytes
        - Length prefix exceeds the remaining buffer
        - Unknown wire type nibble
        - Unterminated or mismatched group
    """

    pass


class TextParseError(ProtoeditError):
    """Raised when an edited text document cannot be parsed.

    Callers are expected to keep the previous valid tree when this happens.

    Examples:
        - Invalid JSON syntax
        - Top-level value is not an object
        - Malformed schema mismatch wrapper
    """

    pass
