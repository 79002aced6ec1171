"""Diagnostic wrapper for fields that cannot be shown as typed values.

A field whose wire type does not fit its declared type, a field the schema
does not know, a legacy group, or a payload that fails to decode under its
declared type is rendered as a wrapper object carrying the raw wire value.
Converting the wrapper back restores the original bytes exactly, ignoring
the declared type.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..codec.decoder import decode
from ..codec.encoder import encode
from ..codec.wire import FieldNode, WireType

MISMATCH_MARKER = "Schema mismatch"


class SchemaMismatch(BaseModel):
    """Wire-level fallback representation of a single field.

    Integer wire types carry ``_raw_value``; length-delimited fields and
    groups carry ``_raw_bytes`` as base64. ``_expected_type`` is the declared
    type, or null when the field is unknown to the schema.

    Example:
        >>> wrapper = SchemaMismatch(
        ...     expected_type="string",
        ...     actual_wire_type="VARINT",
        ...     raw_value=42,
        ... )
        >>> wrapper.to_document()
        {'_error': 'Schema mismatch', '_expected_type': 'string', '_actual_wire_type': 'VARINT', '_raw_value': 42}
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    error: Literal["Schema mismatch"] = Field(default=MISMATCH_MARKER, alias="_error")
    expected_type: Optional[str] = Field(default=None, alias="_expected_type")
    actual_wire_type: str = Field(alias="_actual_wire_type")
    raw_value: Optional[int] = Field(default=None, alias="_raw_value", ge=0)
    raw_bytes: Optional[str] = Field(default=None, alias="_raw_bytes")

    @field_validator("actual_wire_type")
    @classmethod
    def _known_wire_type(cls, value: str) -> str:
        wire_type = WireType.from_name(value)
        if wire_type is WireType.END_GROUP:
            raise ValueError("END_GROUP cannot be a field on its own")
        return value

    @field_validator("raw_bytes")
    @classmethod
    def _valid_base64(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError(f"invalid base64: {e}") from e
        return value

    @model_validator(mode="after")
    def _payload_matches_wire_type(self) -> SchemaMismatch:
        if self.wire_type in (WireType.LENGTH_DELIMITED, WireType.START_GROUP):
            if self.raw_bytes is None or self.raw_value is not None:
                raise ValueError(f"{self.actual_wire_type} needs _raw_bytes only")
        elif self.raw_value is None or self.raw_bytes is not None:
            raise ValueError(f"{self.actual_wire_type} needs _raw_value only")
        return self

    @property
    def wire_type(self) -> WireType:
        return WireType.from_name(self.actual_wire_type)

    @staticmethod
    def is_mismatch(obj: Any) -> bool:
        """Return True if a text value is a diagnostic wrapper object."""
        return isinstance(obj, dict) and obj.get("_error") == MISMATCH_MARKER

    @classmethod
    def from_node(cls, node: FieldNode) -> SchemaMismatch:
        """Build the wrapper for a decoded node.

        Groups carry their re-encoded body, so the wrapper holds exactly the
        bytes between the start and end group tags.
        """
        if node.wire_type is WireType.START_GROUP:
            body: Optional[bytes] = encode(node.children)
        elif node.wire_type is WireType.LENGTH_DELIMITED:
            body = node.value if isinstance(node.value, bytes) else encode(node.children)
        else:
            body = None

        return cls(
            expected_type=None if node.wire_type is WireType.START_GROUP else node.declared_type,
            actual_wire_type=node.wire_type.name,
            raw_value=node.value if body is None else None,
            raw_bytes=base64.b64encode(body).decode("ascii") if body is not None else None,
        )

    def to_node(self, number: int) -> FieldNode:
        """Rebuild the raw field node for a field number.

        Raises:
            StructuralDecodeError: If a group body is not valid wire data
        """
        wire_type = self.wire_type
        if self.raw_bytes is None:
            return FieldNode(number, wire_type, self.raw_value)

        body = base64.b64decode(self.raw_bytes)
        if wire_type is WireType.START_GROUP:
            return FieldNode(number, wire_type, None, tuple(decode(body)))
        return FieldNode(number, wire_type, body)

    def to_document(self) -> Dict[str, Any]:
        """Return the wrapper as a JSON-ready dict using the underscore keys."""
        document = self.model_dump(by_alias=True)
        if self.raw_bytes is None:
            del document["_raw_bytes"]
        else:
            del document["_raw_value"]
        return document
