"""Wire-format encoder.

This module provides the encode() function that converts a tree of FieldNode
objects back into wire bytes. Encoding is the structural inverse of decoding:
an unedited decoded tree re-encodes to the original bytes.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..exceptions import EncodeError
from .wire import FieldNode, WireType, WireWriter

logger = logging.getLogger(__name__)


def encode(fields: Iterable[FieldNode]) -> bytes:
    """Encode field nodes to wire bytes.

    Nodes are written in the given order. A length-delimited node with
    children is encoded from its children; without children its raw value is
    written as-is. A group node is wrapped in start/end group tags.

    Args:
        fields: Field nodes to encode

    Returns:
        Wire bytes

    Raises:
        EncodeError: If a node's value does not fit its wire type

    Examples:
        ```python
        from protoedit.codec import FieldNode, WireType, encode

        data = encode([
            FieldNode(1, WireType.VARINT, 42),
            FieldNode(2, WireType.LENGTH_DELIMITED, b"Alice"),
        ])
        assert data == b"\\x08\\x2a\\x12\\x05Alice"
        ```
    """
    writer = WireWriter()
    for node in fields:
        _encode_field(writer, node)
    return writer.to_bytes()


def _encode_field(writer: WireWriter, node: FieldNode) -> None:
    """Encode a single field node.

    Args:
        writer: WireWriter to write to
        node: Field node to encode

    Raises:
        EncodeError: If the node is invalid
    """
    try:
        writer.write_tag(node.number, node.wire_type)
    except ValueError as e:
        raise EncodeError(f"Field {node.key}: {e}") from e

    wire_type = node.wire_type
    value = node.value

    if wire_type in (WireType.VARINT, WireType.FIXED32, WireType.FIXED64):
        if not isinstance(value, int):
            raise EncodeError(
                f"Field {node.key}: {wire_type.name} needs an integer, got {type(value).__name__}"
            )
        try:
            if wire_type is WireType.VARINT:
                writer.write_varint(value, node.varint_width or 1)
            elif wire_type is WireType.FIXED32:
                writer.write_fixed32(value)
            else:
                writer.write_fixed64(value)
        except ValueError as e:
            raise EncodeError(f"Field {node.key}: {e}") from e
        return

    if wire_type is WireType.LENGTH_DELIMITED:
        if node.has_children:
            nested = encode(node.children)
            logger.debug("Field %s: nested message encoded to %d bytes", node.key, len(nested))
            writer.write_length_delimited(nested)
        elif value is None:
            writer.write_length_delimited(b"")
        elif isinstance(value, (bytes, bytearray)):
            writer.write_length_delimited(bytes(value))
        elif isinstance(value, str):
            writer.write_length_delimited(value.encode("utf-8"))
        else:
            raise EncodeError(
                f"Field {node.key}: LENGTH_DELIMITED needs bytes, got {type(value).__name__}"
            )
        return

    if wire_type is WireType.START_GROUP:
        for child in node.children:
            _encode_field(writer, child)
        writer.write_tag(node.number, WireType.END_GROUP)
        return

    raise EncodeError(f"Field {node.key}: a standalone {wire_type.name} node cannot be encoded")
