"""Wire-format decoder.

This module provides the decode() function that converts raw wire bytes into
a tree of FieldNode objects. Decoding is generic: every (tag, value) pair is
kept in wire order. A schema message type, when given, only adds field
annotations and gates which length-delimited payloads are also decoded as
nested messages.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..exceptions import StructuralDecodeError
from .wire import FieldNode, WireReader, WireType, varint_size

if TYPE_CHECKING:
    from ..schema.model import FieldSpec, MessageType
    from ..schema.registry import TypeRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


def decode(
    data: bytes,
    message_type: Optional[MessageType] = None,
    registry: Optional[TypeRegistry] = None,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[FieldNode]:
    """Decode wire bytes into a list of field nodes.

    A length-delimited field is decoded as a nested message only when the
    schema declares it as a message; strings and bytes that happen to look
    like wire data stay opaque.

    Args:
        data: Raw wire bytes
        message_type: Schema type of the root message, if known
        registry: Registry used to resolve nested message types
        max_depth: Maximum nesting depth of sub-messages and groups

    Returns:
        Field nodes in wire order

    Raises:
        StructuralDecodeError: If the data is truncated or malformed

    Examples:
        ```python
        from protoedit import TypeRegistry, SchemaParser
        from protoedit.codec import decode

        registry = TypeRegistry()
        SchemaParser(registry).load_file("user.proto")

        fields = decode(payload, registry.lookup("User"), registry)
        for field in fields:
            print(field.key, field.wire_type.name, field.value)
        ```
    """
    reader = WireReader(data)
    return _decode_fields(reader, message_type, registry, depth=0, max_depth=max_depth)


def is_valid_wire_format(data: bytes) -> bool:
    """Return True if data parses as wire data and holds at least one field.

    This is a cheap admission filter, not a compatibility guarantee.
    """
    if not data:
        return False
    try:
        return len(decode(data)) > 0
    except StructuralDecodeError:
        return False


def _decode_fields(
    reader: WireReader,
    message_type: Optional[MessageType],
    registry: Optional[TypeRegistry],
    depth: int,
    max_depth: int,
    group_number: Optional[int] = None,
) -> List[FieldNode]:
    """Decode fields until the reader is exhausted or the open group ends."""
    if depth > max_depth:
        raise StructuralDecodeError(f"Nesting deeper than {max_depth} levels")

    fields: List[FieldNode] = []
    while not reader.at_end():
        offset = reader.position()
        try:
            number, wire_type = reader.read_tag()
        except (IndexError, ValueError) as e:
            raise StructuralDecodeError(f"Invalid tag at offset {offset}: {e}") from e

        if wire_type is WireType.END_GROUP:
            if group_number is None:
                raise StructuralDecodeError(
                    f"Unexpected end-group tag for field {number} at offset {offset}"
                )
            if number != group_number:
                raise StructuralDecodeError(
                    f"End-group tag for field {number} does not close group {group_number}"
                )
            return fields

        spec = message_type.field_by_number(number) if message_type is not None else None
        try:
            node = _decode_value(
                reader, number, wire_type, spec, message_type, registry, depth, max_depth
            )
        except (IndexError, ValueError) as e:
            raise StructuralDecodeError(
                f"Truncated or malformed value for field {number} at offset {offset}: {e}"
            ) from e

        fields.append(_annotate(node, spec, message_type, registry))

    if group_number is not None:
        raise StructuralDecodeError(f"Group {group_number} is never closed")
    return fields


def _decode_value(
    reader: WireReader,
    number: int,
    wire_type: WireType,
    spec: Optional[FieldSpec],
    message_type: Optional[MessageType],
    registry: Optional[TypeRegistry],
    depth: int,
    max_depth: int,
) -> FieldNode:
    if wire_type is WireType.VARINT:
        start = reader.position()
        value = reader.read_varint()
        width = reader.position() - start
        return FieldNode(
            number,
            wire_type,
            value,
            varint_width=width if width > varint_size(value) else None,
        )

    if wire_type is WireType.FIXED32:
        return FieldNode(number, wire_type, reader.read_fixed32())

    if wire_type is WireType.FIXED64:
        return FieldNode(number, wire_type, reader.read_fixed64())

    if wire_type is WireType.LENGTH_DELIMITED:
        payload = reader.read_length_delimited()
        children = _try_decode_nested(payload, spec, message_type, registry, depth, max_depth)
        return FieldNode(number, wire_type, payload, children)

    # Groups carry no schema context (the schema language cannot declare them).
    children = _decode_fields(
        reader, None, None, depth + 1, max_depth, group_number=number
    )
    return FieldNode(number, WireType.START_GROUP, None, tuple(children))


def _try_decode_nested(
    payload: bytes,
    spec: Optional[FieldSpec],
    message_type: Optional[MessageType],
    registry: Optional[TypeRegistry],
    depth: int,
    max_depth: int,
) -> Tuple[FieldNode, ...]:
    """Decode a payload as a nested message if the schema says it is one."""
    if spec is None or not spec.is_message or message_type is None or registry is None:
        return ()

    child_type = registry.resolve_message(spec, message_type)
    if child_type is None:
        logger.warning(
            "Cannot resolve message type %s for field #%d (%s); keeping raw bytes",
            spec.type_name,
            spec.number,
            spec.name,
        )
        return ()

    try:
        children = _decode_fields(WireReader(payload), child_type, registry, depth + 1, max_depth)
    except StructuralDecodeError as e:
        logger.warning(
            "Failed to decode nested message for field #%d (%s): %s",
            spec.number,
            spec.name,
            e,
        )
        return ()
    return tuple(children)


def _annotate(
    node: FieldNode,
    spec: Optional[FieldSpec],
    message_type: Optional[MessageType],
    registry: Optional[TypeRegistry],
) -> FieldNode:
    """Attach schema annotations for a field known to the message type."""
    if spec is None or message_type is None:
        return node

    message_type_name = None
    if spec.is_message:
        child_type = registry.resolve_message(spec, message_type) if registry is not None else None
        message_type_name = child_type.full_name if child_type is not None else spec.type_name

    logger.debug("Field #%d -> %s (%s)", node.number, spec.name, spec.scalar_type.value)
    return FieldNode(
        number=node.number,
        wire_type=node.wire_type,
        value=node.value,
        children=node.children,
        name=spec.name,
        declared_type=spec.scalar_type.value,
        is_message=spec.is_message,
        message_type_name=message_type_name,
        packed=spec.packed,
        varint_width=node.varint_width,
    )
