"""Render decoded field trees as editable JSON text.

Fields are keyed by schema name, or ``field_<number>`` when the schema does
not know them. Repeated occurrences of a key are collected into an array in
wire order. A packed payload renders as an array of its values: flat when it
is the only occurrence of a field the schema packs, otherwise nested inside
the outer array so that it is read back as one packed payload.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..codec.wire import FieldNode, WireType
from .mismatch import SchemaMismatch
from .shaping import PACKABLE_KINDS, is_text_safe, is_wire_compatible, shape_scalar, unpack_raw

logger = logging.getLogger(__name__)


def to_document(fields: Sequence[FieldNode]) -> Dict[str, Any]:
    """Convert field nodes into a JSON-ready dict.

    Args:
        fields: Decoded field nodes of one message

    Returns:
        Dict keyed by field name, with nested dicts for sub-messages

    Examples:
        ```python
        from protoedit.codec import decode
        from protoedit.text import to_document

        fields = decode(payload, registry.lookup("User"), registry)
        doc = to_document(fields)
        # {"name": "Alice", "age": 30}
        ```
    """
    grouped: Dict[str, List[FieldNode]] = {}
    for node in fields:
        grouped.setdefault(node.key, []).append(node)

    document: Dict[str, Any] = {}
    for key, nodes in grouped.items():
        if len(nodes) == 1 and (nodes[0].packed or not _is_packed_run(nodes[0])):
            document[key] = format_node(nodes[0])
        else:
            document[key] = [format_node(node) for node in nodes]
    return document


def to_text(fields: Sequence[FieldNode], indent: Optional[int] = 2) -> str:
    """Render field nodes as JSON text.

    Args:
        fields: Decoded field nodes of one message
        indent: JSON indentation, or None for compact output

    Returns:
        JSON text; ``{}`` for an empty message
    """
    return json.dumps(to_document(fields), indent=indent, ensure_ascii=False)


def format_node(node: FieldNode) -> Any:
    """Render the value of one field node.

    Returns:
        A typed value, a list for packed fields, a dict for nested messages,
        or a diagnostic wrapper dict
    """
    declared = node.declared_type

    if node.wire_type is WireType.START_GROUP or declared is None:
        return _mismatch(node)

    if node.has_children:
        return to_document(node.children)

    if not is_wire_compatible(declared, node.wire_type):
        logger.debug(
            "Field %s: %s does not fit declared %s", node.key, node.wire_type.name, declared
        )
        return _mismatch(node)

    if node.wire_type is not WireType.LENGTH_DELIMITED:
        if not is_text_safe(declared, node.value):
            return _mismatch(node)
        return shape_scalar(declared, node.value)

    payload = node.value if isinstance(node.value, bytes) else b""

    if declared == "message":
        # Decoded payloads carry children; an empty one is the empty message.
        return {} if not payload else _mismatch(node)

    if declared == "string":
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError:
            return _mismatch(node)

    if declared == "bytes":
        return base64.b64encode(payload).decode("ascii")

    try:
        raws = unpack_raw(declared, payload)
    except (IndexError, ValueError) as e:
        logger.debug("Field %s: packed payload does not unpack: %s", node.key, e)
        return _mismatch(node)
    if not all(is_text_safe(declared, raw) for raw in raws):
        return _mismatch(node)
    return [shape_scalar(declared, raw) for raw in raws]


def _is_packed_run(node: FieldNode) -> bool:
    return (
        node.wire_type is WireType.LENGTH_DELIMITED
        and not node.has_children
        and node.declared_type in PACKABLE_KINDS
    )


def _mismatch(node: FieldNode) -> Dict[str, Any]:
    return SchemaMismatch.from_node(node).to_document()
