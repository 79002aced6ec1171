"""Convert edited JSON text back into field trees.

Every value is encoded under the type the schema declares for its field;
there is no schema-less path. Diagnostic wrapper objects are turned back
into the exact raw field they describe, whatever the declared type.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..codec.wire import FieldNode, WireType
from ..exceptions import (
    EncodeError,
    SchemaResolutionError,
    StructuralDecodeError,
    TextParseError,
    TypeRequiredError,
)
from ..schema.model import EnumType, FieldSpec, MessageType
from ..schema.registry import TypeRegistry
from .mismatch import SchemaMismatch
from .shaping import encode_scalar, pack_values

logger = logging.getLogger(__name__)

FIELD_KEY_PATTERN = re.compile(r"field_(\d+)")


def from_text(
    text: str,
    message_type: Optional[MessageType],
    registry: Optional[TypeRegistry] = None,
) -> List[FieldNode]:
    """Parse JSON text into field nodes of the given message type.

    Args:
        text: JSON object text; blank text is the empty message
        message_type: Schema type of the root message
        registry: Registry used to resolve nested message and enum types

    Returns:
        Field nodes in document order

    Raises:
        TypeRequiredError: If no message type is given, or a field has no
            schema information
        TextParseError: If the text is not a JSON object or holds a malformed
            diagnostic wrapper
        SchemaResolutionError: If a nested message type cannot be resolved
        EncodeError: If a value does not fit its declared type

    Examples:
        ```python
        from protoedit.codec import encode
        from protoedit.text import from_text

        user = registry.lookup("User")
        fields = from_text('{"name": "Bob", "age": 31}', user, registry)
        payload = encode(fields)
        ```
    """
    if message_type is None:
        raise TypeRequiredError("A message type is required to convert text to wire data")

    if not text.strip():
        return []

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise TextParseError(f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}") from e

    if not isinstance(document, dict):
        raise TextParseError(f"Expected a JSON object, got {type(document).__name__}")

    return from_document(document, message_type, registry)


def from_document(
    document: Dict[str, Any],
    message_type: Optional[MessageType],
    registry: Optional[TypeRegistry] = None,
) -> List[FieldNode]:
    """Convert a parsed JSON object into field nodes.

    Keys are matched against field names first, then the ``field_<number>``
    form. Other keys are skipped.
    """
    if message_type is None:
        raise TypeRequiredError("A message type is required to convert text to wire data")

    fields: List[FieldNode] = []
    for key, value in document.items():
        spec = message_type.field_by_name(key)
        if spec is not None:
            number = spec.number
        else:
            match = FIELD_KEY_PATTERN.fullmatch(key)
            if match is None:
                logger.debug("Skipping key %r: not a field of %s", key, message_type.full_name)
                continue
            number = int(match.group(1))
            spec = message_type.field_by_number(number)

        if value is None:
            logger.debug("Skipping null value for %s.%s", message_type.full_name, key)
            continue

        fields.extend(_convert(number, value, spec, message_type, registry))
    return fields


def _convert(
    number: int,
    value: Any,
    spec: Optional[FieldSpec],
    owner: MessageType,
    registry: Optional[TypeRegistry],
) -> List[FieldNode]:
    if isinstance(value, list):
        return _convert_array(number, value, spec, owner, registry)

    if isinstance(value, dict):
        if SchemaMismatch.is_mismatch(value):
            return [_restore_mismatch(number, value, spec)]
        return [_convert_message(number, value, _require_spec(number, spec, owner), owner, registry)]

    spec = _require_spec(number, spec, owner)
    if spec.is_message:
        raise EncodeError(f"Field {spec.name}: expected an object for message {spec.type_name}")
    wire_type, raw = encode_scalar(
        spec.name, spec.scalar_type, value, _enum_type(spec, owner, registry)
    )
    return [_annotated(number, wire_type, raw, spec)]


def _convert_array(
    number: int,
    values: List[Any],
    spec: Optional[FieldSpec],
    owner: MessageType,
    registry: Optional[TypeRegistry],
) -> List[FieldNode]:
    """Expand an array into one or more field nodes.

    A flat array of plain values for a field the schema packs becomes one
    packed node. In any other array each element is its own node, except a
    nested array, which is one packed node.
    """
    packable = spec is not None and spec.scalar_type.is_packable
    flat = all(not isinstance(item, (list, dict)) for item in values)

    if spec is not None and spec.packed and flat:
        return [_packed(number, values, spec, owner, registry)]

    nodes: List[FieldNode] = []
    for item in values:
        if isinstance(item, list):
            if not packable:
                raise EncodeError(f"Field {number}: nested arrays need a packable numeric type")
            nodes.append(_packed(number, item, spec, owner, registry))
        elif item is not None:
            nodes.extend(_convert(number, item, spec, owner, registry))
    return nodes


def _packed(
    number: int,
    values: List[Any],
    spec: FieldSpec,
    owner: MessageType,
    registry: Optional[TypeRegistry],
) -> FieldNode:
    payload = pack_values(spec.name, spec.scalar_type, values, _enum_type(spec, owner, registry))
    return _annotated(number, WireType.LENGTH_DELIMITED, payload, spec)


def _convert_message(
    number: int,
    value: Dict[str, Any],
    spec: FieldSpec,
    owner: MessageType,
    registry: Optional[TypeRegistry],
) -> FieldNode:
    if not spec.is_message:
        raise EncodeError(
            f"Field {spec.name}: an object cannot be encoded as {spec.scalar_type.value}"
        )

    child_type = registry.resolve_message(spec, owner) if registry is not None else None
    if child_type is None:
        raise SchemaResolutionError(
            f"Cannot resolve message type {spec.type_name} for field {spec.name}"
        )

    children = from_document(value, child_type, registry)
    return FieldNode(
        number=number,
        wire_type=WireType.LENGTH_DELIMITED,
        value=None,
        children=tuple(children),
        name=spec.name,
        declared_type=spec.scalar_type.value,
        is_message=True,
        message_type_name=child_type.full_name,
    )


def _restore_mismatch(number: int, value: Dict[str, Any], spec: Optional[FieldSpec]) -> FieldNode:
    try:
        wrapper = SchemaMismatch.model_validate(value)
        node = wrapper.to_node(number)
    except ValidationError as e:
        raise TextParseError(f"Malformed diagnostic wrapper for field {number}: {e}") from e
    except StructuralDecodeError as e:
        raise TextParseError(f"Group body of field {number} is not valid wire data: {e}") from e

    if spec is None:
        return node
    return FieldNode(
        number=node.number,
        wire_type=node.wire_type,
        value=node.value,
        children=node.children,
        name=spec.name,
        declared_type=spec.scalar_type.value,
        is_message=spec.is_message,
    )


def _require_spec(number: int, spec: Optional[FieldSpec], owner: MessageType) -> FieldSpec:
    if spec is None:
        raise TypeRequiredError(
            f"Field {number} has no schema information in {owner.full_name}"
        )
    return spec


def _enum_type(
    spec: FieldSpec, owner: MessageType, registry: Optional[TypeRegistry]
) -> Optional[EnumType]:
    if not spec.is_enum or registry is None:
        return None
    return registry.resolve_enum(spec, owner)


def _annotated(number: int, wire_type: WireType, raw: Any, spec: FieldSpec) -> FieldNode:
    return FieldNode(
        number=number,
        wire_type=wire_type,
        value=raw,
        name=spec.name,
        declared_type=spec.scalar_type.value,
        packed=spec.packed,
    )
