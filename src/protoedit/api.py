"""High-level codec facade.

ProtoCodec bundles a type registry, a schema parser and the wire/text
converters behind type-name based calls. Every decode, encode and transcode
goes through a concrete message type: passing no type raises
TypeRequiredError.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .cache import MessageSchemaCache
from .codec.decoder import decode, is_valid_wire_format
from .codec.encoder import encode
from .codec.wire import FieldNode
from .config import CodecConfig
from .exceptions import SchemaResolutionError, TypeRequiredError
from .schema.model import MessageType, SchemaFile
from .schema.parser import SchemaParser
from .schema.registry import TypeRegistry
from .text.formatter import to_text
from .text.reader import from_text
from .utils.hexdump import format_hex_dump

logger = logging.getLogger(__name__)

TypeRef = Union[str, MessageType, None]


class ProtoCodec:
    """Schema-aware codec for inspecting and editing wire payloads.

    Example:
        >>> codec = ProtoCodec()
        >>> codec.load_directory("schemas/")
        2
        >>> text = codec.decode_to_text(payload, "User")
        >>> edited = text.replace('"age": 30', '"age": 31')
        >>> new_payload = codec.encode_from_text(edited, "User")
    """

    def __init__(
        self,
        registry: Optional[TypeRegistry] = None,
        config: Optional[CodecConfig] = None,
    ) -> None:
        """Initialize the codec.

        Args:
            registry: Registry to use (default: a new empty registry)
            config: Codec configuration (default: CodecConfig())
        """
        self.config = config or CodecConfig()
        self.registry = registry if registry is not None else TypeRegistry()
        self.parser = SchemaParser(self.registry, self.config.search_paths)
        self.schema_cache = MessageSchemaCache(self.config.cache_size)
        self.schema_cache.attach(self.registry)

    # ------------------------------------------------------------------
    # Schema loading
    # ------------------------------------------------------------------

    def load_file(self, path: Union[str, Path]) -> SchemaFile:
        return self.parser.load_file(path)

    def load_directory(self, directory: Union[str, Path]) -> int:
        return self.parser.load_directory(directory)

    def load_text(self, text: str, name: str = "<text>") -> SchemaFile:
        return self.parser.load_text(text, name=name)

    def message_type(self, type_ref: TypeRef) -> MessageType:
        """Resolve a type name (or pass through a MessageType).

        Raises:
            TypeRequiredError: If no type is given
            SchemaResolutionError: If the name is not a loaded message type
        """
        if isinstance(type_ref, MessageType):
            return type_ref
        if not type_ref:
            raise TypeRequiredError("A message type is required; no schema-less path exists")
        message_type = self.registry.lookup(type_ref)
        if message_type is None:
            self.registry.require_schemas()
            raise SchemaResolutionError(f"Unknown message type: {type_ref}")
        return message_type

    # ------------------------------------------------------------------
    # Wire level
    # ------------------------------------------------------------------

    def decode(self, data: bytes, type_ref: TypeRef) -> List[FieldNode]:
        """Decode a payload under a message type.

        Raises:
            TypeRequiredError: If no type is given
            StructuralDecodeError: If the payload is malformed
        """
        message_type = self.message_type(type_ref)
        return decode(data, message_type, self.registry, max_depth=self.config.max_depth)

    def encode(self, fields: Sequence[FieldNode]) -> bytes:
        return encode(fields)

    def is_valid(self, data: bytes) -> bool:
        return is_valid_wire_format(data)

    def hex_dump(self, data: bytes) -> str:
        return format_hex_dump(data, self.config.hex_bytes_per_line)

    # ------------------------------------------------------------------
    # Text level
    # ------------------------------------------------------------------

    def to_text(self, fields: Sequence[FieldNode]) -> str:
        return to_text(fields, indent=self.config.indent or None)

    def from_text(self, text: str, type_ref: TypeRef) -> List[FieldNode]:
        """Convert edited text into field nodes of a message type.

        Raises:
            TypeRequiredError: If no type is given or a field is unknown
            TextParseError: If the text is malformed
            EncodeError: If a value does not fit its declared type
        """
        return from_text(text, self.message_type(type_ref), self.registry)

    def decode_to_text(self, data: bytes, type_ref: TypeRef) -> str:
        """Decode a payload and render it as text in one step.

        The chosen type is remembered for this payload and as the last
        selected type.
        """
        message_type = self.message_type(type_ref)
        text = self.to_text(self.decode(data, message_type))
        self.remember(data, message_type.full_name)
        return text

    def encode_from_text(self, text: str, type_ref: TypeRef) -> bytes:
        """Convert edited text into a payload in one step."""
        return encode(self.from_text(text, type_ref))

    # ------------------------------------------------------------------
    # Type selection memory
    # ------------------------------------------------------------------

    def remember(self, data: bytes, type_name: str) -> None:
        """Record the type chosen for a payload."""
        logger.debug("Selected %s for a %d byte payload", type_name, len(data))
        self.schema_cache.put(data, type_name)
        self.registry.last_selected = type_name

    def suggest_type(self, data: bytes) -> Optional[str]:
        """Return the type previously chosen for this payload, else the last one used.

        Suggestions that are no longer loaded are ignored.
        """
        for candidate in (self.schema_cache.get(data), self.registry.last_selected):
            if candidate and self.registry.lookup(candidate) is not None:
                return candidate
        return None
