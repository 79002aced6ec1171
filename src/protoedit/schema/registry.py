"""Type registry for loaded schema definitions.

The registry holds every message and enum loaded from schema files, keyed by
both simple and fully-qualified name, and resolves field type references on
demand. It is the only shared mutable state in protoedit: all access goes
through one lock, and a schema file's types are published in a single step
so readers see either the complete definition or nothing.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, Set, Union

from ..exceptions import SchemaError
from .model import EnumType, FieldSpec, MessageType, SchemaFile, qualify

logger = logging.getLogger(__name__)

ClearListener = Callable[[], None]


class TypeRegistry:
    """Registry of message and enum types loaded from schema files.

    Later registrations of the same name overwrite earlier ones
    (last load wins).

    Example:
        >>> registry = TypeRegistry()
        >>> SchemaParser(registry).load_text(USER_SCHEMA, name="user.proto")
        >>> registry.lookup("User").full_name
        'demo.User'
        >>> registry.lookup("demo.User") is registry.lookup("User")
        True
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._lock = threading.RLock()
        self._messages: Dict[str, MessageType] = {}
        self._enums: Dict[str, EnumType] = {}
        self._files: Dict[str, SchemaFile] = {}
        self._search_paths: List[str] = []
        self._last_selected: Optional[str] = None
        self._clear_listeners: List[ClearListener] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, schema_file: SchemaFile) -> None:
        """Register a schema file and every message/enum it declares.

        Nested types are registered too, each under its simple and its
        fully-qualified name.

        Args:
            schema_file: Parsed schema file
        """
        messages: Dict[str, MessageType] = {}
        for message in schema_file.iter_messages():
            messages[message.name] = message
            messages[message.full_name] = message

        enums: Dict[str, EnumType] = {}
        for enum_type in schema_file.iter_enums():
            enums[enum_type.name] = enum_type
            enums[enum_type.full_name] = enum_type

        with self._lock:
            self._files[schema_file.name] = schema_file
            self._messages.update(messages)
            self._enums.update(enums)

        logger.info(
            "Registered schema file %s (%d message types, %d enums)",
            schema_file.name,
            len(schema_file.iter_messages()),
            len(schema_file.iter_enums()),
        )

    def add_search_path(self, path: str) -> None:
        """Add a directory searched when resolving imports (duplicates ignored)."""
        with self._lock:
            if path in self._search_paths:
                return
            self._search_paths.append(path)
        logger.info("Added schema search path: %s", path)

    @property
    def search_paths(self) -> List[str]:
        with self._lock:
            return list(self._search_paths)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> Optional[MessageType]:
        """Look up a message type by simple or fully-qualified name."""
        with self._lock:
            return self._messages.get(name.lstrip("."))

    def lookup_enum(self, name: str) -> Optional[EnumType]:
        """Look up an enum type by simple or fully-qualified name."""
        with self._lock:
            return self._enums.get(name.lstrip("."))

    def get_file(self, name: str) -> Optional[SchemaFile]:
        """Return a registered schema file by its import key."""
        with self._lock:
            return self._files.get(name)

    @property
    def files(self) -> List[SchemaFile]:
        with self._lock:
            return list(self._files.values())

    def all_type_names(self) -> Set[str]:
        """Return every registered message type name (simple and qualified)."""
        with self._lock:
            return set(self._messages)

    def has_schemas(self) -> bool:
        with self._lock:
            return bool(self._messages)

    def require_schemas(self) -> None:
        """Raise SchemaError if no message types are loaded."""
        if not self.has_schemas():
            raise SchemaError("No schemas loaded. Load schema files before decoding.")

    def stats(self) -> str:
        """Return a one-line summary of loaded files and message types."""
        with self._lock:
            message_count = len({message.full_name for message in self._messages.values()})
            return f"Loaded: {len(self._files)} files, {message_count} message types"

    # ------------------------------------------------------------------
    # Reference resolution
    # ------------------------------------------------------------------

    def resolve(self, type_name: str, scope: str = "") -> Optional[Union[MessageType, EnumType]]:
        """Resolve a type reference written inside the given scope.

        A leading dot makes the name absolute. Otherwise the name is tried
        in the scope, then in each enclosing scope out to the root, and
        finally by its simple name.

        Args:
            type_name: Type reference as written in the schema
            scope: Fully-qualified name of the message containing the reference

        Returns:
            The resolved message or enum type, or None
        """
        if type_name.startswith("."):
            candidates = [type_name[1:]]
        else:
            parts = scope.split(".") if scope else []
            candidates = [
                qualify(".".join(parts[:depth]), type_name)
                for depth in range(len(parts), -1, -1)
            ]
        candidates.append(type_name.rsplit(".", 1)[-1])

        with self._lock:
            for candidate in candidates:
                if candidate in self._messages:
                    return self._messages[candidate]
                if candidate in self._enums:
                    return self._enums[candidate]
        return None

    def resolve_message(self, field: FieldSpec, owner: MessageType) -> Optional[MessageType]:
        """Resolve the message type of a message-typed field, or None."""
        if not field.is_message or field.type_name is None:
            return None
        resolved = self.resolve(field.type_name, owner.scope)
        return resolved if isinstance(resolved, MessageType) else None

    def resolve_enum(self, field: FieldSpec, owner: MessageType) -> Optional[EnumType]:
        """Resolve the enum type of an enum-typed field, or None."""
        if not field.is_enum or field.type_name is None:
            return None
        resolved = self.resolve(field.type_name, owner.scope)
        return resolved if isinstance(resolved, EnumType) else None

    # ------------------------------------------------------------------
    # Selection state and invalidation
    # ------------------------------------------------------------------

    @property
    def last_selected(self) -> Optional[str]:
        """Type name most recently chosen by a user, if any."""
        with self._lock:
            return self._last_selected

    @last_selected.setter
    def last_selected(self, type_name: Optional[str]) -> None:
        with self._lock:
            self._last_selected = type_name
        logger.debug("Remembered selected type: %s", type_name)

    def add_clear_listener(self, listener: ClearListener) -> None:
        """Register a callback invoked after every clear().

        Owners of caches holding type-name strings use this to invalidate
        them, since a stale name could resolve to a different newly loaded type.
        """
        with self._lock:
            self._clear_listeners.append(listener)

    def remove_clear_listener(self, listener: ClearListener) -> None:
        with self._lock:
            if listener in self._clear_listeners:
                self._clear_listeners.remove(listener)

    def clear(self) -> None:
        """Discard all schemas and selection state, then notify listeners."""
        with self._lock:
            self._messages.clear()
            self._enums.clear()
            self._files.clear()
            self._last_selected = None
            listeners = list(self._clear_listeners)

        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Clear listener %r failed", listener)

        logger.info("Cleared all schemas and %d dependent caches", len(listeners))
