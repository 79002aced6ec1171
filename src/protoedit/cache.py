"""Per-payload type selection cache.

Remembers which message type was chosen for a given payload, so the same
payload seen again is decoded with the same type. Entries are keyed by a
digest of the payload and evicted least recently used first.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict
from typing import Optional

from .schema.registry import TypeRegistry

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 1000


class MessageSchemaCache:
    """Thread-safe LRU cache mapping payloads to selected type names.

    Example:
        >>> cache = MessageSchemaCache(max_size=2)
        >>> cache.put(b"\\x08\\x01", "demo.User")
        >>> cache.get(b"\\x08\\x01")
        'demo.User'
        >>> cache.get(b"\\x08\\x02") is None
        True
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE) -> None:
        """Initialize an empty cache.

        Args:
            max_size: Maximum number of entries kept

        Raises:
            ValueError: If max_size is not positive
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.max_size = max_size
        self._entries: OrderedDict[bytes, str] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def _key(payload: bytes) -> bytes:
        return hashlib.blake2b(payload, digest_size=16).digest()

    def get(self, payload: bytes) -> Optional[str]:
        """Return the type name cached for a payload, or None."""
        if not payload:
            return None
        key = self._key(payload)
        with self._lock:
            type_name = self._entries.get(key)
            if type_name is not None:
                self._entries.move_to_end(key)
        if type_name is not None:
            logger.debug("Cache hit: %s", type_name)
        return type_name

    def put(self, payload: bytes, type_name: str) -> None:
        """Remember the type name chosen for a payload.

        Empty payloads and empty type names are ignored.
        """
        if not payload or not type_name:
            return
        key = self._key(payload)
        with self._lock:
            self._entries[key] = type_name
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
                logger.debug("Evicted least recently used cache entry")

    def clear(self) -> None:
        """Drop every cached selection."""
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        logger.info("Cleared %d cached type selections", size)

    def attach(self, registry: TypeRegistry) -> None:
        """Clear this cache whenever the registry is cleared."""
        registry.add_clear_listener(self.clear)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
