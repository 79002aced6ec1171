"""Configuration for the protoedit codec.

This module provides the configuration dataclass shared by the codec facade,
the schema loader and the command line tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class CodecConfig:
    """Configuration for decoding, encoding and rendering wire data.

    Attributes:
        indent: Indentation used when rendering text documents (default 2).
            Use 0 or None for a compact single-line document.

        max_depth: Maximum nesting depth of sub-messages and groups accepted
            while decoding (default 64). Deeper input raises
            StructuralDecodeError instead of exhausting the interpreter stack.

        hex_bytes_per_line: Bytes per line in hex dumps (default 16).

        cache_size: Capacity of the per-payload type selection cache
            (default 1000 entries, least recently used evicted first).

        search_paths: Additional directories searched when resolving schema
            imports, after the importing file's own directory.

    Examples:
        ```python
        from protoedit import CodecConfig, ProtoCodec

        config = CodecConfig(indent=4, search_paths=["/opt/protos"])
        codec = ProtoCodec(config=config)
        codec.load_directory("schemas/")
        ```
    """

    indent: int | None = 2
    max_depth: int = 64
    hex_bytes_per_line: int = 16
    cache_size: int = 1000
    search_paths: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.indent is not None and self.indent < 0:
            raise ValueError(f"indent must be >= 0, got {self.indent}")
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")
        if self.hex_bytes_per_line < 1:
            raise ValueError(
                f"hex_bytes_per_line must be >= 1, got {self.hex_bytes_per_line}"
            )
        if self.cache_size < 1:
            raise ValueError(f"cache_size must be >= 1, got {self.cache_size}")
