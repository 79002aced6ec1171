"""Text transcoding for protoedit.

This module converts decoded field trees into editable JSON text and edited
text back into field trees, using schema types for naming and value shaping.
"""

from __future__ import annotations

from .formatter import format_node, to_document, to_text
from .mismatch import SchemaMismatch
from .reader import from_document, from_text

__all__ = [
    "to_document",
    "to_text",
    "format_node",
    "from_document",
    "from_text",
    "SchemaMismatch",
]
