"""Utility functions for protoedit."""

from __future__ import annotations

from .hexdump import format_hex_dump, parse_hex

__all__ = [
    "format_hex_dump",
    "parse_hex",
]
