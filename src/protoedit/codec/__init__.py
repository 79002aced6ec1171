"""Wire codec for protoedit.

This module provides decoding of raw wire bytes into FieldNode trees and
encoding of FieldNode trees back into bytes.
"""

from __future__ import annotations

from .decoder import decode, is_valid_wire_format
from .encoder import encode
from .wire import FieldNode, WireReader, WireType, WireWriter

__all__ = [
    "encode",
    "decode",
    "is_valid_wire_format",
    "FieldNode",
    "WireType",
    "WireReader",
    "WireWriter",
]
