"""Hex dump formatting for raw payloads."""

from __future__ import annotations


def format_hex_dump(data: bytes, bytes_per_line: int = 16) -> str:
    """Format bytes as an offset/hex/ASCII dump.

    Each line shows the offset in hex, the bytes in hex padded to a full
    line, and the printable ASCII characters with '.' for the rest.

    Args:
        data: Bytes to dump
        bytes_per_line: Number of bytes shown per line

    Returns:
        Multi-line dump, or "(empty)" for empty input

    Raises:
        ValueError: If bytes_per_line is not positive

    Example:
        >>> print(format_hex_dump(b"\\x08\\x2aHi"))
        0000: 08 2a 48 69                                      |.*Hi|
    """
    if bytes_per_line < 1:
        raise ValueError(f"bytes_per_line must be >= 1, got {bytes_per_line}")
    if not data:
        return "(empty)"

    lines = []
    for offset in range(0, len(data), bytes_per_line):
        chunk = data[offset : offset + bytes_per_line]
        hex_part = " ".join(f"{byte:02x}" for byte in chunk)
        ascii_part = "".join(chr(byte) if 32 <= byte < 127 else "." for byte in chunk)
        lines.append(f"{offset:04x}: {hex_part:<{bytes_per_line * 3 - 1}}  |{ascii_part}|")
    return "\n".join(lines)


def parse_hex(text: str) -> bytes:
    """Parse hex text into bytes, ignoring whitespace and an optional 0x prefix.

    Raises:
        ValueError: If the text is not valid hex
    """
    cleaned = "".join(text.split())
    if cleaned.lower().startswith("0x"):
        cleaned = cleaned[2:]
    return bytes.fromhex(cleaned)
