"""Main CLI entry point for protoedit."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .. import __version__
from ..api import ProtoCodec
from ..config import CodecConfig
from ..exceptions import ProtoeditError
from ..utils.hexdump import parse_hex


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="protoedit",
        description="protoedit: schema-aware wire payload inspector and editor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  protoedit types -s schemas/                     List loaded message types
  protoedit decode -s schemas/ -t User msg.bin    Render a payload as JSON
  protoedit encode -s schemas/ -t User msg.json   Encode edited JSON to stdout
  protoedit hexdump msg.bin                       Show a hex dump
        """,
    )
    parser.add_argument("--version", action="version", version=f"protoedit {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command")

    types_parser = subparsers.add_parser("types", help="List message types in a schema directory")
    types_parser.add_argument("-s", "--schemas", required=True, metavar="DIR", help="Schema directory")

    decode_parser = subparsers.add_parser("decode", help="Decode a payload to JSON text")
    decode_parser.add_argument("-s", "--schemas", required=True, metavar="DIR", help="Schema directory")
    decode_parser.add_argument("-t", "--type", required=True, dest="type_name", help="Message type")
    decode_parser.add_argument("--hex", action="store_true", help="Input file holds hex text")
    decode_parser.add_argument("file", metavar="FILE", help="Payload file")

    encode_parser = subparsers.add_parser("encode", help="Encode JSON text to a payload")
    encode_parser.add_argument("-s", "--schemas", required=True, metavar="DIR", help="Schema directory")
    encode_parser.add_argument("-t", "--type", required=True, dest="type_name", help="Message type")
    encode_parser.add_argument("--hex", action="store_true", help="Write hex text instead of binary")
    encode_parser.add_argument("file", metavar="FILE", help="JSON text file")

    hexdump_parser = subparsers.add_parser("hexdump", help="Show a hex dump of a file")
    hexdump_parser.add_argument("file", metavar="FILE", help="File to dump")
    hexdump_parser.add_argument(
        "-w", "--width", type=int, default=16, help="Bytes per line (default: 16)"
    )

    return parser


def _load_codec(schema_dir: str) -> ProtoCodec:
    codec = ProtoCodec(config=CodecConfig())
    if not Path(schema_dir).is_dir():
        raise FileNotFoundError(f"Schema directory not found: {schema_dir}")
    codec.load_directory(schema_dir)
    codec.registry.require_schemas()
    return codec


def _read_payload(file_path: Path, as_hex: bool) -> bytes:
    if as_hex:
        try:
            return parse_hex(file_path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise ProtoeditError(f"Invalid hex input: {e}") from e
    return file_path.read_bytes()


def _run(args: argparse.Namespace) -> int:
    if args.command == "types":
        codec = _load_codec(args.schemas)
        print(codec.registry.stats())
        for message_type in sorted(
            {mt.full_name for f in codec.registry.files for mt in f.iter_messages()}
        ):
            print(f"  {message_type}")
        return 0

    file_path = Path(args.file)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    if args.command == "hexdump":
        try:
            codec = ProtoCodec(config=CodecConfig(hex_bytes_per_line=args.width))
        except ValueError as e:
            raise ProtoeditError(str(e)) from e
        print(codec.hex_dump(file_path.read_bytes()))
        return 0

    codec = _load_codec(args.schemas)

    if args.command == "decode":
        data = _read_payload(file_path, args.hex)
        print(codec.decode_to_text(data, args.type_name))
        return 0

    payload = codec.encode_from_text(file_path.read_text(encoding="utf-8"), args.type_name)
    if args.hex:
        print(payload.hex())
    else:
        sys.stdout.buffer.write(payload)
        sys.stdout.flush()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the protoedit CLI.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # If no command specified, show help
    if args.command is None:
        parser.print_help()
        return 0

    try:
        return _run(args)
    except (ProtoeditError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
