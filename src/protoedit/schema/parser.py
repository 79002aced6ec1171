"""Hand-written parser for schema-definition files.

This module turns schema text (package, imports, messages, enums, oneofs and
field lines) into MessageType/EnumType definitions and registers them in a
TypeRegistry. No compiler toolchain or generated code is involved.

Definitions are located with brace-depth matching rather than greedy regular
expressions, so nested braces never end an enclosing body early.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Set, Tuple

from ..exceptions import SchemaParseError
from .model import EnumType, FieldSpec, MessageType, ScalarType, SchemaFile, qualify
from .registry import TypeRegistry

logger = logging.getLogger(__name__)

# Strings are matched so that comment markers inside them are left alone.
COMMENT_PATTERN = re.compile(
    r"(\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*')|/\*.*?\*/|//[^\n]*",
    re.DOTALL,
)
PACKAGE_PATTERN = re.compile(r"\bpackage\s+([\w.]+)\s*;")
IMPORT_PATTERN = re.compile(r"\bimport\s+(?:public\s+|weak\s+)?\"([^\"]+)\"\s*;")
BLOCK_START_PATTERN = re.compile(r"\b(message|enum|oneof|service|extend)\s+([\w.]+)\s*\{")
SYNTAX_PATTERN = re.compile(r"\bsyntax\s*=\s*[\"'](\w+)[\"']\s*;")
ENUM_VALUE_PATTERN = re.compile(r"(\w+)\s*=\s*(-?(?:0[xX][0-9a-fA-F]+|\d+))")
FIELD_PATTERN = re.compile(
    r"(repeated\s+)?([\w.]+)\s+(\w+)\s*=\s*(\d+)\s*(?:\[([^\]]*)\])?"
)
PACKED_OPTION_PATTERN = re.compile(r"\bpacked\s*=\s*(true|false)\b")

SCHEMA_SUFFIX = ".proto"


class Block(NamedTuple):
    """A braced definition found in schema text."""

    kind: str
    name: str
    body: str
    start: int
    end: int


def strip_comments(text: str) -> str:
    """Remove block and line comments, keeping string literals intact."""

    def _replace(match: re.Match[str]) -> str:
        if match.group(1) is not None:
            return match.group(1)
        # Keep line structure so error offsets stay meaningful.
        return "\n" * match.group(0).count("\n") or " "

    return COMMENT_PATTERN.sub(_replace, text)


def _matching_brace(text: str, open_pos: int) -> int:
    """Return the index of the brace closing the one at open_pos.

    Raises:
        SchemaParseError: If the brace is never closed
    """
    depth = 0
    for index in range(open_pos, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    raise SchemaParseError(f"Unbalanced braces: '{{' at offset {open_pos} is never closed")


def split_blocks(text: str) -> Tuple[List[Block], str]:
    """Find the top-level braced definitions in text.

    Args:
        text: Comment-free schema text or definition body

    Returns:
        Tuple of (blocks in declaration order, text with those blocks removed)

    Raises:
        SchemaParseError: If a definition's braces are unbalanced
    """
    blocks: List[Block] = []
    remainder: List[str] = []
    position = 0
    while True:
        match = BLOCK_START_PATTERN.search(text, position)
        if match is None:
            break
        open_pos = match.end() - 1
        close_pos = _matching_brace(text, open_pos)
        blocks.append(
            Block(
                kind=match.group(1),
                name=match.group(2),
                body=text[open_pos + 1:close_pos],
                start=match.start(),
                end=close_pos + 1,
            )
        )
        remainder.append(text[position:match.start()])
        position = close_pos + 1
    remainder.append(text[position:])

    rest = "".join(remainder)
    if "}" in rest or "{" in rest:
        raise SchemaParseError("Unbalanced braces outside of any definition")
    return blocks, rest


def parse_int_literal(literal: str) -> int:
    """Parse a decimal, hex (0x) or octal (leading 0) integer literal.

    Raises:
        SchemaParseError: If the literal is not a valid integer
    """
    sign = -1 if literal.startswith("-") else 1
    digits = literal.lstrip("-")
    try:
        if digits[:2].lower() == "0x":
            return sign * int(digits[2:], 16)
        if len(digits) > 1 and digits.startswith("0"):
            return sign * int(digits, 8)
        return sign * int(digits)
    except ValueError:
        raise SchemaParseError(f"Invalid integer literal: {literal}") from None


def parse_enum(name: str, body: str, scope: str) -> EnumType:
    """Parse an enum body into an EnumType."""
    values: Dict[str, int] = {}
    for match in ENUM_VALUE_PATTERN.finditer(body):
        values[match.group(1)] = parse_int_literal(match.group(2))
    return EnumType(name=name, full_name=qualify(scope, name), values=values)


def _is_enum_reference(type_name: str, enum_names: Set[str]) -> bool:
    if type_name in enum_names:
        return True
    return "." in type_name and type_name.rsplit(".", 1)[-1] in enum_names


class SchemaParser:
    """Parses schema files and registers their types.

    Imports are resolved, in order, against the importing file's directory,
    each registered search path, and finally the importing file's directory
    by base name (for nested import paths whose files were flattened into
    one directory). Unresolved imports are logged and skipped.

    Example:
        >>> registry = TypeRegistry()
        >>> parser = SchemaParser(registry)
        >>> parser.load_directory("schemas/")
        3
        >>> registry.stats()
        'Loaded: 3 files, 12 message types'
    """

    def __init__(self, registry: TypeRegistry, search_paths: Optional[Iterable[str]] = None) -> None:
        """Initialize a parser bound to a registry.

        Args:
            registry: Registry that receives the parsed types
            search_paths: Extra directories for import resolution
        """
        self.registry = registry
        for path in search_paths or ():
            registry.add_search_path(str(path))
        self._loading: Set[Path] = set()

    # ------------------------------------------------------------------
    # Loading entry points
    # ------------------------------------------------------------------

    def load_file(self, path: str | Path, name: Optional[str] = None) -> SchemaFile:
        """Parse a schema file, resolving and loading its imports.

        Args:
            path: Path of the schema file
            name: Import key to register the file under (default: file name)

        Returns:
            The registered SchemaFile

        Raises:
            SchemaParseError: If the file cannot be read or is malformed
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise SchemaParseError(f"Schema file not found: {file_path.resolve()}")
        try:
            text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SchemaParseError(f"Cannot read schema file {file_path}: {e}") from e

        resolved = file_path.resolve()
        self._loading.add(resolved)
        try:
            return self.load_text(
                text,
                name=name or file_path.name,
                base_dir=file_path.parent,
                path=str(resolved),
            )
        finally:
            self._loading.discard(resolved)

    def load_text(
        self,
        text: str,
        name: str = "<text>",
        base_dir: Optional[str | Path] = None,
        path: Optional[str] = None,
    ) -> SchemaFile:
        """Parse schema text and register the resulting SchemaFile.

        Args:
            text: Schema-definition text
            name: Import key to register the file under
            base_dir: Directory used to resolve relative imports
            path: Filesystem path recorded on the SchemaFile

        Returns:
            The registered SchemaFile

        Raises:
            SchemaParseError: If the text is malformed
        """
        logger.info("Parsing schema file: %s", name)
        content = strip_comments(text)

        package_match = PACKAGE_PATTERN.search(content)
        package = package_match.group(1) if package_match else ""
        syntax_match = SYNTAX_PATTERN.search(content)
        syntax = syntax_match.group(1) if syntax_match else "proto2"
        packed_default = syntax == "proto3"

        imports = self._resolve_imports(content, Path(base_dir) if base_dir is not None else None)

        blocks, _ = split_blocks(content)
        enum_blocks = [block for block in blocks if block.kind == "enum"]
        message_blocks = [block for block in blocks if block.kind == "message"]

        enums = [parse_enum(block.name, block.body, package) for block in enum_blocks]
        visible_enums = {block.name for block in enum_blocks}
        messages = [
            self._parse_message(block.name, block.body, package, visible_enums, packed_default)
            for block in message_blocks
        ]

        schema_file = SchemaFile(
            name=name,
            package=package,
            syntax=syntax,
            messages=messages,
            enums=enums,
            imports=imports,
            path=path,
        )
        self.registry.register(schema_file)
        return schema_file

    def load_directory(self, directory: str | Path) -> int:
        """Load every schema file below a directory.

        The directory is added to the import search paths. A file that fails
        to parse is logged and skipped; loading continues with the rest.

        Args:
            directory: Directory searched recursively for schema files

        Returns:
            Number of files loaded successfully
        """
        root = Path(directory)
        if not root.is_dir():
            logger.error("Not a valid directory: %s", directory)
            return 0

        self.registry.add_search_path(str(root))
        schema_paths = sorted(root.rglob(f"*{SCHEMA_SUFFIX}"))
        logger.info("Found %d schema files in %s", len(schema_paths), root)

        loaded = 0
        for schema_path in schema_paths:
            name = schema_path.relative_to(root).as_posix()
            existing = self.registry.get_file(name)
            if existing is not None and existing.path == str(schema_path.resolve()):
                loaded += 1
                continue
            try:
                self.load_file(schema_path, name=name)
                loaded += 1
            except SchemaParseError as e:
                logger.error("Failed to parse %s: %s", schema_path.name, e)

        logger.info("Successfully loaded %d of %d schema files", loaded, len(schema_paths))
        return loaded

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _resolve_imports(self, content: str, base_dir: Optional[Path]) -> List[SchemaFile]:
        imports: List[SchemaFile] = []
        for match in IMPORT_PATTERN.finditer(content):
            import_path = match.group(1)

            existing = self.registry.get_file(import_path)
            if existing is not None:
                imports.append(existing)
                continue

            import_file = self.find_import(import_path, base_dir)
            if import_file is None:
                logger.warning("Could not resolve import: %s", import_path)
                continue
            if import_file.resolve() in self._loading:
                logger.warning("Import cycle detected, skipping import: %s", import_path)
                continue

            try:
                imports.append(self.load_file(import_file, name=import_path))
            except SchemaParseError as e:
                logger.warning("Could not load import %s: %s", import_path, e)
        return imports

    def find_import(self, import_path: str, base_dir: Optional[Path]) -> Optional[Path]:
        """Locate an imported schema file on disk.

        Args:
            import_path: Path as written in the import statement
            base_dir: Directory of the importing file, if known

        Returns:
            Path of the file, or None if it cannot be found
        """
        if base_dir is not None:
            candidate = base_dir / import_path
            if candidate.is_file():
                return candidate

        for search_path in self.registry.search_paths:
            candidate = Path(search_path) / import_path
            if candidate.is_file():
                return candidate

        if base_dir is not None:
            candidate = base_dir / Path(import_path).name
            if candidate.is_file():
                logger.info(
                    "Resolved import via same-directory fallback: %s -> %s",
                    import_path,
                    candidate.name,
                )
                return candidate

        return None

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _parse_message(
        self,
        name: str,
        body: str,
        scope: str,
        visible_enums: Set[str],
        packed_default: bool = False,
    ) -> MessageType:
        """Parse a message body, nested definitions first.

        packed_default is the file-wide packing of repeated numeric fields
        that carry no explicit packed option.
        """
        full_name = qualify(scope, name)
        blocks, fields_text = split_blocks(body)

        nested_enums = [
            parse_enum(block.name, block.body, full_name)
            for block in blocks
            if block.kind == "enum"
        ]
        enum_names = visible_enums | {enum_type.name for enum_type in nested_enums}
        nested_messages = [
            self._parse_message(block.name, block.body, full_name, enum_names, packed_default)
            for block in blocks
            if block.kind == "message"
        ]

        fields_by_number: Dict[int, FieldSpec] = {}
        fields_by_name: Dict[str, FieldSpec] = {}
        oneof_groups: Dict[str, FrozenSet[int]] = {}

        oneof_blocks = [block for block in blocks if block.kind == "oneof"]
        for oneof_index, block in enumerate(oneof_blocks):
            numbers = set()
            for field in self._parse_fields(
                block.body, full_name, enum_names, packed_default, oneof_index
            ):
                self._add_field(field, fields_by_number, fields_by_name)
                numbers.add(field.number)
            oneof_groups[block.name] = frozenset(numbers)

        for field in self._parse_fields(fields_text, full_name, enum_names, packed_default):
            self._add_field(field, fields_by_number, fields_by_name)

        return MessageType(
            name=name,
            full_name=full_name,
            fields_by_number=fields_by_number,
            fields_by_name=fields_by_name,
            nested_messages=nested_messages,
            nested_enums=nested_enums,
            oneof_groups=oneof_groups,
        )

    def _parse_fields(
        self,
        text: str,
        scope: str,
        enum_names: Set[str],
        packed_default: bool = False,
        oneof_index: Optional[int] = None,
    ) -> List[FieldSpec]:
        fields = []
        for match in FIELD_PATTERN.finditer(text):
            repeated = match.group(1) is not None
            type_token = match.group(2)
            scalar = ScalarType.from_keyword(type_token)
            type_name = None
            if scalar is None:
                type_name = type_token
                scalar = (
                    ScalarType.ENUM
                    if self._is_enum(type_token, scope, enum_names)
                    else ScalarType.MESSAGE
                )
            packed = False
            if repeated and scalar.is_packable:
                option = PACKED_OPTION_PATTERN.search(match.group(5) or "")
                packed = option.group(1) == "true" if option else packed_default
            fields.append(
                FieldSpec(
                    name=match.group(3),
                    number=int(match.group(4)),
                    scalar_type=scalar,
                    repeated=repeated,
                    type_name=type_name,
                    oneof_index=oneof_index,
                    packed=packed,
                )
            )
        return fields

    def _is_enum(self, type_name: str, scope: str, enum_names: Set[str]) -> bool:
        if _is_enum_reference(type_name, enum_names):
            return True
        # Enums from already loaded imports.
        return isinstance(self.registry.resolve(type_name, scope), EnumType)

    @staticmethod
    def _add_field(
        field: FieldSpec,
        fields_by_number: Dict[int, FieldSpec],
        fields_by_name: Dict[str, FieldSpec],
    ) -> None:
        """Insert a field; a duplicate number replaces the earlier definition."""
        previous = fields_by_number.get(field.number)
        if previous is not None:
            logger.debug(
                "Field number %d redefined: %s replaces %s", field.number, field.name, previous.name
            )
            if fields_by_name.get(previous.name) is previous:
                del fields_by_name[previous.name]
        fields_by_number[field.number] = field
        fields_by_name[field.name] = field
