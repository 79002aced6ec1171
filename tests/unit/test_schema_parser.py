"""Unit tests for the schema-file parser."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from protoedit import ScalarType, SchemaParseError, SchemaParser, TypeRegistry
from protoedit.schema import strip_comments


@pytest.fixture
def parser() -> SchemaParser:
    """Parser over an empty registry."""
    return SchemaParser(TypeRegistry())


class TestFields:
    """Test field extraction."""

    def test_scalar_fields(self, registry: TypeRegistry) -> None:
        """Test every primitive keyword maps to its scalar type."""
        sample = registry.lookup("demo.Sample")
        assert sample is not None

        assert sample.field_by_name("i32").scalar_type is ScalarType.INT32
        assert sample.field_by_name("s64").scalar_type is ScalarType.SINT64
        assert sample.field_by_name("sf32").scalar_type is ScalarType.SFIXED32
        assert sample.field_by_name("precise").scalar_type is ScalarType.DOUBLE
        assert sample.field_by_name("blob").scalar_type is ScalarType.BYTES
        assert sample.field_by_number(14).name == "label"

    def test_enum_and_message_references(self, registry: TypeRegistry) -> None:
        """Test non-primitive types are classified as enum or message."""
        sample = registry.lookup("demo.Sample")

        status = sample.field_by_name("status")
        assert status.scalar_type is ScalarType.ENUM
        assert status.type_name == "Status"

        inner = sample.field_by_name("inner")
        assert inner.scalar_type is ScalarType.MESSAGE
        assert inner.type_name == "Inner"

    def test_repeated(self, registry: TypeRegistry) -> None:
        """Test the repeated flag."""
        sample = registry.lookup("demo.Sample")
        assert sample.field_by_name("scores").repeated
        assert not sample.field_by_name("i32").repeated

    def test_oneof_members(self, registry: TypeRegistry) -> None:
        """Test oneof members are regular fields tagged with their group."""
        sample = registry.lookup("demo.Sample")

        assert sample.field_by_name("text").oneof_index == 0
        assert sample.field_by_name("code").oneof_index == 0
        assert sample.field_by_name("label").oneof_index is None
        assert sample.oneof_groups == {"choice": frozenset({22, 23})}

    def test_packed_defaults(self, parser: SchemaParser) -> None:
        """Test proto3 packs repeated numbers by default and proto2 does not."""
        parser.load_text(
            'syntax = "proto3";\nmessage P3 { repeated int32 a = 1; repeated string s = 2; }',
            name="p3.proto",
        )
        parser.load_text(
            'syntax = "proto2";\nmessage P2 { repeated int32 a = 1; optional int32 n = 2; }',
            name="p2.proto",
        )
        p3 = parser.registry.lookup("P3")
        p2 = parser.registry.lookup("P2")

        assert p3.field_by_name("a").packed
        assert not p3.field_by_name("s").packed
        assert not p2.field_by_name("a").packed
        assert not p2.field_by_name("n").packed

    def test_packed_option(self, parser: SchemaParser) -> None:
        """Test an explicit packed option overrides the file default."""
        parser.load_text(
            'syntax = "proto3";\n'
            "message M {\n"
            "  repeated int32 loose = 1 [packed=false];\n"
            "  repeated string names = 2 [packed = true];\n"
            "}\n"
            "message N { repeated fixed64 tight = 1 [deprecated = true, packed = true]; }\n",
        )
        m = parser.registry.lookup("M")

        assert not m.field_by_name("loose").packed
        assert not m.field_by_name("names").packed
        assert parser.registry.lookup("N").field_by_name("tight").packed

    def test_syntax_recorded(self, parser: SchemaParser) -> None:
        """Test the declared syntax is kept, with proto2 as the default."""
        assert parser.load_text('syntax = "proto3";\nmessage A {}', name="a.proto").syntax == "proto3"
        assert parser.load_text("message B {}", name="b.proto").syntax == "proto2"

    def test_fields_sorted_by_number(self, registry: TypeRegistry) -> None:
        """Test the fields list is ordered by field number."""
        numbers = [f.number for f in registry.lookup("demo.Sample").fields]
        assert numbers == sorted(numbers)
        assert len(numbers) == 23

    def test_duplicate_number_last_wins(self, parser: SchemaParser) -> None:
        """Test a redefined field number replaces the earlier field."""
        parser.load_text("message Dup { int32 first = 1; string second = 1; }")
        dup = parser.registry.lookup("Dup")

        assert dup.field_by_number(1).name == "second"
        assert dup.field_by_name("first") is None
        assert len(dup.fields) == 1

    def test_options_and_reserved_ignored(self, parser: SchemaParser) -> None:
        """Test statements that are not fields are skipped."""
        parser.load_text(
            'option java_package = "com.example";\n'
            "message Opt {\n"
            "  reserved 2, 15 to 20;\n"
            "  optional int32 count = 1 [deprecated = true];\n"
            "}\n"
        )
        opt = parser.registry.lookup("Opt")
        assert [f.name for f in opt.fields] == ["count"]


class TestNesting:
    """Test nested definitions and packages."""

    def test_package_qualifies_names(self, registry: TypeRegistry) -> None:
        """Test types are registered under simple and qualified names."""
        assert registry.lookup("Sample") is registry.lookup("demo.Sample")
        assert registry.lookup("demo.Sample").full_name == "demo.Sample"

    def test_nested_message(self, registry: TypeRegistry) -> None:
        """Test nested messages are registered with qualified names."""
        inner = registry.lookup("demo.Sample.Inner")
        assert inner is not None
        assert inner.field_by_name("delta").scalar_type is ScalarType.SINT32
        assert registry.lookup("demo.Sample").nested_messages == [inner]

    def test_nested_enum(self, parser: SchemaParser) -> None:
        """Test enums declared inside a message."""
        parser.load_text(
            "package p;\n"
            "message Order {\n"
            "  enum Kind { A = 0; B = 1; C = -1; }\n"
            "  Kind kind = 1;\n"
            "}\n"
        )
        order = parser.registry.lookup("p.Order")
        kind = parser.registry.lookup_enum("p.Order.Kind")

        assert order.field_by_name("kind").scalar_type is ScalarType.ENUM
        assert kind.values == {"A": 0, "B": 1, "C": -1}
        assert kind.name_for(1) == "B"
        assert kind.name_for(7) is None

    def test_enum_literals(self, parser: SchemaParser) -> None:
        """Test hex and octal enum numbers."""
        parser.load_text("enum Flags { A = 0x10; B = 010; C = -0x1; D = 0; }")
        assert parser.registry.lookup_enum("Flags").values == {"A": 16, "B": 8, "C": -1, "D": 0}

    def test_forward_reference(self, parser: SchemaParser) -> None:
        """Test a message may reference a type declared later."""
        parser.load_text("message A { B b = 1; } message B { int32 x = 1; }")
        a = parser.registry.lookup("A")
        assert parser.registry.resolve_message(a.field_by_name("b"), a).name == "B"


class TestComments:
    """Test comment stripping."""

    def test_line_and_block_comments(self) -> None:
        """Test both comment styles are removed."""
        text = "int32 a = 1; // note\n/* int32 b = 2; */ int32 c = 3;"
        stripped = strip_comments(text)

        assert "note" not in stripped
        assert "b = 2" not in stripped
        assert "c = 3" in stripped

    def test_string_literals_kept(self) -> None:
        """Test comment markers inside string literals are not comments."""
        text = 'option go_package = "http://example.com/x"; // trailing'
        stripped = strip_comments(text)

        assert '"http://example.com/x"' in stripped
        assert "trailing" not in stripped

    def test_commented_field_not_parsed(self, parser: SchemaParser) -> None:
        """Test a commented-out field is not part of the message."""
        parser.load_text("message M {\n  // int32 old = 1;\n  int32 new = 2;\n}")
        assert [f.name for f in parser.registry.lookup("M").fields] == ["new"]


class TestErrors:
    """Test malformed schema handling."""

    def test_unclosed_message(self, parser: SchemaParser) -> None:
        """Test a message whose brace is never closed."""
        with pytest.raises(SchemaParseError, match="never closed"):
            parser.load_text("message Broken { int32 a = 1;")

    def test_stray_brace(self, parser: SchemaParser) -> None:
        """Test a closing brace outside any definition."""
        with pytest.raises(SchemaParseError, match="Unbalanced braces"):
            parser.load_text("message Ok { int32 a = 1; } }")

    def test_missing_file(self, parser: SchemaParser, tmp_path: Path) -> None:
        """Test loading a file that does not exist."""
        with pytest.raises(SchemaParseError, match="not found"):
            parser.load_file(tmp_path / "missing.proto")

    def test_invalid_enum_literal(self, parser: SchemaParser) -> None:
        """Test an octal literal with a non-octal digit."""
        with pytest.raises(SchemaParseError, match="Invalid integer literal: 09"):
            parser.load_text("enum Bad { A = 09; }")

    def test_failed_parse_registers_nothing(self, parser: SchemaParser) -> None:
        """Test a malformed file leaves the registry untouched."""
        with pytest.raises(SchemaParseError):
            parser.load_text("message Good { int32 a = 1; } message Bad {")
        assert parser.registry.lookup("Good") is None


class TestImports:
    """Test import resolution."""

    def test_import_from_same_directory(self, schema_dir: Path) -> None:
        """Test imported types are loaded and usable."""
        registry = TypeRegistry()
        SchemaParser(registry).load_file(schema_dir / "user.proto")

        user = registry.lookup("demo.User")
        assert registry.resolve_message(user.field_by_name("profile"), user).full_name == "demo.Profile"
        assert registry.get_file("common.proto") is not None
        assert registry.get_file("user.proto").imports[0].name == "common.proto"

    def test_imported_enum_classified(self, schema_dir: Path) -> None:
        """Test a field typed with an imported enum is an enum field."""
        registry = TypeRegistry()
        SchemaParser(registry).load_file(schema_dir / "user.proto")

        role = registry.lookup("demo.User").field_by_name("role")
        assert role.scalar_type is ScalarType.ENUM

    def test_search_path(self, tmp_path: Path) -> None:
        """Test imports resolved through a search path."""
        shared = tmp_path / "shared"
        shared.mkdir()
        (shared / "base.proto").write_text("message Base { int32 id = 1; }")
        app = tmp_path / "app"
        app.mkdir()
        (app / "app.proto").write_text('import "base.proto";\nmessage App { Base base = 1; }')

        registry = TypeRegistry()
        SchemaParser(registry, search_paths=[str(shared)]).load_file(app / "app.proto")

        assert registry.lookup("Base") is not None

    def test_nested_import_path_fallback(self, tmp_path: Path) -> None:
        """Test a nested import path resolves against a flattened directory."""
        (tmp_path / "types.proto").write_text("message T { int32 id = 1; }")
        (tmp_path / "main.proto").write_text('import "google/common/types.proto";\nmessage M { T t = 1; }')

        registry = TypeRegistry()
        SchemaParser(registry).load_file(tmp_path / "main.proto")

        assert registry.lookup("T") is not None

    def test_missing_import_is_not_fatal(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test an unresolvable import is logged and the file still loads."""
        (tmp_path / "orphan.proto").write_text(
            'import "nowhere.proto";\nmessage Orphan { int32 id = 1; Missing m = 2; }'
        )
        registry = TypeRegistry()

        with caplog.at_level(logging.WARNING):
            SchemaParser(registry).load_file(tmp_path / "orphan.proto")

        assert "Could not resolve import: nowhere.proto" in caplog.text
        assert registry.lookup("Orphan").field_by_name("id") is not None

    def test_import_cycle(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        """Test mutually importing files both load once."""
        (tmp_path / "a.proto").write_text('import "b.proto";\nmessage A { B b = 1; }')
        (tmp_path / "b.proto").write_text('import "a.proto";\nmessage B { A a = 1; }')
        registry = TypeRegistry()

        with caplog.at_level(logging.WARNING):
            SchemaParser(registry).load_file(tmp_path / "a.proto")

        assert "Import cycle detected" in caplog.text
        assert registry.lookup("A") is not None
        assert registry.lookup("B") is not None

    def test_already_loaded_import_reused(self, schema_dir: Path) -> None:
        """Test an import already in the registry is not parsed again."""
        registry = TypeRegistry()
        parser = SchemaParser(registry)
        common = parser.load_file(schema_dir / "common.proto")
        user_file = parser.load_file(schema_dir / "user.proto")

        assert user_file.imports == [common]


class TestLoadDirectory:
    """Test loading a directory of schema files."""

    def test_loads_all_files(self, schema_dir: Path) -> None:
        """Test every schema file is loaded and counted once."""
        registry = TypeRegistry()
        loaded = SchemaParser(registry).load_directory(schema_dir)

        assert loaded == 2
        assert registry.stats() == "Loaded: 2 files, 2 message types"
        assert str(schema_dir) in registry.search_paths

    def test_bad_file_skipped(self, schema_dir: Path, caplog: pytest.LogCaptureFixture) -> None:
        """Test a malformed file is logged and the rest still load."""
        (schema_dir / "broken.proto").write_text("message Broken {")
        registry = TypeRegistry()

        with caplog.at_level(logging.ERROR):
            loaded = SchemaParser(registry).load_directory(schema_dir)

        assert loaded == 2
        assert "Failed to parse broken.proto" in caplog.text
        assert registry.lookup("demo.User") is not None

    def test_recursive(self, tmp_path: Path) -> None:
        """Test schema files in subdirectories are found."""
        sub = tmp_path / "nested" / "deeper"
        sub.mkdir(parents=True)
        (sub / "deep.proto").write_text("message Deep { int32 x = 1; }")
        (tmp_path / "notes.txt").write_text("message NotSchema { int32 x = 1; }")
        registry = TypeRegistry()

        assert SchemaParser(registry).load_directory(tmp_path) == 1
        assert registry.get_file("nested/deeper/deep.proto") is not None
        assert registry.lookup("NotSchema") is None

    def test_not_a_directory(self, tmp_path: Path) -> None:
        """Test a missing directory loads nothing."""
        assert SchemaParser(TypeRegistry()).load_directory(tmp_path / "absent") == 0
