"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from protoedit import ProtoCodec, SchemaParser, TypeRegistry

USER_SCHEMA = """
syntax = "proto3";

message User {
  int32 user_id = 1;
  string username = 2;
  bool is_active = 3;
  Profile profile = 4;
}

message Profile {
  string email = 1;
  int32 age = 2;
}
"""

SAMPLE_SCHEMA = """
syntax = "proto3";
package demo;

// Account state
enum Status {
  UNKNOWN = 0;
  ACTIVE = 1;
  BANNED = 2;
}

/* Every scalar kind, plus nesting. */
message Sample {
  int32 i32 = 1;
  int64 i64 = 2;
  uint32 u32 = 3;
  uint64 u64 = 4;
  sint32 s32 = 5;
  sint64 s64 = 6;
  bool flag = 7;
  fixed32 f32 = 8;
  fixed64 f64 = 9;
  sfixed32 sf32 = 10;
  sfixed64 sf64 = 11;
  float ratio = 12;
  double precise = 13;
  string label = 14;
  bytes blob = 15;
  Status status = 16;
  repeated int32 scores = 17;
  repeated string tags = 18;
  repeated fixed32 readings = 19;
  Inner inner = 20;
  repeated Inner items = 21;

  oneof choice {
    string text = 22;
    int32 code = 23;
  }

  message Inner {
    string note = 1;
    sint32 delta = 2;
  }
}
"""

# user_id=42, username="Alice", is_active=true, profile={email="a@b.c", age=25}
USER_PAYLOAD = bytes.fromhex("082a1205416c6963651801" "22090a056140622e631019")


@pytest.fixture
def user_payload() -> bytes:
    """Wire bytes of a User message with a nested Profile."""
    return USER_PAYLOAD


@pytest.fixture
def registry() -> TypeRegistry:
    """Registry with the User and Sample schemas loaded."""
    registry = TypeRegistry()
    parser = SchemaParser(registry)
    parser.load_text(USER_SCHEMA, name="user.proto")
    parser.load_text(SAMPLE_SCHEMA, name="sample.proto")
    return registry


@pytest.fixture
def codec(registry: TypeRegistry) -> ProtoCodec:
    """Codec facade over the shared registry."""
    return ProtoCodec(registry=registry)


@pytest.fixture
def schema_dir(tmp_path: Path) -> Path:
    """Directory with a schema that imports a message from another file."""
    (tmp_path / "common.proto").write_text(
        'syntax = "proto3";\n'
        "package demo;\n"
        "enum Role { GUEST = 0; ADMIN = 1; }\n"
        "message Profile { string email = 1; int32 age = 2; }\n"
    )
    (tmp_path / "user.proto").write_text(
        'syntax = "proto3";\n'
        "package demo;\n"
        'import "common.proto";\n'
        "message User {\n"
        "  int32 user_id = 1;\n"
        "  string username = 2;\n"
        "  bool is_active = 3;\n"
        "  Profile profile = 4;\n"
        "  Role role = 5;\n"
        "}\n"
    )
    return tmp_path
