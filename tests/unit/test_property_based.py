"""Property-based tests using hypothesis."""

from __future__ import annotations

import base64
import json
from typing import List

from hypothesis import given
from hypothesis import strategies as st

from protoedit import (
    FieldNode,
    ProtoCodec,
    StructuralDecodeError,
    WireType,
    decode,
    encode,
)
from protoedit.text.shaping import zigzag_decode, zigzag_encode

SCALARS_SCHEMA = """
syntax = "proto3";

message Scalars {
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
  repeated sint64 deltas = 16;
  repeated double samples = 17;
}
"""

INT32 = st.integers(min_value=-(2**31), max_value=2**31 - 1)
INT64 = st.integers(min_value=-(2**63), max_value=2**63 - 1)
UINT32 = st.integers(min_value=0, max_value=2**32 - 1)
UINT64 = st.integers(min_value=0, max_value=2**64 - 1)
DOUBLES = st.floats(allow_nan=False, allow_infinity=False)

_codec = ProtoCodec()
_codec.load_text(SCALARS_SCHEMA, name="scalars.proto")


def _field_numbers() -> st.SearchStrategy[int]:
    return st.integers(min_value=1, max_value=2**29 - 1)


def _leaf_nodes() -> st.SearchStrategy[FieldNode]:
    return st.one_of(
        st.builds(FieldNode, _field_numbers(), st.just(WireType.VARINT), UINT64),
        st.builds(FieldNode, _field_numbers(), st.just(WireType.FIXED32), UINT32),
        st.builds(FieldNode, _field_numbers(), st.just(WireType.FIXED64), UINT64),
        st.builds(
            FieldNode, _field_numbers(), st.just(WireType.LENGTH_DELIMITED), st.binary(max_size=64)
        ),
    )


def _node_trees() -> st.SearchStrategy[List[FieldNode]]:
    nodes = st.recursive(
        _leaf_nodes(),
        lambda children: st.builds(
            lambda number, kids: FieldNode(number, WireType.START_GROUP, None, tuple(kids)),
            _field_numbers(),
            st.lists(children, max_size=4),
        ),
        max_leaves=20,
    )
    return st.lists(nodes, max_size=8)


class TestWireProperties:
    """Property-based tests for the wire codec."""

    @given(fields=_node_trees())
    def test_encode_decode_roundtrip(self, fields: List[FieldNode]) -> None:
        """Test schema-less decoding inverts encoding."""
        assert decode(encode(fields)) == fields

    @given(data=st.binary(max_size=256))
    def test_decode_arbitrary_bytes(self, data: bytes) -> None:
        """Test arbitrary input either fails cleanly or re-encodes stably."""
        try:
            fields = decode(data)
        except StructuralDecodeError:
            return
        reencoded = encode(fields)
        assert encode(decode(reencoded)) == reencoded
        assert len(reencoded) <= len(data)

    @given(value=INT64)
    def test_zigzag_roundtrip(self, value: int) -> None:
        """Test zigzag is a bijection onto unsigned 64-bit integers."""
        encoded = zigzag_encode(value)
        assert 0 <= encoded < 2**64
        assert zigzag_decode(encoded) == value


class TestTextProperties:
    """Property-based tests for text conversion."""

    @given(
        document=st.fixed_dictionaries(
            {},
            optional={
                "i32": INT32,
                "i64": INT64,
                "u32": UINT32,
                "u64": UINT64,
                "s32": INT32,
                "s64": INT64,
                "flag": st.booleans(),
                "f32": UINT32,
                "f64": UINT64,
                "sf32": INT32,
                "sf64": INT64,
                "ratio": st.floats(width=32, allow_nan=False, allow_infinity=False),
                "precise": DOUBLES,
                "label": st.text(max_size=32),
                "blob": st.binary(max_size=32).map(lambda b: base64.b64encode(b).decode("ascii")),
            },
        )
    )
    def test_scalar_text_roundtrip(self, document: dict) -> None:
        """Test text -> wire -> text preserves every scalar value."""
        payload = _codec.encode_from_text(json.dumps(document), "Scalars")
        assert json.loads(_codec.decode_to_text(payload, "Scalars")) == document

    @given(
        deltas=st.lists(INT64, min_size=1, max_size=16),
        samples=st.lists(DOUBLES, min_size=1, max_size=16),
    )
    def test_packed_text_roundtrip(self, deltas: List[int], samples: List[float]) -> None:
        """Test flat numeric lists survive as packed fields."""
        document = {"deltas": deltas, "samples": samples}
        payload = _codec.encode_from_text(json.dumps(document), "Scalars")
        assert json.loads(_codec.decode_to_text(payload, "Scalars")) == document
