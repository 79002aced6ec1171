#!/usr/bin/env python3
"""Basic usage example for protoedit.

This example demonstrates:
1. Loading a schema definition
2. Decoding a wire payload to editable JSON text
3. Editing a value and encoding it back
4. Inspecting the bytes with a hex dump
"""

from __future__ import annotations

import json

from protoedit import ProtoCodec

SCHEMA = """
syntax = "proto3";
package fleet;

enum Mode {
  IDLE = 0;
  SURVEY = 1;
}

message StatusReport {
  uint32 vehicle_id = 1;
  sint32 depth_cm = 2;
  Mode mode = 3;
  repeated fixed32 readings = 4;
}
"""


def main() -> None:
    """Run the basic usage example."""
    print("=" * 60)
    print("protoedit Basic Usage Example")
    print("=" * 60)
    print()

    print("1. Loading the schema...")
    codec = ProtoCodec()
    codec.load_text(SCHEMA, name="fleet.proto")
    print(f"   {codec.registry.stats()}")
    print()

    # vehicle_id=42, depth_cm=-250, mode=SURVEY, readings=[7, 9]
    payload = bytes.fromhex("082a10f30318012208" "0700000009000000")

    print("2. Decoding the payload...")
    print(codec.hex_dump(payload))
    text = codec.decode_to_text(payload, "fleet.StatusReport")
    print(text)
    print()

    print("3. Editing depth and mode...")
    document = json.loads(text)
    document["depth_cm"] = -300
    document["mode"] = "IDLE"
    edited = codec.encode_from_text(json.dumps(document), "fleet.StatusReport")
    print(f"   Original: {payload.hex()}")
    print(f"   Edited:   {edited.hex()}")
    print()

    print("4. Decoding the edited payload...")
    print(codec.decode_to_text(edited, "fleet.StatusReport"))
    print()

    print(f"Suggested type for the original payload: {codec.suggest_type(payload)}")


if __name__ == "__main__":
    main()
