"""Constants and strings as stored in Lua 5.1 bytecode."""

from __future__ import annotations

from typing import Union

from .reader import ByteReader, ParseError

Value = Union[None, bool, float, bytes]
"""A constant: nil is ``None``, booleans, numbers and strings as bytes."""

_NIL = 0
_BOOLEAN = 1
_NUMBER = 3
_STRING = 4


def parse_string(reader: ByteReader) -> bytes:
    """Read a length-prefixed string, terminator included."""
    length = reader.read_u32()
    return reader.read_bytes(length)


def parse_strings(reader: ByteReader) -> list[bytes]:
    """Read a count followed by that many length-prefixed strings."""
    count = reader.read_u32()
    return [parse_string(reader) for _ in range(count)]


def parse_value(reader: ByteReader) -> Value:
    """Read one tagged constant."""
    kind = reader.read_u8()
    if kind == _NIL:
        return None
    if kind == _BOOLEAN:
        return reader.read_u8() != 0
    if kind == _NUMBER:
        return reader.read_f64()
    if kind == _STRING:
        raw = parse_string(reader)
        if not raw:
            raise ParseError(
                "empty string constant has no terminator",
                reader.offset,
                recoverable=False,
            )
        return raw[:-1]
    raise ParseError(
        f"unknown constant type {kind}", reader.offset, recoverable=False
    )