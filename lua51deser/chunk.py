"""Whole compiled chunks: header plus main function."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .function import Function, parse_function
from .header import Endianness, Format, parse_header
from .reader import ByteReader, ParseError

LUA_VERSION = 0x51
_INT_WIDTH = struct.calcsize("<i")
_SIZE_T_WIDTH = struct.calcsize("<I")
_INSTRUCTION_WIDTH = struct.calcsize("<I")
_NUMBER_WIDTH = struct.calcsize("<d")


@dataclass
class Chunk:
    """A compiled chunk; ``function`` is its main function."""

    function: Function


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ParseError(message, recoverable=False)


def parse_chunk(data: bytes) -> Chunk:
    """Parse a Lua 5.1 chunk built for little-endian 32-bit ints and doubles.

    Bytes after the main function are ignored.
    """
    reader = ByteReader(data)
    header = parse_header(reader)
    _require(header.version_number == LUA_VERSION, "unsupported Lua version")
    _require(header.format is Format.Official, "unsupported format")
    _require(header.endianness is Endianness.Little, "unsupported endianness")
    _require(header.int_width == _INT_WIDTH, "unsupported int width")
    _require(header.size_t_width == _SIZE_T_WIDTH, "unsupported size_t width")
    _require(header.instr_width == _INSTRUCTION_WIDTH, "unsupported instruction width")
    _require(header.number_width == _NUMBER_WIDTH, "unsupported number width")
    _require(not header.number_is_integral, "integral numbers are unsupported")
    return Chunk(function=parse_function(reader))