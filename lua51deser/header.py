"""The bytecode chunk header."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .reader import ByteReader, ParseError

SIGNATURE = b"\x1bLua"


class Endianness(Enum):
    Big = 0
    Little = 1


class Format(Enum):
    Official = 0


@dataclass(frozen=True)
class Header:
    version_number: int
    format: Format
    endianness: Endianness
    int_width: int
    size_t_width: int
    instr_width: int
    number_width: int
    number_is_integral: bool


def _enum_byte(reader: ByteReader, kind, what: str):
    value = reader.read_u8()
    try:
        return kind(value)
    except ValueError:
        raise ParseError(
            f"invalid {what} {value}", reader.offset, recoverable=False
        ) from None


def parse_header(reader: ByteReader) -> Header:
    """Read the signature and the build parameters that follow it."""
    reader.expect(SIGNATURE)
    version_number = reader.read_u8()
    format_ = _enum_byte(reader, Format, "format")
    endianness = _enum_byte(reader, Endianness, "endianness")
    int_width = reader.read_u8()
    size_t_width = reader.read_u8()
    instr_width = reader.read_u8()
    number_width = reader.read_u8()
    integral = reader.read_u8()
    if integral not in (0, 1):
        raise ParseError(
            f"invalid integral flag {integral}", reader.offset, recoverable=False
        )
    return Header(
        version_number=version_number,
        format=format_,
        endianness=endianness,
        int_width=int_width,
        size_t_width=size_t_width,
        instr_width=instr_width,
        number_width=number_width,
        number_is_integral=integral == 1,
    )