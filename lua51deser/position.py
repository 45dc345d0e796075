"""Debug line information for instructions."""

from __future__ import annotations

from dataclasses import dataclass

from .reader import ByteReader


@dataclass(frozen=True)
class Position:
    """The source line that instruction number ``instruction`` came from."""

    instruction: int
    source: int


def parse_positions(reader: ByteReader) -> list[Position]:
    """Read a count followed by one source line per instruction."""
    count = reader.read_u32()
    return [Position(instruction=i, source=reader.read_u32()) for i in range(count)]