"""Debug information about local variables."""

from __future__ import annotations

from dataclasses import dataclass

from .reader import ByteReader, ParseError
from .value import parse_string


@dataclass(frozen=True)
class Local:
    """A named local live between instructions ``start`` and ``end``."""

    name: bytes
    start: int
    end: int

    @property
    def range(self) -> range:
        return range(self.start, self.end)


def _parse_local(reader: ByteReader) -> Local:
    name = parse_string(reader)
    if not name:
        raise ParseError(
            "local name has no terminator", reader.offset, recoverable=False
        )
    start = reader.read_u32()
    end = reader.read_u32()
    return Local(name=name[:-1], start=start, end=end)


def parse_locals(reader: ByteReader) -> list[Local]:
    """Read a count followed by that many local entries."""
    count = reader.read_u32()
    return [_parse_local(reader) for _ in range(count)]