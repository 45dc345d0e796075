"""Little-endian byte reader used by the bytecode parsers."""

from __future__ import annotations

import struct

_U32 = struct.Struct("<I")
_F64 = struct.Struct("<d")


class ParseError(Exception):
    """Raised when bytecode cannot be parsed.

    ``recoverable`` is true for errors that an optional element may swallow
    (running out of input, a mismatched tag) and false for malformed data
    that must abort parsing altogether.
    """

    def __init__(
        self, message: str, offset: int | None = None, *, recoverable: bool = True
    ) -> None:
        super().__init__(message)
        self.offset = offset
        self.recoverable = recoverable


class ByteReader:
    """Sequential reader over an immutable byte string.

    ``offset`` is the position of the next byte to be read; callers may save
    and restore it to backtrack.
    """

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self.data = bytes(data)
        if not 0 <= offset <= len(self.data):
            raise ValueError(f"offset {offset} outside of data")
        self.offset = offset

    def _take(self, count: int) -> bytes:
        if count < 0:
            raise ValueError("count must not be negative")
        end = self.offset + count
        if end > len(self.data):
            raise ParseError(
                f"expected {count} bytes at offset {self.offset}, "
                f"only {self.remaining()} left",
                self.offset,
            )
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def read_u8(self) -> int:
        """Read one unsigned byte."""
        return self._take(1)[0]

    def read_u32(self) -> int:
        """Read a little-endian unsigned 32-bit integer."""
        return _U32.unpack(self._take(_U32.size))[0]

    def read_f64(self) -> float:
        """Read a little-endian IEEE 754 double."""
        return _F64.unpack(self._take(_F64.size))[0]

    def read_bytes(self, count: int) -> bytes:
        """Read exactly ``count`` bytes."""
        return self._take(count)

    def expect(self, prefix: bytes) -> None:
        """Consume ``prefix`` or raise ParseError if the input differs."""
        end = self.offset + len(prefix)
        if self.data[self.offset:end] != prefix:
            raise ParseError(f"expected {prefix!r} at offset {self.offset}", self.offset)
        self.offset = end

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return len(self.data) - self.offset