import struct

import pytest

from lua51deser.position import Position, parse_positions
from lua51deser.reader import ByteReader, ParseError


def test_positions_are_numbered_in_order():
    lines = [4, 4, 7, 10]
    data = struct.pack("<I", len(lines)) + struct.pack(f"<{len(lines)}I", *lines)
    reader = ByteReader(data)
    result = parse_positions(reader)
    assert result == [Position(i, line) for i, line in enumerate(lines)]
    assert reader.remaining() == 0


def test_no_positions():
    assert parse_positions(ByteReader(struct.pack("<I", 0))) == []


def test_truncated_positions():
    data = struct.pack("<I", 3) + struct.pack("<I", 1)
    with pytest.raises(ParseError) as info:
        parse_positions(ByteReader(data))
    assert info.value.recoverable


def test_trailing_bytes_left_unread():
    data = struct.pack("<II", 1, 99) + b"tail"
    reader = ByteReader(data)
    assert parse_positions(reader) == [Position(0, 99)]
    assert reader.read_bytes(4) == b"tail"