"""Function prototypes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, TypeVar

from .instruction import Instruction, parse_instruction
from .local import Local, parse_locals
from .position import Position, parse_positions
from .reader import ByteReader, ParseError
from .value import Value, parse_string, parse_strings, parse_value

_T = TypeVar("_T")


@dataclass
class Function:
    """A function prototype with its code, constants and nested prototypes."""

    name: bytes
    line_defined: int
    last_line_defined: int
    number_of_upvalues: int
    number_of_parameters: int
    vararg_flag: int
    maximum_stack_size: int
    code: list[Instruction] = field(default_factory=list)
    constants: list[Value] = field(default_factory=list)
    closures: list[Function] = field(default_factory=list)
    positions: list[Position] = field(default_factory=list)
    locals: list[Local] = field(default_factory=list)
    upvalues: list[bytes] = field(default_factory=list)


def _repeat(reader: ByteReader, parse: Callable[[ByteReader], _T]) -> list[_T]:
    count = reader.read_u32()
    return [parse(reader) for _ in range(count)]


def _optional(
    reader: ByteReader, parse: Callable[[ByteReader], list[_T]]
) -> list[_T]:
    saved = reader.offset
    try:
        return parse(reader)
    except ParseError as error:
        if not error.recoverable:
            raise
        reader.offset = saved
        return []


def parse_function(reader: ByteReader) -> Function:
    """Read one function prototype, its nested prototypes included.

    Debug information (positions, locals, upvalue names) is optional; each
    part that cannot be read is left empty.
    """
    name = parse_string(reader)
    line_defined = reader.read_u32()
    last_line_defined = reader.read_u32()
    number_of_upvalues = reader.read_u8()
    number_of_parameters = reader.read_u8()
    vararg_flag = reader.read_u8()
    maximum_stack_size = reader.read_u8()
    code = _repeat(reader, parse_instruction)
    constants = _repeat(reader, parse_value)
    closures = _repeat(reader, parse_function)
    positions = _optional(reader, parse_positions)
    locals_ = _optional(reader, parse_locals)
    upvalues = _optional(reader, parse_strings)
    return Function(
        name=name,
        line_defined=line_defined,
        last_line_defined=last_line_defined,
        number_of_upvalues=number_of_upvalues,
        number_of_parameters=number_of_parameters,
        vararg_flag=vararg_flag,
        maximum_stack_size=maximum_stack_size,
        code=code,
        constants=constants,
        closures=closures,
        positions=positions,
        locals=locals_,
        upvalues=upvalues,
    )