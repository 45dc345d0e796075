"""Decoded Lua 5.1 virtual machine instructions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .argument import (
    ClosureIndex,
    Constant,
    Register,
    RegisterOrConstant,
    Upvalue,
    register_or_constant,
)
from .opcode import Layout, OperationCode, decode_layout, parse_operation_code
from .reader import ByteReader, ParseError


@dataclass(frozen=True)
class Instruction:
    """Base class of every decoded instruction."""


@dataclass(frozen=True)
class Move(Instruction):
    destination: Register
    source: Register


@dataclass(frozen=True)
class LoadConstant(Instruction):
    destination: Register
    source: Constant


@dataclass(frozen=True)
class LoadBoolean(Instruction):
    destination: Register
    value: bool
    skip_next: bool


@dataclass(frozen=True)
class LoadNil(Instruction):
    registers: tuple[Register, ...]


@dataclass(frozen=True)
class GetUpvalue(Instruction):
    destination: Register
    upvalue: Upvalue


@dataclass(frozen=True)
class GetGlobal(Instruction):
    destination: Register
    global_: Constant


@dataclass(frozen=True)
class GetIndex(Instruction):
    destination: Register
    object: Register
    key: RegisterOrConstant


@dataclass(frozen=True)
class SetGlobal(Instruction):
    destination: Constant
    value: Register


@dataclass(frozen=True)
class SetUpvalue(Instruction):
    destination: Upvalue
    source: Register


@dataclass(frozen=True)
class SetIndex(Instruction):
    object: Register
    key: RegisterOrConstant
    value: RegisterOrConstant


@dataclass(frozen=True)
class NewTable(Instruction):
    destination: Register
    array_size: int
    hash_size: int


@dataclass(frozen=True)
class PrepMethodCall(Instruction):
    destination: Register
    self_arg: Register
    object: Register
    method: RegisterOrConstant


@dataclass(frozen=True)
class _Arithmetic(Instruction):
    destination: Register
    lhs: RegisterOrConstant
    rhs: RegisterOrConstant


@dataclass(frozen=True)
class Add(_Arithmetic):
    pass


@dataclass(frozen=True)
class Sub(_Arithmetic):
    pass


@dataclass(frozen=True)
class Mul(_Arithmetic):
    pass


@dataclass(frozen=True)
class Div(_Arithmetic):
    pass


@dataclass(frozen=True)
class Mod(_Arithmetic):
    pass


@dataclass(frozen=True)
class Pow(_Arithmetic):
    pass


@dataclass(frozen=True)
class Minus(Instruction):
    destination: Register
    operand: Register


@dataclass(frozen=True)
class Not(Instruction):
    destination: Register
    operand: Register


@dataclass(frozen=True)
class Length(Instruction):
    destination: Register
    operand: Register


@dataclass(frozen=True)
class Concatenate(Instruction):
    destination: Register
    operands: tuple[Register, ...]


@dataclass(frozen=True)
class Jump(Instruction):
    skip: int


@dataclass(frozen=True)
class _Comparison(Instruction):
    lhs: RegisterOrConstant
    rhs: RegisterOrConstant
    invert: bool


@dataclass(frozen=True)
class Equal(_Comparison):
    pass


@dataclass(frozen=True)
class LessThan(_Comparison):
    pass


@dataclass(frozen=True)
class LessThanOrEqual(_Comparison):
    pass


@dataclass(frozen=True)
class Test(Instruction):
    value: Register
    invert: bool


@dataclass(frozen=True)
class TestSet(Instruction):
    destination: Register
    value: Register
    invert: bool


@dataclass(frozen=True)
class Call(Instruction):
    function: Register
    arguments: int
    return_values: int


@dataclass(frozen=True)
class TailCall(Instruction):
    function: Register
    arguments: int


@dataclass(frozen=True)
class Return(Instruction):
    """Return ``count - 1`` values starting at ``start``; 0 means up to top."""

    start: Register
    count: int


@dataclass(frozen=True)
class IterateNumericForLoop(Instruction):
    """``control`` holds internal counter, limit, step and external counter."""

    control: tuple[Register, ...]
    skip: int


@dataclass(frozen=True)
class InitNumericForLoop(Instruction):
    control: tuple[Register, ...]
    skip: int


@dataclass(frozen=True)
class IterateGenericForLoop(Instruction):
    """``vars`` starts with the external control variable."""

    generator: Register
    state: Register
    internal_control: Register
    vars: tuple[Register, ...]


@dataclass(frozen=True)
class SetList(Instruction):
    table: Register
    number_of_elements: int
    block_number: int


@dataclass(frozen=True)
class Close(Instruction):
    start: Register


@dataclass(frozen=True)
class Closure(Instruction):
    destination: Register
    function: ClosureIndex


@dataclass(frozen=True)
class VarArg(Instruction):
    destination: Register
    count: int


def _u8(value: int) -> int:
    return value & 0xFF


def _registers(first: int, last: int) -> tuple[Register, ...]:
    return tuple(Register(_u8(r)) for r in range(first, last + 1))


def _generic_for(layout: Layout) -> IterateGenericForLoop:
    a = layout.a
    count = _u8(layout.c)
    if count == 0:
        raise ParseError(
            "generic for loop needs at least one variable", recoverable=False
        )
    return IterateGenericForLoop(
        generator=Register(a),
        state=Register(a + 1),
        internal_control=Register(a + 2),
        vars=tuple(Register(r) for r in range(a + 3, a + 3 + count)),
    )


def _arithmetic(cls: type[_Arithmetic]) -> Callable[[Layout], Instruction]:
    return lambda l: cls(
        Register(l.a), register_or_constant(l.b), register_or_constant(l.c)
    )


def _comparison(cls: type[_Comparison]) -> Callable[[Layout], Instruction]:
    return lambda l: cls(
        register_or_constant(l.b), register_or_constant(l.c), l.a != 1
    )


_BUILDERS: dict[OperationCode, Callable[[Layout], Instruction]] = {
    OperationCode.Move: lambda l: Move(Register(l.a), Register(_u8(l.b))),
    OperationCode.LoadConstant: lambda l: LoadConstant(
        Register(l.a), Constant(l.b_x)
    ),
    OperationCode.LoadBoolean: lambda l: LoadBoolean(
        Register(l.a), l.b == 1, l.c == 1
    ),
    OperationCode.LoadNil: lambda l: LoadNil(
        tuple(Register(r) for r in range(l.a, _u8(l.b) + 1))
    ),
    OperationCode.GetUpvalue: lambda l: GetUpvalue(
        Register(l.a), Upvalue(_u8(l.b))
    ),
    OperationCode.GetGlobal: lambda l: GetGlobal(Register(l.a), Constant(l.b_x)),
    OperationCode.GetIndex: lambda l: GetIndex(
        Register(l.a), Register(_u8(l.b)), register_or_constant(l.c)
    ),
    OperationCode.SetGlobal: lambda l: SetGlobal(Constant(l.b_x), Register(l.a)),
    OperationCode.SetUpvalue: lambda l: SetUpvalue(
        Upvalue(_u8(l.b)), Register(l.a)
    ),
    OperationCode.SetIndex: lambda l: SetIndex(
        Register(l.a), register_or_constant(l.b), register_or_constant(l.c)
    ),
    OperationCode.NewTable: lambda l: NewTable(Register(l.a), _u8(l.b), _u8(l.c)),
    OperationCode.PrepMethodCall: lambda l: PrepMethodCall(
        Register(l.a),
        Register(l.a + 1),
        Register(_u8(l.b)),
        register_or_constant(l.c),
    ),
    OperationCode.Add: _arithmetic(Add),
    OperationCode.Subtract: _arithmetic(Sub),
    OperationCode.Multiply: _arithmetic(Mul),
    OperationCode.Divide: _arithmetic(Div),
    OperationCode.Modulo: _arithmetic(Mod),
    OperationCode.Power: _arithmetic(Pow),
    OperationCode.Minus: lambda l: Minus(Register(l.a), Register(_u8(l.b))),
    OperationCode.Not: lambda l: Not(Register(l.a), Register(_u8(l.b))),
    OperationCode.Length: lambda l: Length(Register(l.a), Register(_u8(l.b))),
    OperationCode.Concatenate: lambda l: Concatenate(
        Register(l.a), _registers(l.b, l.c)
    ),
    OperationCode.Jump: lambda l: Jump(l.b_sx),
    OperationCode.Equal: _comparison(Equal),
    OperationCode.LessThan: _comparison(LessThan),
    OperationCode.LessThanOrEqual: _comparison(LessThanOrEqual),
    OperationCode.Test: lambda l: Test(Register(l.a), l.c != 1),
    OperationCode.TestSet: lambda l: TestSet(
        Register(l.a), Register(_u8(l.b)), l.c != 1
    ),
    OperationCode.Call: lambda l: Call(Register(l.a), _u8(l.b), _u8(l.c)),
    OperationCode.TailCall: lambda l: TailCall(Register(l.a), _u8(l.b)),
    OperationCode.Return: lambda l: Return(Register(l.a), _u8(l.b)),
    OperationCode.IterateNumericForLoop: lambda l: IterateNumericForLoop(
        tuple(Register(r) for r in range(l.a, l.a + 5)), l.b_sx
    ),
    OperationCode.InitNumericForLoop: lambda l: InitNumericForLoop(
        tuple(Register(r) for r in range(l.a, l.a + 5)), l.b_sx
    ),
    OperationCode.IterateGenericForLoop: _generic_for,
    OperationCode.SetList: lambda l: SetList(Register(l.a), _u8(l.b), _u8(l.c)),
    OperationCode.Close: lambda l: Close(Register(l.a)),
    OperationCode.Closure: lambda l: Closure(Register(l.a), ClosureIndex(l.b_x)),
    OperationCode.VarArg: lambda l: VarArg(Register(l.a), _u8(l.b)),
}


def decode_instruction(word: int) -> Instruction:
    """Decode one 32-bit instruction word."""
    operation = parse_operation_code(word & 0xFF)
    layout = decode_layout(word, operation.layout())
    builder = _BUILDERS.get(operation)
    if builder is None:
        raise ParseError(f"cannot decode {operation.name}", recoverable=False)
    return builder(layout)


def parse_instruction(reader: ByteReader) -> Instruction:
    """Read and decode one little-endian instruction word."""
    return decode_instruction(reader.read_u32())