"""Lua 5.1 operation codes and instruction word layouts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum, auto
from typing import Union

from .reader import ParseError

_OPCODE_MASK = 0x3F
_MAX_SBX = ((1 << 18) - 1) >> 1


class LayoutKind(Enum):
    """How the operand bits of an instruction word are split."""

    BC = auto()
    BX = auto()
    BSX = auto()


class OperationCode(IntEnum):
    Move = 0
    LoadConstant = 1
    LoadBoolean = 2
    LoadNil = 3
    GetUpvalue = 4
    GetGlobal = 5
    GetIndex = 6
    SetGlobal = 7
    SetUpvalue = 8
    SetIndex = 9
    NewTable = 10
    PrepMethodCall = 11
    Add = 12
    Subtract = 13
    Multiply = 14
    Divide = 15
    Modulo = 16
    Power = 17
    Minus = 18
    Not = 19
    Length = 20
    Concatenate = 21
    Jump = 22
    Equal = 23
    LessThan = 24
    LessThanOrEqual = 25
    Test = 26
    TestSet = 27
    Call = 28
    TailCall = 29
    Return = 30
    IterateNumericForLoop = 31
    InitNumericForLoop = 32
    IterateGenericForLoop = 33
    SetList = 34
    Close = 35
    Closure = 36
    VarArg = 37

    def layout(self) -> LayoutKind:
        """The operand layout this operation uses."""
        if self in _BX_CODES:
            return LayoutKind.BX
        if self in _BSX_CODES:
            return LayoutKind.BSX
        return LayoutKind.BC


_BX_CODES = frozenset(
    {
        OperationCode.LoadConstant,
        OperationCode.GetGlobal,
        OperationCode.SetGlobal,
        OperationCode.Closure,
    }
)
_BSX_CODES = frozenset(
    {
        OperationCode.Jump,
        OperationCode.IterateNumericForLoop,
        OperationCode.InitNumericForLoop,
    }
)


@dataclass(frozen=True)
class LayoutBC:
    a: int
    b: int
    c: int


@dataclass(frozen=True)
class LayoutBX:
    a: int
    b_x: int


@dataclass(frozen=True)
class LayoutBSx:
    a: int
    b_sx: int


Layout = Union[LayoutBC, LayoutBX, LayoutBSx]


def parse_operation_code(byte: int) -> OperationCode:
    """Decode the operation code held in the low six bits of ``byte``."""
    code = byte & _OPCODE_MASK
    try:
        return OperationCode(code)
    except ValueError:
        raise ParseError(f"unknown operation code {code}", recoverable=False) from None


def decode_layout(word: int, kind: LayoutKind) -> Layout:
    """Split the operand fields out of a 32-bit instruction word."""
    a = (word >> 6) & 0xFF
    if kind is LayoutKind.BC:
        return LayoutBC(a=a, b=(word >> 23) & 0x1FF, c=(word >> 14) & 0x1FF)
    b_x = (word >> 14) & 0x3FFFF
    if kind is LayoutKind.BX:
        return LayoutBX(a=a, b_x=b_x)
    if kind is LayoutKind.BSX:
        return LayoutBSx(a=a, b_sx=b_x - _MAX_SBX)
    raise ParseError(f"unknown layout {kind!r}", recoverable=False)