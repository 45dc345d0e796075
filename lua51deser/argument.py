"""Typed instruction operands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

_CONSTANT_FLAG = 256


@dataclass(frozen=True)
class Register:
    """A stack slot."""

    index: int


@dataclass(frozen=True)
class Constant:
    """An index into the function's constant table."""

    index: int


@dataclass(frozen=True)
class Upvalue:
    """An index into the function's upvalue list."""

    index: int


@dataclass(frozen=True)
class ClosureIndex:
    """An index into the function's nested prototypes."""

    index: int


RegisterOrConstant = Union[Register, Constant]


def register_or_constant(value: int) -> RegisterOrConstant:
    """Decode an RK operand: values above 255 refer to constants."""
    if value >= _CONSTANT_FLAG:
        return Constant(value - _CONSTANT_FLAG)
    return Register(value)