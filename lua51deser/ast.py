"""Expression and statement nodes produced by lifting bytecode."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .value import Value


class Variable:
    """A local variable; two variables are the same only if they are one object."""

    __slots__ = ("name",)

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name

    def __repr__(self) -> str:
        label = self.name if self.name is not None else hex(id(self))
        return f"Variable({label})"


class Literal:
    """A constant value: nil (None), boolean, number or byte string."""

    __slots__ = ("value",)

    def __init__(self, value: Value) -> None:
        if value is not None and not isinstance(value, (bool, float, bytes)):
            raise TypeError(f"unsupported literal type {type(value).__name__}")
        self.value = value

    @property
    def is_string(self) -> bool:
        return isinstance(self.value, bytes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Literal):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((type(self.value), self.value))

    def __repr__(self) -> str:
        return f"Literal({self.value!r})"


def literal_from_value(value: Value) -> Literal:
    """Turn a deserialised constant into a literal."""
    if isinstance(value, int) and not isinstance(value, bool):
        raise TypeError("integer constants are not part of Lua 5.1 bytecode")
    return Literal(value)


@dataclass(frozen=True)
class Global:
    name: bytes


@dataclass(frozen=True)
class Index:
    left: "Expression"
    right: "Expression"


class UnaryOperation(Enum):
    Not = "not"
    Length = "#"
    Negate = "-"


@dataclass(frozen=True)
class Unary:
    value: "Expression"
    operation: UnaryOperation


class BinaryOperation(Enum):
    Add = "+"
    Sub = "-"
    Mul = "*"
    Div = "/"
    Mod = "%"
    Pow = "^"
    Concat = ".."
    Equal = "=="
    NotEqual = "~="
    LessThan = "<"
    LessThanOrEqual = "<="


@dataclass(frozen=True)
class Binary:
    left: "Expression"
    right: "Expression"
    operation: BinaryOperation


@dataclass(frozen=True)
class Call:
    value: "Expression"
    arguments: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", tuple(self.arguments))


@dataclass(frozen=True)
class VarArg:
    """The ``...`` expression."""


@dataclass(frozen=True)
class Select:
    """A multi-valued expression (a call or ``...``) spread over several targets."""

    value: Union[Call, VarArg]


@dataclass(frozen=True)
class Table:
    """An empty table constructor."""


@dataclass(frozen=True, eq=False)
class Closure:
    """A nested function together with the variables it captures by reference."""

    function: object
    upvalues: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "upvalues", tuple(self.upvalues))


Expression = Union[
    Variable, Literal, Global, Index, Unary, Binary, Call, VarArg, Select, Table, Closure
]


@dataclass
class Assign:
    left: list
    right: list


@dataclass
class If:
    condition: Expression
    then_block: list = field(default_factory=list)
    else_block: list = field(default_factory=list)


@dataclass
class Return:
    values: list = field(default_factory=list)


@dataclass
class SetList:
    """Store ``values`` (then ``tail``, if any) into ``table`` from ``index`` on."""

    table: Variable
    index: int
    values: list
    tail: Optional[Expression] = None


@dataclass
class Close:
    locals: list = field(default_factory=list)


@dataclass
class NumForInit:
    counter: Variable
    limit: Variable
    step: Variable


@dataclass
class NumForNext:
    counter: Variable
    limit: Expression
    step: Expression


Statement = Union[
    Assign, If, Return, SetList, Close, NumForInit, NumForNext, Call
]