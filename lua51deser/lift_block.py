"""Lifting a straight run of bytecode instructions into statements."""

from __future__ import annotations

from typing import Callable, Iterator, Optional, Union

from . import ast
from . import instruction as ins
from .argument import Constant, Register, RegisterOrConstant
from .cfg import ControlFlowGraph
from .function import Function

FIELDS_PER_FLUSH = 50

_ARITHMETIC = {
    ins.Add: ast.BinaryOperation.Add,
    ins.Sub: ast.BinaryOperation.Sub,
    ins.Mul: ast.BinaryOperation.Mul,
    ins.Div: ast.BinaryOperation.Div,
    ins.Mod: ast.BinaryOperation.Mod,
    ins.Pow: ast.BinaryOperation.Pow,
}

_COMPARISON = {
    ins.Equal: ast.BinaryOperation.Equal,
    ins.LessThan: ast.BinaryOperation.LessThan,
    ins.LessThanOrEqual: ast.BinaryOperation.LessThanOrEqual,
}

_UNARY = {
    ins.Not: ast.UnaryOperation.Not,
    ins.Length: ast.UnaryOperation.Length,
    ins.Minus: ast.UnaryOperation.Negate,
}


class LiftError(Exception):
    """Raised when bytecode cannot be turned into statements."""


class BlockLifter:
    """Lifts instruction ranges of one function into the blocks of a graph.

    ``nodes`` maps the index of the first instruction of each basic block to
    its node in ``graph``; ``registers`` maps stack slots to variables and
    ``upvalues`` lists the variables the function captures. Nested functions
    are handed to ``lift_closure``, whose result becomes the function of the
    closure expression. Statements that belong between a loop block and its
    body are collected in ``insert_between`` as ``{node: (successor, stat)}``.
    """

    def __init__(
        self,
        bytecode: Function,
        graph: ControlFlowGraph,
        nodes: dict[int, int],
        registers: dict[Register, ast.Variable],
        upvalues: list[ast.Variable],
        lift_closure: Optional[Callable[[Function], object]] = None,
    ) -> None:
        self.bytecode = bytecode
        self.graph = graph
        self.nodes = nodes
        self.registers = registers
        self.upvalues = upvalues
        self.lift_closure = lift_closure
        self.insert_between: dict[int, tuple[int, object]] = {}
        self._constants: dict[int, ast.Literal] = {}

    def constant(self, index: Union[int, Constant]) -> ast.Literal:
        """The literal for constant ``index``, created once and then reused."""
        if isinstance(index, Constant):
            index = index.index
        literal = self._constants.get(index)
        if literal is None:
            if not 0 <= index < len(self.bytecode.constants):
                raise LiftError(f"constant {index} does not exist")
            literal = ast.literal_from_value(self.bytecode.constants[index])
            self._constants[index] = literal
        return literal

    def register_or_constant(self, operand: RegisterOrConstant):
        """The variable or literal an RK operand refers to."""
        if isinstance(operand, Constant):
            return self.constant(operand)
        return self._local(operand)

    def _local(self, register: Register) -> ast.Variable:
        try:
            return self.registers[register]
        except KeyError:
            raise LiftError(f"register {register.index} does not exist") from None

    def _locals(self, first: int, stop: int) -> list[ast.Variable]:
        return [self._local(Register(r)) for r in range(first, stop)]

    def _upvalue(self, index: int) -> ast.Variable:
        if not 0 <= index < len(self.upvalues):
            raise LiftError(f"upvalue {index} does not exist")
        return self.upvalues[index]

    def _node(self, index: int) -> int:
        try:
            return self.nodes[index]
        except KeyError:
            raise LiftError(f"no block starts at instruction {index}") from None

    def _string_constant(self, constant: Constant) -> bytes:
        literal = self.constant(constant)
        if not literal.is_string:
            raise LiftError(f"constant {constant.index} is not a string")
        return literal.value

    def _insert_between(self, start: int, successor: int, statement) -> None:
        node = self._node(start)
        if node in self.insert_between:
            raise LiftError(f"block {node} already has a loop statement")
        self.insert_between[node] = (successor, statement)

    def lift(self, start: int, end: int) -> list:
        """Lift instructions ``start`` to ``end`` inclusive into their block.

        The statements are appended to the block that starts at ``start``,
        which is returned. Lifting stops after a return instruction.
        """
        if not 0 <= start <= end < len(self.bytecode.code):
            raise LiftError(f"invalid instruction range {start}..{end}")
        statements = self.graph.block(self._node(start))
        top: Optional[tuple[object, int]] = None

        def take_top() -> tuple[object, int]:
            nonlocal top
            if top is None:
                raise LiftError("variable number of values without a producer")
            value, top = top, None
            return value

        code: Iterator[ins.Instruction] = iter(self.bytecode.code[start : end + 1])
        for insn in code:
            kind = type(insn)
            if isinstance(insn, ins.Move):
                statements.append(
                    ast.Assign([self._local(insn.destination)], [self._local(insn.source)])
                )
            elif isinstance(insn, ins.LoadBoolean):
                statements.append(
                    ast.Assign(
                        [self._local(insn.destination)], [ast.Literal(insn.value)]
                    )
                )
            elif isinstance(insn, ins.LoadConstant):
                statements.append(
                    ast.Assign(
                        [self._local(insn.destination)], [self.constant(insn.source)]
                    )
                )
            elif isinstance(insn, ins.LoadNil):
                statements.extend(
                    ast.Assign([self._local(r)], [ast.Literal(None)])
                    for r in insn.registers
                )
            elif isinstance(insn, ins.GetGlobal):
                name = self._string_constant(insn.global_)
                statements.append(
                    ast.Assign([self._local(insn.destination)], [ast.Global(name)])
                )
            elif isinstance(insn, ins.SetGlobal):
                name = self._string_constant(insn.destination)
                statements.append(
                    ast.Assign([ast.Global(name)], [self._local(insn.value)])
                )
            elif isinstance(insn, ins.GetIndex):
                statements.append(
                    ast.Assign(
                        [self._local(insn.destination)],
                        [
                            ast.Index(
                                self._local(insn.object),
                                self.register_or_constant(insn.key),
                            )
                        ],
                    )
                )
            elif isinstance(insn, ins.Test):
                value = self._local(insn.value)
                if insn.invert:
                    value = ast.Unary(value, ast.UnaryOperation.Not)
                statements.append(ast.If(value))
            elif kind in _UNARY:
                statements.append(
                    ast.Assign(
                        [self._local(insn.destination)],
                        [ast.Unary(self._local(insn.operand), _UNARY[kind])],
                    )
                )
            elif isinstance(insn, ins.Return):
                first = insn.start.index
                if insn.count != 0:
                    values = self._locals(first, first + insn.count - 1)
                else:
                    tail, stop = take_top()
                    values = [*self._locals(first, stop), tail]
                statements.append(ast.Return(values))
                break
            elif isinstance(insn, ins.Jump):
                pass
            elif kind in _ARITHMETIC:
                statements.append(
                    ast.Assign(
                        [self._local(insn.destination)],
                        [
                            ast.Binary(
                                self.register_or_constant(insn.lhs),
                                self.register_or_constant(insn.rhs),
                                _ARITHMETIC[kind],
                            )
                        ],
                    )
                )
            elif isinstance(insn, ins.Concatenate):
                if len(insn.operands) < 2:
                    raise LiftError("concatenation needs at least two operands")
                *rest, left, right = insn.operands
                concat = ast.Binary(
                    self._local(left), self._local(right), ast.BinaryOperation.Concat
                )
                for register in reversed(rest):
                    concat = ast.Binary(
                        self._local(register), concat, ast.BinaryOperation.Concat
                    )
                statements.append(ast.Assign([self._local(insn.destination)], [concat]))
            elif kind in _COMPARISON:
                condition = ast.Binary(
                    self.register_or_constant(insn.lhs),
                    self.register_or_constant(insn.rhs),
                    _COMPARISON[kind],
                )
                if insn.invert:
                    condition = ast.Unary(condition, ast.UnaryOperation.Not)
                statements.append(ast.If(condition))
            elif isinstance(insn, ins.TestSet):
                value = self._local(insn.value)
                condition = (
                    ast.Unary(value, ast.UnaryOperation.Not) if insn.invert else value
                )
                statements.append(ast.If(condition))
                self.graph.block(self._node(end + 1)).append(
                    ast.Assign([self._local(insn.destination)], [value])
                )
            elif isinstance(insn, ins.PrepMethodCall):
                obj = self._local(insn.object)
                statements.append(ast.Assign([self._local(insn.self_arg)], [obj]))
                statements.append(
                    ast.Assign(
                        [self._local(insn.destination)],
                        [ast.Index(obj, self.register_or_constant(insn.method))],
                    )
                )
            elif isinstance(insn, (ins.Call, ins.TailCall)):
                base = insn.function.index
                if insn.arguments != 0:
                    arguments = self._locals(base + 1, base + insn.arguments)
                else:
                    tail, stop = take_top()
                    arguments = [*self._locals(base + 1, stop), tail]
                call = ast.Call(self._local(insn.function), arguments)
                results = insn.return_values if isinstance(insn, ins.Call) else 0
                if results == 1:
                    statements.append(call)
                elif results > 1:
                    statements.append(
                        ast.Assign(
                            self._locals(base, base + results - 1), [ast.Select(call)]
                        )
                    )
                else:
                    top = (call, base)
            elif isinstance(insn, ins.GetUpvalue):
                statements.append(
                    ast.Assign(
                        [self._local(insn.destination)],
                        [self._upvalue(insn.upvalue.index)],
                    )
                )
            elif isinstance(insn, ins.SetUpvalue):
                statements.append(
                    ast.Assign(
                        [self._upvalue(insn.destination.index)],
                        [self._local(insn.source)],
                    )
                )
            elif isinstance(insn, ins.VarArg):
                first = insn.destination.index
                if insn.count != 0:
                    statements.append(
                        ast.Assign(
                            self._locals(first, first + insn.count - 1),
                            [ast.Select(ast.VarArg())],
                        )
                    )
                else:
                    top = (ast.VarArg(), first)
            elif isinstance(insn, ins.Closure):
                statements.append(self._lift_closure(insn, code))
            elif isinstance(insn, ins.NewTable):
                statements.append(
                    ast.Assign([self._local(insn.destination)], [ast.Table()])
                )
            elif isinstance(insn, ins.SetList):
                if insn.block_number == 0:
                    raise LiftError("set list with block number 0 is unsupported")
                table = insn.table.index
                index = (insn.block_number - 1) * FIELDS_PER_FLUSH + 1
                if insn.number_of_elements != 0:
                    values = self._locals(table + 1, table + 1 + insn.number_of_elements)
                    tail = None
                else:
                    tail, stop = take_top()
                    values = self._locals(table + 1, stop)
                statements.append(
                    ast.SetList(self._local(insn.table), index, values, tail)
                )
            elif isinstance(insn, ins.Close):
                statements.append(
                    ast.Close(
                        self._locals(insn.start.index, self.bytecode.maximum_stack_size)
                    )
                )
            elif isinstance(insn, ins.SetIndex):
                key = self.register_or_constant(insn.key)
                value = self.register_or_constant(insn.value)
                statements.append(
                    ast.Assign([ast.Index(self._local(insn.object), key)], [value])
                )
            elif isinstance(insn, ins.InitNumericForLoop):
                counter, limit, step = (self._local(r) for r in insn.control[:3])
                statements.append(ast.NumForInit(counter, limit, step))
            elif isinstance(insn, ins.IterateNumericForLoop):
                counter, limit, step, external = (
                    self._local(r) for r in insn.control[:4]
                )
                statements.append(ast.NumForNext(counter, limit, step))
                body = self._node(end + 1 + insn.skip)
                self._insert_between(start, body, ast.Assign([external], [counter]))
            elif isinstance(insn, ins.IterateGenericForLoop):
                generator = self._local(insn.generator)
                state = self._local(insn.state)
                internal = self._local(insn.internal_control)
                variables = [self._local(r) for r in insn.vars]
                control = variables[0]
                statements.append(
                    ast.Assign(variables, [ast.Call(generator, [state, internal])])
                )
                statements.append(
                    ast.If(
                        ast.Binary(
                            control, ast.Literal(None), ast.BinaryOperation.NotEqual
                        )
                    )
                )
                body = self._node(end + 1)
                self._insert_between(start, body, ast.Assign([internal], [control]))
            else:
                raise LiftError(f"cannot lift {kind.__name__}")
        return statements

    def _lift_closure(
        self, insn: ins.Closure, code: Iterator[ins.Instruction]
    ) -> ast.Assign:
        index = insn.function.index
        if not 0 <= index < len(self.bytecode.closures):
            raise LiftError(f"nested function {index} does not exist")
        prototype = self.bytecode.closures[index]
        captured = []
        for _ in range(prototype.number_of_upvalues):
            following = next(code, None)
            if isinstance(following, ins.Move):
                captured.append(self._local(following.source))
            elif isinstance(following, ins.GetUpvalue):
                captured.append(self._upvalue(following.upvalue.index))
            else:
                raise LiftError("closure upvalue must be passed by move or upvalue")
        if self.lift_closure is None:
            raise LiftError("no way to lift nested functions was given")
        handle = self.lift_closure(prototype)
        return ast.Assign(
            [self._local(insn.destination)], [ast.Closure(handle, captured)]
        )