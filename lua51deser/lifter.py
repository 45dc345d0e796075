"""Lifting whole function prototypes into control flow graphs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from . import ast
from . import instruction as ins
from .argument import Register
from .cfg import BlockEdge, BranchType, ControlFlowGraph
from .chunk import parse_chunk
from .function import Function
from .lift_block import BlockLifter, LiftError

_TWO_WAY = (
    ins.Equal,
    ins.LessThan,
    ins.LessThanOrEqual,
    ins.Test,
    ins.TestSet,
    ins.IterateGenericForLoop,
)


@dataclass(eq=False)
class LiftedFunction:
    """A lifted prototype: its graph and the variables it captures.

    Instances are compared by identity, so one can stand for the function in
    closure expressions.
    """

    bytecode: Function
    graph: ControlFlowGraph
    upvalues: list = field(default_factory=list)


class Lifter:
    """Turns one function prototype into a graph of basic blocks.

    Nested prototypes met along the way are lifted too and appended to
    ``lifted``, innermost first.
    """

    def __init__(
        self, bytecode: Function, lifted: Optional[list[LiftedFunction]] = None
    ) -> None:
        if not bytecode.code:
            raise LiftError("function has no instructions")
        self.bytecode = bytecode
        self.lifted = lifted if lifted is not None else []
        self.graph = ControlFlowGraph()
        self.nodes: dict[int, int] = {}
        self.registers: dict[Register, ast.Variable] = {}
        self.upvalues: list[ast.Variable] = []
        self._result: Optional[LiftedFunction] = None
        self._create_block_map()
        self._allocate_locals()

    @staticmethod
    def _target(index: int, skip: int) -> int:
        destination = index + 1 + skip
        if destination < 0:
            raise LiftError(f"instruction {index} jumps before the start of the code")
        return destination

    def _add_node(self, index: int) -> None:
        if index not in self.nodes:
            self.nodes[index] = self.graph.new_block()

    def _node(self, index: int) -> int:
        try:
            return self.nodes[index]
        except KeyError:
            raise LiftError(f"no block starts at instruction {index}") from None

    def _create_block_map(self) -> None:
        self._add_node(0)
        for index, insn in enumerate(self.bytecode.code):
            if isinstance(insn, ins.SetList) and insn.block_number == 0:
                raise LiftError("set list with block number 0 is unsupported")
            if isinstance(insn, ins.LoadBoolean) and insn.skip_next:
                self._add_node(index + 1)
                self._add_node(index + 2)
            elif isinstance(insn, _TWO_WAY):
                self._add_node(index + 1)
                self._add_node(index + 2)
            elif isinstance(
                insn, (ins.Jump, ins.IterateNumericForLoop, ins.InitNumericForLoop)
            ):
                self._add_node(self._target(index, insn.skip))
                self._add_node(index + 1)
            elif isinstance(insn, ins.Return):
                self._add_node(index + 1)

    def _allocate_locals(self) -> None:
        self.upvalues = [
            ast.Variable() for _ in range(self.bytecode.number_of_upvalues)
        ]
        for slot in range(self.bytecode.maximum_stack_size):
            local = ast.Variable()
            if slot < self.bytecode.number_of_parameters:
                self.graph.parameters.append(local)
            self.registers[Register(slot)] = local

    def code_ranges(self) -> list[tuple[int, int]]:
        """Inclusive (start, end) instruction ranges of every basic block."""
        starts = sorted(self.nodes)
        ends = [s - 1 for s in starts[1:]] + [len(self.bytecode.code) - 1]
        return list(zip(starts, ends))

    def _lift_nested(self, prototype: Function) -> LiftedFunction:
        nested = lift_function(prototype, self.lifted)
        self.lifted.append(nested)
        return nested

    def _set_edges(self, start: int, end: int) -> None:
        code = self.bytecode.code
        if end >= len(code):
            raise LiftError(f"block ending at {end} lies past the code")
        node = self._node(start)
        insn = code[end]
        if isinstance(insn, _TWO_WAY):
            self.graph.set_edges(
                node,
                [
                    (self._node(end + 1), BlockEdge(BranchType.Then)),
                    (self._node(end + 2), BlockEdge(BranchType.Else)),
                ],
            )
        elif isinstance(insn, ins.IterateNumericForLoop):
            self.graph.set_edges(
                node,
                [
                    (self._node(self._target(end, insn.skip)), BlockEdge(BranchType.Then)),
                    (self._node(end + 1), BlockEdge(BranchType.Else)),
                ],
            )
        elif isinstance(insn, (ins.Jump, ins.InitNumericForLoop)):
            self.graph.set_edges(
                node,
                [
                    (
                        self._node(self._target(end, insn.skip)),
                        BlockEdge(BranchType.Unconditional),
                    )
                ],
            )
        elif isinstance(insn, ins.Return):
            pass
        elif isinstance(insn, ins.LoadBoolean):
            successor = self._node(end + 1 + int(insn.skip_next))
            self.graph.set_edges(
                node, [(successor, BlockEdge(BranchType.Unconditional))]
            )
        elif end + 1 != len(code):
            self.graph.set_edges(
                node, [(self._node(end + 1), BlockEdge(BranchType.Unconditional))]
            )

    def _insert_stack_init(self) -> None:
        node = self.graph.new_block()
        block = self.graph.block(node)
        parameters = self.graph.parameters
        for local in self.registers.values():
            if not any(local is p for p in parameters):
                block.append(ast.Assign([local], [ast.Literal(None)]))
        self.graph.set_edges(
            node, [(self._node(0), BlockEdge(BranchType.Unconditional))]
        )
        self.graph.set_entry(node)

    def _place_loop_statements(self, insert_between: dict) -> None:
        for node, (successor, statement) in insert_between.items():
            if len(self.graph.predecessors(successor)) == 1:
                self.graph.block(successor).insert(0, statement)
            else:
                between = self.graph.new_block()
                self.graph.block(between).append(statement)
                self.graph.set_edges(
                    between, [(successor, BlockEdge(BranchType.Unconditional))]
                )
                self.graph.redirect_edges(node, successor, between)

    def lift(self) -> LiftedFunction:
        """Build the graph; later calls return the same result."""
        if self._result is not None:
            return self._result
        blocks = BlockLifter(
            self.bytecode,
            self.graph,
            self.nodes,
            self.registers,
            self.upvalues,
            lift_closure=self._lift_nested,
        )
        for start, end in self.code_ranges():
            if start <= end:
                blocks.lift(start, end)
            self._set_edges(start, end)
        self._insert_stack_init()
        self._place_loop_statements(blocks.insert_between)
        self._result = LiftedFunction(self.bytecode, self.graph, self.upvalues)
        return self._result


def lift_function(
    bytecode: Function, lifted: Optional[list[LiftedFunction]] = None
) -> LiftedFunction:
    """Lift one prototype; nested prototypes are appended to ``lifted``."""
    return Lifter(bytecode, lifted).lift()


def lift_chunk(data: bytes) -> list[LiftedFunction]:
    """Parse and lift a chunk; the main function comes first."""
    chunk = parse_chunk(data)
    lifted: list[LiftedFunction] = []
    main = lift_function(chunk.function, lifted)
    lifted.append(main)
    lifted.reverse()
    return lifted