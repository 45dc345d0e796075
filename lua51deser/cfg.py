"""A control flow graph of basic blocks holding lifted statements."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, Optional


class BranchType(Enum):
    Unconditional = auto()
    Then = auto()
    Else = auto()


@dataclass(frozen=True)
class BlockEdge:
    branch_type: BranchType


class ControlFlowGraph:
    """Basic blocks identified by integers, joined by labelled edges.

    Outgoing edges keep the order in which they were set.
    """

    def __init__(self) -> None:
        self._blocks: dict[int, list] = {}
        self._edges: dict[int, list[tuple[int, BlockEdge]]] = {}
        self._next = 0
        self.entry: Optional[int] = None
        self.parameters: list = []
        self.is_variadic = False

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, node: object) -> bool:
        return node in self._blocks

    def __iter__(self):
        return iter(self._blocks)

    def _check(self, node: int) -> None:
        if node not in self._blocks:
            raise KeyError(f"no block {node}")

    def new_block(self) -> int:
        """Add an empty block and return its node."""
        node = self._next
        self._next += 1
        self._blocks[node] = []
        self._edges[node] = []
        return node

    def block(self, node: int) -> list:
        """The statements of ``node``; the list may be changed in place."""
        self._check(node)
        return self._blocks[node]

    def set_edges(self, node: int, edges: Iterable[tuple[int, BlockEdge]]) -> None:
        """Replace every outgoing edge of ``node``."""
        self._check(node)
        new_edges = list(edges)
        for target, _ in new_edges:
            self._check(target)
        self._edges[node] = new_edges

    def successors(self, node: int) -> list[tuple[int, BlockEdge]]:
        """Outgoing edges of ``node`` as (target, edge) pairs."""
        self._check(node)
        return list(self._edges[node])

    def predecessors(self, node: int) -> list[int]:
        """Source of every edge entering ``node``, once per edge."""
        self._check(node)
        return [
            source
            for source, edges in self._edges.items()
            for target, _ in edges
            if target == node
        ]

    def redirect_edges(self, source: int, old_target: int, new_target: int) -> None:
        """Point the edges from ``source`` to ``old_target`` at ``new_target``."""
        self._check(source)
        self._check(old_target)
        self._check(new_target)
        self._edges[source] = [
            (new_target if target == old_target else target, edge)
            for target, edge in self._edges[source]
        ]

    def set_entry(self, node: int) -> None:
        self._check(node)
        self.entry = node