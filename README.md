# lua51deser

Read compiled Lua 5.1 chunks (the output of `luac`) and turn them into
Python objects: a header, a tree of function prototypes and decoded
instructions. A lifter then turns each function into a control-flow graph
whose blocks hold simple statements, ready for further analysis.

Only the official little-endian format with 4-byte `int`, 4-byte `size_t`,
4-byte instructions and 8-byte floating-point numbers is accepted. Malformed
or unsupported input raises `ParseError` from `lua51deser.reader`.

The package has no dependencies beyond the standard library.

## Parsing a chunk

```python
from lua51deser.chunk import parse_chunk

with open("script.luac", "rb") as handle:
    chunk = parse_chunk(handle.read())

main = chunk.function
print(main.line_defined, main.maximum_stack_size)
for instruction in main.code:
    print(instruction)
for constant in main.constants:
    print(constant)
for closure in main.closures:
    print(closure.number_of_parameters, len(closure.code))
```

Constants are plain Python values: `None` for nil, `bool`, `float`, and
`bytes` for strings (without the terminating zero byte). Each `Function` also
carries its debug information: `positions` (instruction index and source
line), `locals` (name and live instruction range) and `upvalues` (names).
Stripped chunks leave these lists empty. Bytes after the main function are
ignored.

The pieces can be used on their own: `parse_header` in `lua51deser.header`,
`parse_function` in `lua51deser.function`, `parse_value`, `parse_string` and
`parse_strings` in `lua51deser.value`, `parse_locals` in `lua51deser.local`,
`parse_positions` in `lua51deser.position`, all reading from a `ByteReader`
(`lua51deser.reader`).

## Decoding single instructions

```python
from lua51deser.instruction import decode_instruction, Move

instruction = decode_instruction(0x00800040)
assert isinstance(instruction, Move)
assert instruction.destination.index == 1 and instruction.source.index == 1
```

Instructions are small immutable dataclasses such as `Move`, `LoadConstant`,
`Call`, `Jump` or `IterateGenericForLoop`. Operands are `Register`,
`Constant`, `Upvalue` and `ClosureIndex` from `lua51deser.argument`; an
operand that may name either a register or a constant is decoded by
`register_or_constant` (values of 256 and above are constants).
`OperationCode`, `parse_operation_code` and `decode_layout` in
`lua51deser.opcode` expose the lower-level decoding.

## Lifting to a control-flow graph

```python
from lua51deser.lifter import lift_chunk

for lifted in lift_chunk(data):       # main function first
    graph = lifted.graph              # a ControlFlowGraph
    for node in graph:
        print(node, graph.block(node), graph.successors(node))
```

`lift_function` in `lua51deser.lifter` lifts a single prototype, and
`Lifter` gives access to the intermediate steps such as `code_ranges`.
Each `LiftedFunction` holds the prototype, its `ControlFlowGraph`
(`lua51deser.cfg`) and the variables it captures. Blocks are lists of
statements from `lua51deser.ast` — `Assign`, `If`, `Return`, `SetList`,
`Close`, `NumForInit`, `NumForNext` and bare `Call`s — joined by `BlockEdge`s
labelled `Then`, `Else` or `Unconditional`. Every graph gets an entry block
that sets its non-parameter registers to nil, and nested closures are lifted
along with their parent; a `Closure` expression refers to the nested
`LiftedFunction`.

Problems found while lifting raise `LiftError` (`lua51deser.lift_block`).

## What it does not do

- It does not structure the graphs into loops and conditionals, and it does
  not print Lua source code.
- `SetList` instructions whose block number is stored in the following
  instruction word are not supported; lifting them raises `LiftError`.
- There is no command-line tool; the package is used as a library.

## Running the tests

Install the `test` extra and run `pytest` from the project root.