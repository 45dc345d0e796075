import pytest

from lua51deser import ast
from lua51deser import instruction as ins
from lua51deser.argument import ClosureIndex, Constant, Register, Upvalue
from lua51deser.cfg import ControlFlowGraph
from lua51deser.function import Function
from lua51deser.lift_block import BlockLifter, LiftError

R = Register


def _function(code, constants=(), stack=6, upvalues=0, closures=()):
    return Function(
        name=b"",
        line_defined=0,
        last_line_defined=0,
        number_of_upvalues=upvalues,
        number_of_parameters=0,
        vararg_flag=0,
        maximum_stack_size=stack,
        code=list(code),
        constants=list(constants),
        closures=list(closures),
    )


def _make(code, constants=(), stack=6, upvalues=0, closures=(), lift_closure=None):
    fn = _function(code, constants, stack, upvalues, closures)
    graph = ControlFlowGraph()
    nodes = {i: graph.new_block() for i in range(len(code) + 3)}
    registers = {R(i): ast.Variable(f"r{i}") for i in range(stack)}
    ups = [ast.Variable(f"u{i}") for i in range(upvalues)]
    lifter = BlockLifter(fn, graph, nodes, registers, ups, lift_closure=lift_closure)
    return lifter


def test_move():
    lifter = _make([ins.Move(R(0), R(1))])
    (stat,) = lifter.lift(0, 0)
    assert stat.left == [lifter.registers[R(0)]]
    assert stat.right == [lifter.registers[R(1)]]


def test_lift_appends_to_start_block():
    lifter = _make([ins.Move(R(0), R(1))])
    block = lifter.graph.block(lifter.nodes[0])
    block.append("existing")
    result = lifter.lift(0, 0)
    assert result is block
    assert block[0] == "existing"
    assert len(block) == 2


def test_load_constant_string():
    lifter = _make([ins.LoadConstant(R(0), Constant(0))], constants=[b"hi"])
    (stat,) = lifter.lift(0, 0)
    assert stat.right == [ast.Literal(b"hi")]


def test_constant_is_cached():
    lifter = _make([], constants=[1.5])
    assert lifter.constant(0) is lifter.constant(Constant(0))
    assert lifter.constant(0) == ast.Literal(1.5)


def test_constant_out_of_range():
    lifter = _make([], constants=[])
    with pytest.raises(LiftError):
        lifter.constant(0)


def test_register_or_constant():
    lifter = _make([], constants=[2.0])
    assert lifter.register_or_constant(R(2)) is lifter.registers[R(2)]
    assert lifter.register_or_constant(Constant(0)) == ast.Literal(2.0)


def test_get_global_requires_string():
    lifter = _make([ins.GetGlobal(R(0), Constant(0))], constants=[3.0])
    with pytest.raises(LiftError):
        lifter.lift(0, 0)


def test_get_and_set_global():
    lifter = _make(
        [ins.GetGlobal(R(0), Constant(0)), ins.SetGlobal(Constant(0), R(1))],
        constants=[b"print"],
    )
    get, put = lifter.lift(0, 1)
    assert get.right == [ast.Global(b"print")]
    assert put.left == [ast.Global(b"print")]
    assert put.right == [lifter.registers[R(1)]]


def test_load_nil_assigns_each_register():
    lifter = _make([ins.LoadNil((R(0), R(1), R(2)))])
    stats = lifter.lift(0, 0)
    assert [s.left[0] for s in stats] == [lifter.registers[R(i)] for i in range(3)]
    assert all(s.right == [ast.Literal(None)] for s in stats)


def test_add_binary():
    lifter = _make([ins.Add(R(0), R(1), Constant(0))], constants=[1.0])
    (stat,) = lifter.lift(0, 0)
    assert stat.right == [
        ast.Binary(lifter.registers[R(1)], ast.Literal(1.0), ast.BinaryOperation.Add)
    ]


def test_equal_inverted():
    lifter = _make([ins.Equal(R(0), R(1), True)])
    (stat,) = lifter.lift(0, 0)
    expected = ast.Unary(
        ast.Binary(
            lifter.registers[R(0)], lifter.registers[R(1)], ast.BinaryOperation.Equal
        ),
        ast.UnaryOperation.Not,
    )
    assert stat.condition == expected
    assert stat.then_block == [] and stat.else_block == []


def test_concatenate_is_right_nested():
    lifter = _make([ins.Concatenate(R(3), (R(0), R(1), R(2)))])
    (stat,) = lifter.lift(0, 0)
    r = lifter.registers
    concat = ast.BinaryOperation.Concat
    assert stat.right == [
        ast.Binary(r[R(0)], ast.Binary(r[R(1)], r[R(2)], concat), concat)
    ]


def test_call_single_result_is_statement():
    lifter = _make([ins.Call(R(0), 2, 1)])
    (stat,) = lifter.lift(0, 0)
    assert stat == ast.Call(lifter.registers[R(0)], [lifter.registers[R(1)]])


def test_call_multiple_results():
    lifter = _make([ins.Call(R(0), 1, 3)])
    (stat,) = lifter.lift(0, 0)
    assert stat.left == [lifter.registers[R(0)], lifter.registers[R(1)]]
    assert stat.right == [ast.Select(ast.Call(lifter.registers[R(0)], []))]


def test_open_call_feeds_return():
    lifter = _make([ins.Call(R(0), 1, 0), ins.Return(R(0), 0)])
    (stat,) = lifter.lift(0, 1)
    assert stat.values == [ast.Call(lifter.registers[R(0)], [])]


def test_vararg_feeds_call_arguments():
    lifter = _make([ins.VarArg(R(2), 0), ins.Call(R(0), 0, 1)])
    (stat,) = lifter.lift(0, 1)
    r = lifter.registers
    assert stat == ast.Call(r[R(0)], [r[R(1)], ast.VarArg()])


def test_open_return_without_producer():
    lifter = _make([ins.Return(R(0), 0)])
    with pytest.raises(LiftError):
        lifter.lift(0, 0)


def test_return_stops_lifting():
    lifter = _make([ins.Return(R(0), 1), ins.Move(R(0), R(1))])
    stats = lifter.lift(0, 1)
    assert stats == [ast.Return([])]


def test_testset_assigns_in_following_block():
    lifter = _make([ins.TestSet(R(0), R(1), False), ins.Jump(0)])
    (stat,) = lifter.lift(0, 0)
    assert stat.condition is lifter.registers[R(1)]
    following = lifter.graph.block(lifter.nodes[1])
    assert following == [ast.Assign([lifter.registers[R(0)]], [lifter.registers[R(1)]])]


def test_prep_method_call():
    lifter = _make([ins.PrepMethodCall(R(0), R(1), R(2), Constant(0))], constants=[b"m"])
    first, second = lifter.lift(0, 0)
    r = lifter.registers
    assert first == ast.Assign([r[R(1)]], [r[R(2)]])
    assert second.right == [ast.Index(r[R(2)], ast.Literal(b"m"))]


def test_upvalues():
    lifter = _make([ins.GetUpvalue(R(0), Upvalue(0)), ins.SetUpvalue(Upvalue(0), R(1))], upvalues=1)
    get, put = lifter.lift(0, 1)
    assert get.right == [lifter.upvalues[0]]
    assert put.left == [lifter.upvalues[0]]


def test_closure_captures_following_instructions():
    nested = _function([], upvalues=2)
    seen = []

    def lift_closure(prototype):
        seen.append(prototype)
        return "handle"

    lifter = _make(
        [
            ins.Closure(R(0), ClosureIndex(0)),
            ins.Move(R(0), R(3)),
            ins.GetUpvalue(R(0), Upvalue(0)),
        ],
        upvalues=1,
        closures=[nested],
        lift_closure=lift_closure,
    )
    stats = lifter.lift(0, 2)
    assert len(stats) == 1
    closure = stats[0].right[0]
    assert closure.function == "handle"
    assert closure.upvalues == (lifter.registers[R(3)], lifter.upvalues[0])
    assert seen == [nested]


def test_closure_rejects_other_capture():
    nested = _function([], upvalues=1)
    lifter = _make(
        [ins.Closure(R(0), ClosureIndex(0)), ins.Jump(0)],
        closures=[nested],
        lift_closure=lambda p: "handle",
    )
    with pytest.raises(LiftError):
        lifter.lift(0, 1)


def test_set_list_index():
    lifter = _make([ins.SetList(R(0), 2, 2)])
    (stat,) = lifter.lift(0, 0)
    assert stat.index == 51
    assert stat.values == [lifter.registers[R(1)], lifter.registers[R(2)]]
    assert stat.tail is None


def test_close_covers_rest_of_stack():
    lifter = _make([ins.Close(R(4))], stack=6)
    (stat,) = lifter.lift(0, 0)
    assert stat.locals == [lifter.registers[R(4)], lifter.registers[R(5)]]


def test_numeric_for_loop_records_insert_between():
    control = tuple(R(i) for i in range(5))
    lifter = _make([ins.Jump(0), ins.IterateNumericForLoop(control, -2)])
    stats = lifter.lift(1, 1)
    r = lifter.registers
    assert stats == [ast.NumForNext(r[R(0)], r[R(1)], r[R(2)])]
    successor, stat = lifter.insert_between[lifter.nodes[1]]
    assert successor == lifter.nodes[0]
    assert stat == ast.Assign([r[R(3)]], [r[R(0)]])


def test_generic_for_loop():
    lifter = _make([ins.IterateGenericForLoop(R(0), R(1), R(2), (R(3), R(4)))], stack=6)
    assign, branch = lifter.lift(0, 0)
    r = lifter.registers
    assert assign.left == [r[R(3)], r[R(4)]]
    assert assign.right == [ast.Call(r[R(0)], [r[R(1)], r[R(2)]])]
    assert branch.condition == ast.Binary(
        r[R(3)], ast.Literal(None), ast.BinaryOperation.NotEqual
    )
    successor, stat = lifter.insert_between[lifter.nodes[0]]
    assert successor == lifter.nodes[1]
    assert stat == ast.Assign([r[R(2)]], [r[R(3)]])


def test_invalid_range():
    lifter = _make([ins.Move(R(0), R(1))])
    with pytest.raises(LiftError):
        lifter.lift(0, 1)