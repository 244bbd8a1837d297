"""
Evaluator tests
Per-variant semantics, trace order and the sample programs
"""

import pytest
from environment import Environment
from expressions import (
  EXPRESSION_TYPES,
  ArithmeticOperator,
  BinaryOp,
  BooleanConstant,
  Comparison,
  ComparisonOperator,
  FunctionCall,
  FunctionDeclaration,
  If,
  IntegerConstant,
  Let,
  Variable,
  iter_preorder,
)
from interpreter import (
  EVALUATORS,
  TraceRecord,
  create_debug_interpreter,
  create_interpreter,
  discard_trace,
  eval_program,
  evaluate,
  format_result_line,
  format_trace_line,
)
from programs import SAMPLE_PROGRAMS, get_program, safe_divide_declaration
from values import NULL, BooleanValue, FunctionValue, IntegerValue, render_value


PLUS = ArithmeticOperator.PLUS
MINUS = ArithmeticOperator.MINUS
TIMES = ArithmeticOperator.TIMES
DIV = ArithmeticOperator.DIV
EQ = ComparisonOperator.EQ


def descriptions(records):
  return [record.description for record in records]


def equals(left, right):
  return Comparison(EQ, left, right)


class TestDispatch:
  """Every expression variant has an evaluator"""

  def test_dispatch_table_is_exhaustive(self):
    assert set(EVALUATORS) == set(EXPRESSION_TYPES)


class TestConstants:

  def test_integer_constant(self, empty_env, context):
    value, pc = evaluate(IntegerConstant(474), 0, empty_env, context)
    assert value.int_val == 474
    assert pc == 1

  def test_boolean_constant(self, empty_env, context):
    value, pc = evaluate(BooleanConstant(False), 10, empty_env, context)
    assert isinstance(value, BooleanValue)
    assert value.bool_val is False
    assert pc == 11


class TestArithmetic:
  """Test BinaryOp evaluation"""

  @pytest.mark.parametrize("op, left, right, expected", [
    (PLUS, 400, 74, 474),
    (MINUS, 3, 10, -7),
    (TIMES, -6, 7, -42),
    (DIV, 474, 3, 158),
    (DIV, 7, 2, 3),
    (DIV, -7, 2, -3),
    (DIV, 7, -2, -3),
    (DIV, -7, -2, 3),
  ])
  def test_binary_op(self, op, left, right, expected, empty_env, context):
    """Result matches the operator and the counter advances by three"""
    value, pc = evaluate(BinaryOp(op, IntegerConstant(left), IntegerConstant(right)), 0, empty_env, context)
    assert isinstance(value, IntegerValue)
    assert value.int_val == expected
    assert pc == 3

  def test_operands_left_to_right(self, empty_env, context, trace_records):
    expr = BinaryOp(MINUS, BinaryOp(PLUS, IntegerConstant(1), IntegerConstant(2)), IntegerConstant(3))
    value, pc = evaluate(expr, 5, empty_env, context)

    assert value.int_val == 0
    assert pc == 10
    assert trace_records == [
      TraceRecord(5, "BIN_OP:MINUS"),
      TraceRecord(6, "BIN_OP:PLUS"),
      TraceRecord(7, "INT_CONST:1"),
      TraceRecord(8, "INT_CONST:2"),
      TraceRecord(9, "INT_CONST:3"),
    ]


class TestComparison:
  """Test equality rules, including the cross-type cases"""

  def _compare(self, left, right, env, context):
    value, pc = evaluate(equals(left, right), 0, env, context)
    assert isinstance(value, BooleanValue)
    return value.bool_val

  def test_integers(self, empty_env, context):
    assert self._compare(IntegerConstant(158), IntegerConstant(158), empty_env, context) is True
    assert self._compare(IntegerConstant(158), IntegerConstant(159), empty_env, context) is False

  def test_booleans(self, empty_env, context):
    assert self._compare(BooleanConstant(True), BooleanConstant(True), empty_env, context) is True
    assert self._compare(BooleanConstant(True), BooleanConstant(False), empty_env, context) is False

  def test_mismatched_types_are_false(self, empty_env, context):
    assert self._compare(IntegerConstant(1), BooleanConstant(True), empty_env, context) is False
    assert self._compare(IntegerConstant(0), Variable("nope"), empty_env, context) is False

  def test_null_equals_null(self, empty_env, context):
    assert self._compare(Variable("a"), Variable("b"), empty_env, context) is True

  def test_functions_never_equal(self, empty_env, context):
    """Even a function compared with itself is not equal"""
    env = empty_env.bind("f", FunctionValue(Variable("x"), ("x",)))
    assert self._compare(Variable("f"), Variable("f"), env, context) is False

  def test_counter_advances_by_three(self, empty_env, context):
    _, pc = evaluate(equals(IntegerConstant(1), IntegerConstant(1)), 0, empty_env, context)
    assert pc == 3


class TestIf:
  """Only the taken branch is visited"""

  def test_true_branch(self, empty_env, context, trace_records):
    expr = If(BooleanConstant(True), IntegerConstant(1), BinaryOp(DIV, IntegerConstant(1), IntegerConstant(0)))
    value, pc = evaluate(expr, 0, empty_env, context)

    assert value.int_val == 1
    assert pc == 3
    assert descriptions(trace_records) == ["IF", "BOOL_CONST:true", "INT_CONST:1"]

  def test_false_branch(self, empty_env, context, trace_records):
    expr = If(BooleanConstant(False), BinaryOp(DIV, IntegerConstant(1), IntegerConstant(0)), IntegerConstant(2))
    value, pc = evaluate(expr, 0, empty_env, context)

    assert value.int_val == 2
    assert pc == 3
    assert "BIN_OP:DIV" not in descriptions(trace_records)


class TestLetAndVariables:

  def test_let_binds_in_body(self, empty_env, context):
    value, pc = evaluate(Let("x", IntegerConstant(3), Variable("x")), 0, empty_env, context)
    assert value.int_val == 3
    assert pc == 3

  def test_unbound_variable_is_null(self, empty_env, context):
    value, pc = evaluate(Variable("nope"), 0, empty_env, context)
    assert value is NULL
    assert pc == 1

  def test_shadow_then_restore(self, empty_env, context):
    """Inner let only affects its own body"""
    expr = Let(
      "bot", IntegerConstant(3),
      BinaryOp(
        TIMES,
        Let("bot", IntegerConstant(2), Variable("bot")),
        Variable("bot"),
      ),
    )
    value, _ = evaluate(expr, 0, empty_env, context)
    assert value.int_val == 6

  def test_outer_environment_untouched(self, context):
    env = Environment.empty().bind("x", IntegerValue(1))
    evaluate(Let("x", IntegerConstant(2), Variable("x")), 0, env, context)
    assert env.lookup("x").int_val == 1
    assert len(env) == 1

  def test_bound_value_sees_outer_binding(self, empty_env, context):
    expr = Let("x", IntegerConstant(5), Let("x", BinaryOp(PLUS, Variable("x"), IntegerConstant(1)), Variable("x")))
    value, _ = evaluate(expr, 0, empty_env, context)
    assert value.int_val == 6


class TestFunctions:
  """Test declaration and calls, including dynamic scoping"""

  def test_declaration_does_not_evaluate_body(self, empty_env, context, trace_records):
    decl = FunctionDeclaration(BinaryOp(DIV, IntegerConstant(1), IntegerConstant(0)), ("x",))
    value, pc = evaluate(decl, 0, empty_env, context)

    assert isinstance(value, FunctionValue)
    assert pc == 1
    assert descriptions(trace_records) == ["FUNC_DECLARATION"]

  def test_declaration_captures_independent_copy(self, empty_env, context):
    decl = safe_divide_declaration()
    value, _ = evaluate(decl, 0, empty_env, context)

    assert value.body == decl.body
    assert value.body is not decl.body
    assert value.formal_arg_names == ("top", "bot")

  def _call_safe_divide(self, args, context):
    expr = Let("f", safe_divide_declaration(), FunctionCall("f", args))
    return evaluate(expr, 0, Environment.empty(), context)

  def test_call_short_circuits_division(self, context):
    value, _ = self._call_safe_divide((IntegerConstant(474), IntegerConstant(0)), context)
    assert value.int_val == 0

  def test_call_divides(self, context):
    args = (BinaryOp(PLUS, IntegerConstant(400), IntegerConstant(74)), IntegerConstant(3))
    value, _ = self._call_safe_divide(args, context)
    assert value.int_val == 158

  def test_free_variable_resolves_at_call_site(self, empty_env, context):
    """Free variables use the caller's bindings, not the declaration's"""
    expr = Let(
      "y", IntegerConstant(1),
      Let(
        "g", FunctionDeclaration(BinaryOp(PLUS, Variable("x"), Variable("y")), ("x",)),
        Let("y", IntegerConstant(100), FunctionCall("g", (IntegerConstant(5),))),
      ),
    )
    value, _ = evaluate(expr, 0, empty_env, context)
    assert value.int_val == 105

  def test_free_variable_unbound_at_call_site(self, empty_env, context):
    """A binding visible only where the function was declared is not seen"""
    expr = Let(
      "h",
      Let("z", IntegerConstant(7), FunctionDeclaration(equals(Variable("z"), Variable("z")), ())),
      FunctionCall("h", ()),
    )
    # z is unbound at the call site, so the comparison is NULL == NULL
    value, _ = evaluate(expr, 0, empty_env, context)
    assert value.bool_val is True

  def test_arguments_do_not_see_earlier_arguments(self, empty_env, context):
    """Every argument is evaluated under the call-site environment"""
    expr = Let(
      "pair", FunctionDeclaration(Variable("b"), ("a", "b")),
      FunctionCall("pair", (IntegerConstant(1), Variable("a"))),
    )
    value, _ = evaluate(expr, 0, empty_env, context)
    assert value is NULL

  def test_formals_shadow_caller_bindings(self, empty_env, context):
    expr = Let(
      "x", IntegerConstant(1),
      Let("id", FunctionDeclaration(Variable("x"), ("x",)), FunctionCall("id", (IntegerConstant(9),))),
    )
    value, _ = evaluate(expr, 0, empty_env, context)
    assert value.int_val == 9

  def test_call_trace_threads_counter(self, empty_env, context, trace_records):
    expr = Let(
      "id", FunctionDeclaration(Variable("x"), ("x",)),
      FunctionCall("id", (IntegerConstant(4),)),
    )
    value, pc = evaluate(expr, 0, empty_env, context)

    assert value.int_val == 4
    assert pc == 5
    assert trace_records == [
      TraceRecord(0, "LET:id"),
      TraceRecord(1, "FUNC_DECLARATION"),
      TraceRecord(2, "FUNC_CALL:id"),
      TraceRecord(3, "INT_CONST:4"),
      TraceRecord(4, "VARIABLE:x"),
    ]

  def test_zero_argument_function(self, empty_env, context):
    expr = Let("k", FunctionDeclaration(IntegerConstant(42), ()), FunctionCall("k", ()))
    value, _ = evaluate(expr, 0, empty_env, context)
    assert value.int_val == 42

  def test_recursion_through_dynamic_scope(self, empty_env, context):
    """A function can call itself because its own name is bound at the call site"""
    countdown = FunctionDeclaration(
      If(
        equals(Variable("n"), IntegerConstant(0)),
        IntegerConstant(0),
        BinaryOp(PLUS, IntegerConstant(1), FunctionCall("count", (BinaryOp(MINUS, Variable("n"), IntegerConstant(1)),))),
      ),
      ("n",),
    )
    expr = Let("count", countdown, FunctionCall("count", (IntegerConstant(10),)))
    value, _ = evaluate(expr, 0, empty_env, context)
    assert value.int_val == 10


class TestSamplePrograms:
  """End-to-end runs of the sample programs"""

  @pytest.mark.parametrize("name, rendered, counter", [
    ("p1", "INT:474", 1),
    ("p2", "INT:158", 5),
    ("p3", "BOOL:true", 7),
    ("p4", "INT:474", 9),
    ("p5", "INT:160", 15),
    ("p6", "INT:160", 31),
  ])
  def test_sample_program(self, name, rendered, counter):
    result = eval_program(get_program(name))
    assert render_value(result.value) == rendered
    assert result.counter == counter
    assert len(result.trace) == counter

  def test_p6_trace(self):
    """The worked program: 2 + f(474, 3) + f(474, 0) = 160"""
    result = eval_program(get_program("p6"))
    assert [format_trace_line(record) for record in result.trace] == [
      "PC=0 -> LET:f",
      "PC=1 -> FUNC_DECLARATION",
      "PC=2 -> LET:bot",
      "PC=3 -> INT_CONST:3",
      "PC=4 -> BIN_OP:PLUS",
      "PC=5 -> LET:bot",
      "PC=6 -> INT_CONST:2",
      "PC=7 -> VARIABLE:bot",
      "PC=8 -> BIN_OP:PLUS",
      "PC=9 -> FUNC_CALL:f",
      "PC=10 -> BIN_OP:PLUS",
      "PC=11 -> INT_CONST:400",
      "PC=12 -> INT_CONST:74",
      "PC=13 -> VARIABLE:bot",
      "PC=14 -> IF",
      "PC=15 -> COMP:EQ",
      "PC=16 -> VARIABLE:bot",
      "PC=17 -> INT_CONST:0",
      "PC=18 -> BIN_OP:DIV",
      "PC=19 -> VARIABLE:top",
      "PC=20 -> VARIABLE:bot",
      "PC=21 -> FUNC_CALL:f",
      "PC=22 -> BIN_OP:PLUS",
      "PC=23 -> INT_CONST:470",
      "PC=24 -> INT_CONST:4",
      "PC=25 -> INT_CONST:0",
      "PC=26 -> IF",
      "PC=27 -> COMP:EQ",
      "PC=28 -> VARIABLE:bot",
      "PC=29 -> INT_CONST:0",
      "PC=30 -> INT_CONST:0",
    ]
    assert format_result_line(result.value, result.counter) == ">>> Result: INT:160 | PC: 31"

  def test_p4_never_visits_division_by_zero(self):
    result = eval_program(get_program("p4"))
    assert "INT_CONST:0" not in descriptions(result.trace)

  def test_trace_is_reproducible(self):
    first = eval_program(get_program("p6"))
    second = eval_program(get_program("p6"))
    assert first.trace == second.trace

  def test_branch_free_trace_is_preorder(self):
    """Without ifs or calls every node is visited exactly once, in pre-order"""
    program = get_program("p2")
    result = eval_program(program)
    assert descriptions(result.trace) == [node.describe() for node in iter_preorder(program)]

  def test_seed_offsets_counter(self):
    result = eval_program(get_program("p2"), seed=100)
    assert result.trace[0] == TraceRecord(100, "BIN_OP:DIV")
    assert result.counter == 105

  def test_every_sample_is_registered(self):
    assert list(SAMPLE_PROGRAMS) == ["p1", "p2", "p3", "p4", "p5", "p6"]

  def test_unknown_program(self):
    with pytest.raises(KeyError, match="p7"):
      get_program("p7")


class TestInterpreterFactory:

  def test_default_trace_prints(self, capsys):
    create_interpreter().run(get_program("p2"))
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "PC=0 -> BIN_OP:DIV"
    assert len(lines) == 5

  def test_eval_program_prints_by_default(self, capsys):
    result = eval_program(get_program("p1"), seed=2)
    assert capsys.readouterr().out == "PC=2 -> INT_CONST:474\n"
    assert result.trace == (TraceRecord(2, "INT_CONST:474"),)

  def test_discard_trace_is_silent(self, capsys):
    result = create_interpreter(trace=discard_trace).run(get_program("p2"))
    assert capsys.readouterr().out == ""
    assert len(result.trace) == 5

  def test_custom_trace_sink(self, capsys):
    records = []
    result = create_interpreter(trace=records.append).run(get_program("p1"), seed=7)
    assert records == [TraceRecord(7, "INT_CONST:474")]
    assert result.counter == 8
    assert capsys.readouterr().out == ""

  def test_debug_dumps_environments(self, capsys):
    records = []
    create_debug_interpreter(trace=records.append).run(get_program("p5"))
    out = capsys.readouterr().out
    assert "ENVIRONMENT:\n\t[NAME(bot)|VALUE(INT:3)]\n" in out
    assert "\t[NAME(bot)|VALUE(INT:2)]" in out
