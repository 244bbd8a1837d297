"""
tinyeval Interpreter
Recursive tree-walking evaluator with an explicit step counter
The counter and environment are threaded through every call; no global state
"""

from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from environment import Environment
from error_handling import NotAFunctionError
from expressions import (
  ArithmeticOperator,
  BinaryOp,
  BooleanConstant,
  Comparison,
  ComparisonOperator,
  Expression,
  FunctionCall,
  FunctionDeclaration,
  If,
  IntegerConstant,
  Let,
  Variable,
  copy_expression,
)
from utilities import (
  arity_error,
  dispatch_by_type,
  int32_add,
  int32_div,
  int32_mul,
  int32_sub,
  operation_error,
  type_mismatch_error,
)
from values import (
  BooleanValue,
  FunctionValue,
  IntegerValue,
  NullValue,
  Value,
  render_value,
  value_kind,
)


# ============================================================================
# TRACE RECORDS
# ============================================================================

class TraceRecord(NamedTuple):
  """One visited node: counter before the visit and the node's description"""
  counter: int
  description: str


class EvaluationResult(NamedTuple):
  value: Value
  counter: int
  trace: Tuple[TraceRecord, ...]


TraceSink = Callable[[TraceRecord], None]


def format_trace_line(record: TraceRecord) -> str:
  return f"PC={record.counter} -> {record.description}"


def format_result_line(value: Value, counter: int) -> str:
  return f">>> Result: {render_value(value)} | PC: {counter}"


def print_trace(record: TraceRecord) -> None:
  """Default trace sink: one line per visited node on stdout"""
  print(format_trace_line(record))


def discard_trace(record: TraceRecord) -> None:
  """Trace sink for quiet runs"""
  pass


def make_execution_context(trace: Optional[TraceSink] = None, debug: bool = False) -> Dict:
  """Create an execution context holding the trace sink and debug flag"""
  return {
      'trace': trace if trace is not None else print_trace,
      'debug': debug
  }


# ============================================================================
# EVALUATION FUNCTIONS
# ============================================================================

def evaluate(expr: Expression, pc: int, env: Environment, context: Optional[Dict] = None) -> Tuple[Value, int]:
  """
  Evaluate an expression and return (result_value, next_counter).

  The trace record for expr is emitted before anything else happens and
  the counter advances by exactly one for this node, so the trace is a
  pre-order listing of the nodes actually visited.
  """
  if context is None:
    context = make_execution_context()

  context['trace'](TraceRecord(pc, expr.describe()))
  pc = pc + 1

  handler = dispatch_by_type(expr, EVALUATORS)
  return handler(expr, pc, env, context)


def eval_integer_constant(expr: IntegerConstant, pc: int, env: Environment, context: Dict) -> Tuple[Value, int]:
  return IntegerValue(expr.value), pc


def eval_boolean_constant(expr: BooleanConstant, pc: int, env: Environment, context: Dict) -> Tuple[Value, int]:
  return BooleanValue(expr.value), pc


ARITHMETIC_OPERATIONS = {
    ArithmeticOperator.PLUS: (int32_add, "add"),
    ArithmeticOperator.MINUS: (int32_sub, "subtract"),
    ArithmeticOperator.TIMES: (int32_mul, "multiply"),
    ArithmeticOperator.DIV: (int32_div, "divide"),
}


def eval_binary_op(expr: BinaryOp, pc: int, env: Environment, context: Dict) -> Tuple[Value, int]:
  """Evaluate both operands left to right, then apply 32-bit arithmetic"""
  left_val, pc = evaluate(expr.left, pc, env, context)
  right_val, pc = evaluate(expr.right, pc, env, context)

  operation, op_name = ARITHMETIC_OPERATIONS[expr.operator]
  if not (isinstance(left_val, IntegerValue) and isinstance(right_val, IntegerValue)):
    raise operation_error(op_name, render_value(left_val), render_value(right_val), expr.describe())

  return IntegerValue(operation(left_val.int_val, right_val.int_val, expr.describe())), pc


def values_equal(left: Value, right: Value) -> bool:
  """
  Equality as the EQ comparison defines it.

  Different cases are never equal. Two nulls are always equal, and two
  functions never are, not even a function compared with itself.
  """
  if type(left) is not type(right):
    return False
  if isinstance(left, IntegerValue):
    return left.int_val == right.int_val
  if isinstance(left, BooleanValue):
    return left.bool_val == right.bool_val
  if isinstance(left, NullValue):
    return True
  return False


COMPARISON_OPERATIONS = {
    ComparisonOperator.EQ: values_equal,
}


def eval_comparison(expr: Comparison, pc: int, env: Environment, context: Dict) -> Tuple[Value, int]:
  left_val, pc = evaluate(expr.left, pc, env, context)
  right_val, pc = evaluate(expr.right, pc, env, context)

  compare = COMPARISON_OPERATIONS[expr.operator]
  return BooleanValue(compare(left_val, right_val)), pc


def eval_if(expr: If, pc: int, env: Environment, context: Dict) -> Tuple[Value, int]:
  """Evaluate the condition, then only the branch it selects"""
  cond_val, pc = evaluate(expr.condition, pc, env, context)

  if not isinstance(cond_val, BooleanValue):
    raise type_mismatch_error("if", "condition", "BOOL", value_kind(cond_val), expr.describe())

  if cond_val.bool_val:
    return evaluate(expr.then_branch, pc, env, context)
  return evaluate(expr.else_branch, pc, env, context)


def eval_let(expr: Let, pc: int, env: Environment, context: Dict) -> Tuple[Value, int]:
  """Bind the value under the current env; the body sees the extension only"""
  value, pc = evaluate(expr.bound_value, pc, env, context)

  body_env = env.bind(expr.name, value)
  if context['debug']:
    print(body_env.dump())

  return evaluate(expr.body, pc, body_env, context)


def eval_variable(expr: Variable, pc: int, env: Environment, context: Dict) -> Tuple[Value, int]:
  return env.lookup(expr.name), pc


def eval_function_declaration(expr: FunctionDeclaration, pc: int, env: Environment, context: Dict) -> Tuple[Value, int]:
  """Capture a private copy of the body; the body is not evaluated here"""
  return FunctionValue(copy_expression(expr.body), tuple(expr.formal_arg_names)), pc


def eval_function_call(expr: FunctionCall, pc: int, env: Environment, context: Dict) -> Tuple[Value, int]:
  """
  Evaluate a call.

  Actual arguments are evaluated in order, all under the call-site
  environment. The call environment extends the call-site environment,
  not the one the function was declared in, so free variables in the body
  resolve dynamically against the caller's bindings.
  """
  function_value = env.lookup(expr.name)
  if not isinstance(function_value, FunctionValue):
    raise NotAFunctionError(
        f"{expr.name} is not a function, got {value_kind(function_value)}", expr.describe())

  arg_values: List[Value] = []
  for arg_expr in expr.actual_args:
    arg_value, pc = evaluate(arg_expr, pc, env, context)
    arg_values.append(arg_value)

  formal_arg_names = function_value.formal_arg_names
  if len(arg_values) != len(formal_arg_names):
    raise arity_error(expr.name, len(formal_arg_names), len(arg_values), expr.describe())

  call_env = env
  for name, value in zip(formal_arg_names, arg_values):
    call_env = call_env.bind(name, value)
  if context['debug']:
    print(call_env.dump())

  return evaluate(function_value.body, pc, call_env, context)


EVALUATORS = {
    IntegerConstant: eval_integer_constant,
    BooleanConstant: eval_boolean_constant,
    BinaryOp: eval_binary_op,
    Comparison: eval_comparison,
    If: eval_if,
    Let: eval_let,
    Variable: eval_variable,
    FunctionDeclaration: eval_function_declaration,
    FunctionCall: eval_function_call,
}


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def eval_program(expression: Expression, seed: int = 0, env: Optional[Environment] = None,
                 trace: Optional[TraceSink] = None, debug: bool = False) -> EvaluationResult:
  """
  Evaluate a whole program and collect its trace.

  Every trace record is kept in the result and also passed to the trace
  sink as it is produced. The sink defaults to print_trace; pass
  discard_trace for a silent run.
  """
  records: List[TraceRecord] = []
  sink = trace if trace is not None else print_trace

  def collect(record: TraceRecord) -> None:
    records.append(record)
    sink(record)

  context = make_execution_context(collect, debug)
  start_env = env if env is not None else Environment.empty()
  value, counter = evaluate(expression, seed, start_env, context)
  return EvaluationResult(value, counter, tuple(records))


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

class Interpreter:
  """Runs programs with a fixed trace sink and debug setting"""

  def __init__(self, debug: bool = False, trace: Optional[TraceSink] = None):
    self.debug = debug
    self.trace = trace

  def run(self, expression: Expression, seed: int = 0) -> EvaluationResult:
    return eval_program(expression, seed, trace=self.trace, debug=self.debug)


def create_interpreter(debug: bool = False, trace: Optional[TraceSink] = None) -> Interpreter:
  """Factory function returning an interpreter"""
  return Interpreter(debug=debug, trace=trace)


def create_debug_interpreter(trace: Optional[TraceSink] = None) -> Interpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True, trace=trace)
