"""
Utilities module for tinyeval
Contains common helper functions shared by the evaluator and the reader
"""

from typing import Any, Callable, Dict, Optional, Type
import operator

from error_handling import (
  ArityMismatchError,
  DivisionByZeroError,
  IntegerOverflowError,
  TypeMismatchError,
)


INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


# ==================== INTEGER UTILITIES ====================

def is_int32(value: Any) -> bool:
  """
  Check if value is a 32-bit signed integer

  Booleans are rejected even though bool subclasses int.
  """
  return (
    isinstance(value, int)
    and not isinstance(value, bool)
    and INT32_MIN <= value <= INT32_MAX
  )


def truncating_divide(left: int, right: int) -> int:
  """
  Integer division rounding toward zero

  Examples:
    truncating_divide(7, 2) -> 3
    truncating_divide(-7, 2) -> -3
  """
  quotient = abs(left) // abs(right)
  return quotient if (left < 0) == (right < 0) else -quotient


def checked_int32(result: int, op_name: str, node: Optional[str] = None) -> int:
  """Return result unchanged, or abort if it left the 32-bit range"""
  if not INT32_MIN <= result <= INT32_MAX:
    raise IntegerOverflowError(
      f"Integer overflow: {op_name} produced {result}", node
    )
  return result


# ==================== ERROR MESSAGE BUILDERS ====================

def type_mismatch_error(
  op_name: str,
  operand_name: str,
  expected: str,
  actual: str,
  node: Optional[str] = None
) -> TypeMismatchError:
  """
  Generate type mismatch error

  Args:
    op_name: Operation name
    operand_name: Which operand was wrong
    expected: Expected value kind
    actual: Rendered actual value

  Returns:
    TypeMismatchError with formatted message
  """
  return TypeMismatchError(
    f"{op_name} requires {expected} for {operand_name}, got {actual}", node
  )


def arity_error(func_name: str, expected: int, got: int, node: Optional[str] = None) -> ArityMismatchError:
  """
  Generate arity mismatch error

  Args:
    func_name: Function name
    expected: Number of formal arguments
    got: Number of actual arguments

  Returns:
    ArityMismatchError with formatted message
  """
  return ArityMismatchError(
    f"{func_name} requires {expected} arguments, got {got}", expected, got, node
  )


def operation_error(op_name: str, left: str, right: str, node: Optional[str] = None) -> TypeMismatchError:
  """Generate error for an operation applied to unsupported operands"""
  return TypeMismatchError(f"Cannot {op_name} {left} and {right}", node)


# ==================== DISPATCH UTILITIES ====================

def dispatch_by_type(
  item: Any,
  handlers: Dict[Type, Callable],
  default_handler: Optional[Callable] = None
) -> Callable:
  """
  Generic type-based dispatch

  Args:
    item: Object whose exact type selects the handler
    handlers: Map of types to handler functions
    default_handler: Fallback handler

  Returns:
    The handler registered for type(item)

  Raises:
    TypeError if no handler found and no default
  """
  handler = handlers.get(type(item), default_handler)
  if handler is None:
    raise TypeError(f"No handler for type: {type(item).__name__}")
  return handler


# ==================== BINARY OPERATION FACTORIES ====================

def binary_arithmetic_op(
  op: Callable[[int, int], int],
  op_name: str
) -> Callable[[int, int, Optional[str]], int]:
  """
  Factory for 32-bit integer arithmetic operations

  Args:
    op: Python operator function (e.g., operator.add)
    op_name: Name for error messages

  Returns:
    Function computing op on two payloads, aborting on overflow

  Examples:
    add = binary_arithmetic_op(operator.add, "add")
    add(1, 2) -> 3
  """
  def arithmetic(left: int, right: int, node: Optional[str] = None) -> int:
    return checked_int32(op(left, right), op_name, node)

  return arithmetic


def _divide(left: int, right: int, node: Optional[str] = None) -> int:
  if right == 0:
    raise DivisionByZeroError(f"Division by zero: {left} / 0", node)
  return checked_int32(truncating_divide(left, right), "divide", node)


int32_add = binary_arithmetic_op(operator.add, "add")
int32_sub = binary_arithmetic_op(operator.sub, "subtract")
int32_mul = binary_arithmetic_op(operator.mul, "multiply")
int32_div = _divide
