"""
tinyeval runtime values
Plain data carriers produced by evaluation
"""

from dataclasses import dataclass, field
from typing import Tuple

from expressions import Expression


# Value equality is only defined by the evaluator's comparison rules,
# so every value class opts out of dataclass __eq__.

class Value:
  """Base of every runtime value. Only the variants below exist."""

  def is_null(self) -> bool:
    return False


@dataclass(frozen=True, eq=False)
class IntegerValue(Value):
  int_val: int


@dataclass(frozen=True, eq=False)
class BooleanValue(Value):
  bool_val: bool


@dataclass(frozen=True, eq=False)
class FunctionValue(Value):
  body: Expression
  formal_arg_names: Tuple[str, ...] = field(default_factory=tuple)

  def __post_init__(self):
    object.__setattr__(self, 'formal_arg_names', tuple(self.formal_arg_names))


@dataclass(frozen=True, eq=False)
class NullValue(Value):
  """The absent value: unbound names evaluate to this"""

  def is_null(self) -> bool:
    return True


NULL = NullValue()


def render_value(value: Value) -> str:
  """Render a value the way traces and environment dumps show it"""
  if isinstance(value, IntegerValue):
    return f"INT:{value.int_val}"
  elif isinstance(value, BooleanValue):
    return f"BOOL:{'true' if value.bool_val else 'false'}"
  elif isinstance(value, FunctionValue):
    return "FUNC"
  elif isinstance(value, NullValue):
    return "NULL"
  raise TypeError(f"Not a runtime value: {value!r}")


def value_kind(value: Value) -> str:
  """Short tag naming the active case, used in error messages"""
  return render_value(value).split(':', 1)[0]
