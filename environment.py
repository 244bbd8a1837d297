"""
tinyeval environments
Persistent, append-only sequences of name/value bindings
"""

from dataclasses import dataclass
from typing import Tuple

from values import NULL, Value, render_value


@dataclass(frozen=True)
class Binding:
  name: str
  value: Value

  def __str__(self) -> str:
    return f"[NAME({self.name})|VALUE({render_value(self.value)})]"


class Environment:
  """
  Ordered bindings visible at one point of evaluation.

  bind() returns a new environment and never touches the receiver, so any
  evaluation still holding the older environment keeps seeing it unchanged.
  Lookup scans newest to oldest, so later bindings shadow earlier ones.
  """

  __slots__ = ('_bindings',)

  def __init__(self, bindings: Tuple[Binding, ...] = ()):
    self._bindings = tuple(bindings)

  @classmethod
  def empty(cls) -> 'Environment':
    return cls()

  @property
  def bindings(self) -> Tuple[Binding, ...]:
    return self._bindings

  def bind(self, name: str, value: Value) -> 'Environment':
    """Return new environment with name bound to value"""
    return Environment(self._bindings + (Binding(name, value),))

  def lookup(self, name: str) -> Value:
    """Most recent value bound to name, or NULL when unbound"""
    for binding in reversed(self._bindings):
      if binding.name == name:
        return binding.value
    return NULL

  def names(self) -> Tuple[str, ...]:
    return tuple(binding.name for binding in self._bindings)

  def dump(self) -> str:
    lines = ["ENVIRONMENT:"]
    lines.extend(f"\t{binding}" for binding in self._bindings)
    return '\n'.join(lines)

  def __len__(self) -> int:
    return len(self._bindings)

  def __repr__(self) -> str:
    return f"Environment({', '.join(str(b) for b in self._bindings)})"
