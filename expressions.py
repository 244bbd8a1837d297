"""
tinyeval expression trees
Immutable syntax tree nodes built directly or by the surface syntax reader
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Iterator, Tuple

from error_handling import MalformedExpressionError
from utilities import is_int32


class ArithmeticOperator(Enum):
    """Operators accepted by BinaryOp"""
    PLUS = "+"
    MINUS = "-"
    TIMES = "*"
    DIV = "/"


class ComparisonOperator(Enum):
    """Operators accepted by Comparison"""
    EQ = "=="


class Expression:
    """Base of every expression node. Only the variants below exist."""

    def describe(self) -> str:
        raise NotImplementedError

    def children(self) -> Tuple['Expression', ...]:
        """Child expressions in evaluation order"""
        return ()


def _require_expression(owner: str, field_name: str, value) -> None:
    if not isinstance(value, Expression):
        raise MalformedExpressionError(
            f"{owner}.{field_name} must be an Expression, got {type(value).__name__}")


def _require_name(owner: str, value) -> None:
    if not isinstance(value, str) or not value:
        raise MalformedExpressionError(f"{owner} needs a non-empty name, got {value!r}")


@dataclass(frozen=True)
class IntegerConstant(Expression):
    value: int

    def __post_init__(self):
        if not is_int32(self.value):
            raise MalformedExpressionError(
                f"IntegerConstant must hold a 32-bit signed integer, got {self.value!r}")

    def describe(self) -> str:
        return f"INT_CONST:{self.value}"


@dataclass(frozen=True)
class BooleanConstant(Expression):
    value: bool

    def __post_init__(self):
        if not isinstance(self.value, bool):
            raise MalformedExpressionError(
                f"BooleanConstant must hold a bool, got {self.value!r}")

    def describe(self) -> str:
        return f"BOOL_CONST:{'true' if self.value else 'false'}"


@dataclass(frozen=True)
class BinaryOp(Expression):
    operator: ArithmeticOperator
    left: Expression
    right: Expression

    def __post_init__(self):
        if not isinstance(self.operator, ArithmeticOperator):
            raise MalformedExpressionError(f"Unknown arithmetic operator: {self.operator!r}")
        _require_expression("BinaryOp", "left", self.left)
        _require_expression("BinaryOp", "right", self.right)

    def describe(self) -> str:
        return f"BIN_OP:{self.operator.name}"

    def children(self) -> Tuple[Expression, ...]:
        return (self.left, self.right)


@dataclass(frozen=True)
class Comparison(Expression):
    operator: ComparisonOperator
    left: Expression
    right: Expression

    def __post_init__(self):
        if not isinstance(self.operator, ComparisonOperator):
            raise MalformedExpressionError(f"Unknown comparison operator: {self.operator!r}")
        _require_expression("Comparison", "left", self.left)
        _require_expression("Comparison", "right", self.right)

    def describe(self) -> str:
        return f"COMP:{self.operator.name}"

    def children(self) -> Tuple[Expression, ...]:
        return (self.left, self.right)


@dataclass(frozen=True)
class If(Expression):
    condition: Expression
    then_branch: Expression
    else_branch: Expression

    def __post_init__(self):
        _require_expression("If", "condition", self.condition)
        _require_expression("If", "then_branch", self.then_branch)
        _require_expression("If", "else_branch", self.else_branch)

    def describe(self) -> str:
        return "IF"

    def children(self) -> Tuple[Expression, ...]:
        return (self.condition, self.then_branch, self.else_branch)


@dataclass(frozen=True)
class Let(Expression):
    name: str
    bound_value: Expression
    body: Expression

    def __post_init__(self):
        _require_name("Let", self.name)
        _require_expression("Let", "bound_value", self.bound_value)
        _require_expression("Let", "body", self.body)

    def describe(self) -> str:
        return f"LET:{self.name}"

    def children(self) -> Tuple[Expression, ...]:
        return (self.bound_value, self.body)


@dataclass(frozen=True)
class Variable(Expression):
    name: str

    def __post_init__(self):
        _require_name("Variable", self.name)

    def describe(self) -> str:
        return f"VARIABLE:{self.name}"


@dataclass(frozen=True)
class FunctionDeclaration(Expression):
    body: Expression
    formal_arg_names: Tuple[str, ...]

    def __post_init__(self):
        _require_expression("FunctionDeclaration", "body", self.body)
        names = tuple(self.formal_arg_names)
        for name in names:
            _require_name("FunctionDeclaration argument", name)
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise MalformedExpressionError(
                f"Duplicate argument names in function declaration: {', '.join(duplicates)}")
        object.__setattr__(self, 'formal_arg_names', names)

    def describe(self) -> str:
        return "FUNC_DECLARATION"

    def children(self) -> Tuple[Expression, ...]:
        return (self.body,)


@dataclass(frozen=True)
class FunctionCall(Expression):
    name: str
    actual_args: Tuple[Expression, ...]

    def __post_init__(self):
        _require_name("FunctionCall", self.name)
        args = tuple(self.actual_args)
        for index, arg in enumerate(args):
            _require_expression("FunctionCall", f"actual_args[{index}]", arg)
        object.__setattr__(self, 'actual_args', args)

    def describe(self) -> str:
        return f"FUNC_CALL:{self.name}"

    def children(self) -> Tuple[Expression, ...]:
        return self.actual_args


EXPRESSION_TYPES = (
    IntegerConstant,
    BooleanConstant,
    BinaryOp,
    Comparison,
    If,
    Let,
    Variable,
    FunctionDeclaration,
    FunctionCall,
)


# Utility functions for working with expression trees
def copy_expression(expr: Expression) -> Expression:
    """Deep, independent copy of an expression tree"""
    values = {}
    for f in fields(expr):
        value = getattr(expr, f.name)
        if isinstance(value, Expression):
            value = copy_expression(value)
        elif isinstance(value, tuple):
            value = tuple(copy_expression(v) if isinstance(v, Expression) else v for v in value)
        values[f.name] = value
    return type(expr)(**values)


def iter_preorder(expr: Expression) -> Iterator[Expression]:
    """Yield every node of the tree, parents before children"""
    yield expr
    for child in expr.children():
        yield from iter_preorder(child)


def count_nodes(expr: Expression) -> int:
    return sum(1 for _ in iter_preorder(expr))


def pretty_print_expression(expr: Expression, indent: int = 0) -> str:
    """Pretty print an expression tree for debugging"""
    result = "  " * indent + expr.describe()
    if isinstance(expr, FunctionDeclaration):
        result += f"({', '.join(expr.formal_arg_names)})"
    result += "\n"

    for child in expr.children():
        result += pretty_print_expression(child, indent + 1)

    return result

