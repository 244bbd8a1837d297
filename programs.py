"""
tinyeval sample programs
Hand-built expression trees used by the command line and the tests
"""

from typing import Callable, Dict

from expressions import (
  ArithmeticOperator,
  BinaryOp,
  Comparison,
  ComparisonOperator,
  Expression,
  FunctionCall,
  FunctionDeclaration,
  If,
  IntegerConstant,
  Let,
  Variable,
)


PLUS = ArithmeticOperator.PLUS
DIV = ArithmeticOperator.DIV
EQ = ComparisonOperator.EQ


def _four_hundred_seventy_four() -> Expression:
  return BinaryOp(PLUS, IntegerConstant(400), IntegerConstant(74))


def program_p1() -> Expression:
  """474"""
  return IntegerConstant(474)


def program_p2() -> Expression:
  """(400 + 74) / 3"""
  return BinaryOp(DIV, _four_hundred_seventy_four(), IntegerConstant(3))


def program_p3() -> Expression:
  """((400 + 74) / 3) == 158"""
  return Comparison(EQ, program_p2(), IntegerConstant(158))


def program_p4() -> Expression:
  """if (((400 + 74) / 3) == 158) then 474 else 474 / 0"""
  return If(
    program_p3(),
    IntegerConstant(474),
    BinaryOp(DIV, IntegerConstant(474), IntegerConstant(0)),
  )


def program_p5() -> Expression:
  """
  let bot = 3 in
    (let bot = 2 in bot)
    +
    (if (bot == 0) then 474 / 0 else (400 + 74) / bot)
  """
  return Let(
    "bot",
    IntegerConstant(3),
    BinaryOp(
      PLUS,
      Let("bot", IntegerConstant(2), Variable("bot")),
      If(
        Comparison(EQ, Variable("bot"), IntegerConstant(0)),
        BinaryOp(DIV, IntegerConstant(474), IntegerConstant(0)),
        BinaryOp(DIV, _four_hundred_seventy_four(), Variable("bot")),
      ),
    ),
  )


def safe_divide_declaration() -> FunctionDeclaration:
  """f(top, bot) = if (bot == 0) then 0 else top / bot"""
  return FunctionDeclaration(
    If(
      Comparison(EQ, Variable("bot"), IntegerConstant(0)),
      IntegerConstant(0),
      BinaryOp(DIV, Variable("top"), Variable("bot")),
    ),
    ("top", "bot"),
  )


def program_p6() -> Expression:
  """
  let f = fun (top, bot) -> if (bot == 0) then 0 else top / bot in
  let bot = 3 in
    (let bot = 2 in bot)
    +
    (f(400 + 74, bot) + f(470 + 4, 0))
  """
  return Let(
    "f",
    safe_divide_declaration(),
    Let(
      "bot",
      IntegerConstant(3),
      BinaryOp(
        PLUS,
        Let("bot", IntegerConstant(2), Variable("bot")),
        BinaryOp(
          PLUS,
          FunctionCall("f", (_four_hundred_seventy_four(), Variable("bot"))),
          FunctionCall(
            "f",
            (BinaryOp(PLUS, IntegerConstant(470), IntegerConstant(4)), IntegerConstant(0)),
          ),
        ),
      ),
    ),
  )


SAMPLE_PROGRAMS: Dict[str, Callable[[], Expression]] = {
  "p1": program_p1,
  "p2": program_p2,
  "p3": program_p3,
  "p4": program_p4,
  "p5": program_p5,
  "p6": program_p6,
}

DEFAULT_PROGRAM = "p6"


def get_program(name: str) -> Expression:
  """Build the named sample program"""
  try:
    builder = SAMPLE_PROGRAMS[name]
  except KeyError:
    known = ', '.join(SAMPLE_PROGRAMS)
    raise KeyError(f"Unknown sample program '{name}' (known: {known})") from None
  return builder()


def describe_program(name: str) -> str:
  """First docstring line of the named program's builder"""
  doc = SAMPLE_PROGRAMS[name].__doc__ or ""
  lines = [line.strip() for line in doc.strip().splitlines()]
  return lines[0] if lines else name
