"""
tinyeval surface syntax reader
Reads program text into expression trees using pyparsing

    let f = fun (top, bot) -> if bot == 0 then 0 else top / bot in
    let bot = 3 in
      (let bot = 2 in bot) + (f(400 + 74, bot) + f(470 + 4, 0))
"""

from typing import Callable

from pyparsing import (
    Forward, Group, Keyword, Literal, MatchFirst, OpAssoc, Opt, ParseBaseException,
    ParseFatalException, ParserElement, ParseResults, Regex, Suppress, Word, ZeroOrMore,
    alphanums, alphas, infix_notation, one_of, python_style_comment
)

from error_handling import MalformedExpressionError, SyntaxReadError, syntax_error_from_exception
from expressions import (
    ArithmeticOperator, BinaryOp, BooleanConstant, Comparison, ComparisonOperator, Expression,
    FunctionCall, FunctionDeclaration, If, IntegerConstant, Let, Variable
)

# Enable packrat parsing for performance
ParserElement.enable_packrat()


KEYWORDS = ("let", "in", "if", "then", "else", "fun", "true", "false")

ARITHMETIC_SYMBOLS = {op.value: op for op in ArithmeticOperator}
COMPARISON_SYMBOLS = {op.value: op for op in ComparisonOperator}


def _node_action(builder: Callable[[ParseResults], Expression]):
    """Wrap a node builder so construction errors stop the parse at that spot"""
    def action(source: str, loc: int, tokens: ParseResults) -> Expression:
        try:
            return builder(tokens)
        except MalformedExpressionError as e:
            raise ParseFatalException(source, loc, str(e)) from e
    return action


def _fold_arithmetic(tokens: ParseResults) -> Expression:
    items = tokens[0]
    result = items[0]
    for index in range(1, len(items), 2):
        result = BinaryOp(ARITHMETIC_SYMBOLS[items[index]], result, items[index + 1])
    return result


def _fold_comparison(tokens: ParseResults) -> Expression:
    items = tokens[0]
    result = items[0]
    for index in range(1, len(items), 2):
        result = Comparison(COMPARISON_SYMBOLS[items[index]], result, items[index + 1])
    return result


class ExpressionGrammar:
    """Expression grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        expression = Forward().set_name("expression")

        let_kw, in_kw, if_kw, then_kw, else_kw, fun_kw, true_kw, false_kw = (
            Keyword(word) for word in KEYWORDS)
        any_keyword = MatchFirst([Keyword(word) for word in KEYWORDS])

        lpar, rpar, comma = Suppress("("), Suppress(")"), Suppress(",")
        equals = Suppress(Literal("=") + ~Literal("="))
        arrow = Suppress("->")

        identifier = (~any_keyword + Word(alphas + "_", alphanums + "_")).set_name("identifier")

        # Literals
        integer = Regex(r"-?\d+").set_name("integer").set_parse_action(
            _node_action(lambda t: IntegerConstant(int(t[0]))))
        boolean = (true_kw | false_kw).set_name("boolean").set_parse_action(
            lambda t: BooleanConstant(t[0] == "true"))

        # Calls and variable reads
        arguments = Group(Opt(expression + ZeroOrMore(comma + expression)))
        call = (identifier + lpar + arguments + rpar).set_name("function call").set_parse_action(
            _node_action(lambda t: FunctionCall(t[0], tuple(t[1]))))
        variable = identifier.copy().set_parse_action(
            _node_action(lambda t: Variable(t[0])))

        operand = (integer | boolean | call | variable | (lpar + expression + rpar)).set_name("operand")

        # Operators, tightest first, all left-associative
        infix = infix_notation(operand, [
            (one_of("* /"), 2, OpAssoc.LEFT, _node_action(_fold_arithmetic)),
            (one_of("+ -"), 2, OpAssoc.LEFT, _node_action(_fold_arithmetic)),
            (Literal("=="), 2, OpAssoc.LEFT, _node_action(_fold_comparison)),
        ])

        # Binding forms
        let_expr = (Suppress(let_kw) + identifier + equals + expression
                    + Suppress(in_kw) + expression).set_name("let expression").set_parse_action(
            _node_action(lambda t: Let(t[0], t[1], t[2])))

        if_expr = (Suppress(if_kw) + expression + Suppress(then_kw) + expression
                   + Suppress(else_kw) + expression).set_name("if expression").set_parse_action(
            _node_action(lambda t: If(t[0], t[1], t[2])))

        parameters = Group(Opt(identifier + ZeroOrMore(comma + identifier)))
        fun_expr = (Suppress(fun_kw) + lpar + parameters + rpar + arrow
                    + expression).set_name("function declaration").set_parse_action(
            _node_action(lambda t: FunctionDeclaration(t[1], tuple(t[0]))))

        expression <<= let_expr | if_expr | fun_expr | infix

        # Comments start with '#' and run to the end of the line
        expression.ignore(python_style_comment)

        if self.debug:
            expression.set_debug()

        self.expression = expression

    def parse(self, text: str) -> Expression:
        """Parse the whole text as a single expression"""
        return self.expression.parse_string(text, parse_all=True)[0]


class ExpressionReader:
    """Reads program text or files into expression trees"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = ExpressionGrammar(debug)

    def read_string(self, text: str, filename: str = "<input>") -> Expression:
        """Read program text into an expression tree"""
        try:
            return self.grammar.parse(text)
        except ParseBaseException as e:
            raise syntax_error_from_exception(e, text, filename) from e

    def read_file(self, filepath: str) -> Expression:
        """Read a program source file into an expression tree"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise SyntaxReadError(f"File not found: {filepath}", filename=filepath)
        except UnicodeDecodeError as e:
            raise SyntaxReadError(f"Cannot decode file {filepath}: {e}", filename=filepath)
        return self.read_string(content, filepath)


# Factory functions for creating readers
def create_reader(debug: bool = False) -> ExpressionReader:
    """Create an expression reader"""
    return ExpressionReader(debug=debug)
