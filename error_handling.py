"""
Error types and error reporting for tinyeval
Runtime errors raised by the evaluator, and enhanced syntax error messages
for the surface syntax reader
"""

from typing import List, Optional, Dict
from pyparsing import ParseBaseException
import re


# ============================================================================
# RUNTIME ERRORS
# ============================================================================

class EvaluationError(Exception):
    """Recoverable runtime error raised while evaluating an expression"""
    def __init__(self, message: str, node: Optional[str] = None):
        self.message = message
        self.node = node
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        if self.node:
            return f"{self.message} (at {self.node})"
        return self.message


class TypeMismatchError(EvaluationError):
    """An operand or condition had the wrong value type"""
    pass


class NotAFunctionError(TypeMismatchError):
    """A call named something that is not bound to a function value"""
    pass


class ArityMismatchError(EvaluationError):
    """Actual and formal argument counts differ"""
    def __init__(self, message: str, expected: int, got: int, node: Optional[str] = None):
        self.expected = expected
        self.got = got
        super().__init__(message, node)


class FatalEvaluationError(BaseException):
    """
    Abort of the whole evaluation. No value is produced.

    Derives from BaseException so that ``except Exception`` handlers
    never resume a half-finished evaluation.
    """
    def __init__(self, message: str, node: Optional[str] = None):
        self.message = message
        self.node = node
        super().__init__(f"{message} (at {node})" if node else message)


class DivisionByZeroError(FatalEvaluationError):
    """Integer division with a zero divisor"""
    pass


class IntegerOverflowError(FatalEvaluationError):
    """Arithmetic result outside the 32-bit signed range"""
    pass


class MalformedExpressionError(ValueError):
    """An expression node was constructed with an invalid payload"""
    pass


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context,
        'suggestions': suggestions or []
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as string"""
    error_msg = f"Syntax error at line {error['line']}, column {error['column']}:\n"
    error_msg += f"  {error['message']}\n"

    if error['expected']:
        error_msg += f"  Expected: {', '.join(error['expected'])}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    if error['suggestions']:
        error_msg += "  Suggestions:\n"
        for suggestion in error['suggestions']:
            error_msg += f"    - {suggestion}\n"

    return error_msg


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")

    return '\n'.join(context_parts)


def extract_expected(exc: ParseBaseException) -> List[str]:
    """Extract expected tokens from exception"""
    expected = []

    msg = str(exc)
    if "Expected" in msg:
        expected_match = re.search(r"Expected\s+(.+?)(?:,\s+found|\s+\(|$)", msg)
        if expected_match:
            expected.append(expected_match.group(1))

    return expected if expected else ["valid syntax"]


def extract_got(source_text: str, line_num: int, col_num: int) -> str:
    """Extract what was actually found at the error location"""
    lines = source_text.split('\n')

    if 0 < line_num <= len(lines):
        error_line = lines[line_num - 1]
        if col_num <= len(error_line):
            start = max(0, col_num - 1)
            end = min(len(error_line), col_num + 10)
            got_text = error_line[start:end].strip()
            if got_text:
                return f"'{got_text}'"
        return "end of line"
    return "end of input"


def generate_suggestions(exc: ParseBaseException, got: str, expected: List[str]) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []
    source_line = exc.line if isinstance(getattr(exc, 'line', None), str) else ""

    if ";" in got:
        suggestions.append("Expressions are not separated by semicolons; nest them with 'let ... in'")

    if "{" in got or "}" in got:
        suggestions.append("Use parentheses () for grouping, not braces {}")

    if re.search(r"\blet\b", source_line) and not re.search(r"\bin\b", source_line):
        suggestions.append("A let binding needs 'in' followed by its body: let x = 1 in x")

    if re.search(r"\bif\b", source_line) and not re.search(r"\belse\b", source_line):
        suggestions.append("Conditionals need both branches: if c then a else b")

    if re.search(r"\bfun\b", source_line) and "->" not in source_line:
        suggestions.append("Function declarations need '->' after the parameter list: fun (x, y) -> x")

    if "=" in got and "==" not in got:
        suggestions.append("Use '==' for comparison; '=' only appears in let bindings")

    return suggestions


def enhance_parse_exception_dict(exc: ParseBaseException, source_text: str) -> Dict:
    """Convert pyparsing exception to enhanced error dict"""
    line_num = exc.lineno
    col_num = exc.column

    context = get_context_lines(source_text, line_num, col_num)
    expected = extract_expected(exc)
    got = extract_got(source_text, line_num, col_num)
    suggestions = generate_suggestions(exc, got, expected)

    return make_parse_error(
        message=exc.msg,
        location=exc.loc,
        line=line_num,
        column=col_num,
        expected=expected,
        got=got,
        context=context,
        suggestions=suggestions
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class SyntaxReadError(Exception):
    """Raised when program text cannot be read into an expression tree"""
    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None,
                 filename: str = "<input>"):
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = expected or []
        self.got = got
        self.context = context
        self.suggestions = suggestions or []
        self.filename = filename
        super().__init__(message)

    def __str__(self) -> str:
        error_dict = make_parse_error(
            self.message, self.location, self.line, self.column,
            self.expected, self.got, self.context, self.suggestions
        )
        return f"{self.filename}: {format_parse_error(error_dict)}"


def syntax_error_from_exception(exc: ParseBaseException, source_text: str,
                                filename: str = "<input>") -> SyntaxReadError:
    """Convert pyparsing exception to an enhanced SyntaxReadError"""
    error_dict = enhance_parse_exception_dict(exc, source_text)
    return SyntaxReadError(
        message=error_dict['message'],
        location=error_dict['location'],
        line=error_dict['line'],
        column=error_dict['column'],
        expected=error_dict['expected'],
        got=error_dict['got'],
        context=error_dict['context'],
        suggestions=error_dict['suggestions'],
        filename=filename
    )
