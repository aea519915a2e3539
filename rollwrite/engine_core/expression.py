"""
Formula Language - lexer, parser, AST and evaluator.

Formulas drive action conditions, resource effects and scoring:
    roll_total >= 9 && ore < 10
    IF(combo > 0, -1, 0)
    ore * 3 + crystal * 5

Supports:
- Literals: numbers (no exponent, no sign), true, false, null
- Identifiers bound through the evaluation context
- Operators, lowest to highest precedence:
    ||   &&   == !=   < <= > >=   + -   * / %   ^   unary ! -
- Function calls: IF, MIN, MAX, CLAMP, ABS, FLOOR, CEIL, ROUND, D6, D
  plus host-supplied functions

There is no assignment, no loops and no user-defined functions. Parsing
happens once (compile_expression); the resulting tree is immutable and can
be evaluated any number of times against different contexts.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Union
import math

MiniValue = Union[int, float, bool, None]


# =============================================================================
# Errors
# =============================================================================

@dataclass(frozen=True)
class SourceSpan:
    """Character offsets [start, end) into the formula source."""
    start: int
    end: int


class ExpressionSyntaxError(Exception):
    """Raised when formula text is malformed. Carries the offending span."""

    def __init__(self, message: str, span: SourceSpan):
        self.message = message
        self.span = span
        super().__init__(f"{message} at {span.start}..{span.end}")


class ExpressionEvaluationError(Exception):
    """Raised when a well-formed formula cannot be evaluated."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# AST
# =============================================================================

@dataclass(frozen=True)
class NumberLiteral:
    value: Union[int, float]
    span: SourceSpan


@dataclass(frozen=True)
class BooleanLiteral:
    value: bool
    span: SourceSpan


@dataclass(frozen=True)
class NullLiteral:
    span: SourceSpan


@dataclass(frozen=True)
class Identifier:
    name: str
    span: SourceSpan


@dataclass(frozen=True)
class UnaryExpression:
    operator: str  # "!" or "-"
    operand: "ExpressionNode"
    span: SourceSpan


@dataclass(frozen=True)
class BinaryExpression:
    operator: str
    left: "ExpressionNode"
    right: "ExpressionNode"
    span: SourceSpan


@dataclass(frozen=True)
class CallExpression:
    callee: Identifier
    arguments: tuple["ExpressionNode", ...]
    span: SourceSpan

    @property
    def name(self) -> str:
        return self.callee.name


ExpressionNode = Union[
    NumberLiteral,
    BooleanLiteral,
    NullLiteral,
    Identifier,
    UnaryExpression,
    BinaryExpression,
    CallExpression,
]


@dataclass(frozen=True)
class CompiledExpression:
    """Source text paired with its parsed tree."""
    source: str
    ast: ExpressionNode

    def identifiers(self) -> frozenset[str]:
        return list_identifiers(self.ast)


# =============================================================================
# Lexer
# =============================================================================

NUMBER = "number"
IDENTIFIER = "identifier"
OPERATOR = "operator"
PAREN = "paren"
COMMA = "comma"
EOF = "eof"

OPERATORS = frozenset(
    ["||", "&&", "==", "!=", "<=", ">=", "+", "-", "*", "/", "%", "^", "<", ">", "!"]
)


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    span: SourceSpan


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def _is_identifier_start(char: str) -> bool:
    return char == "_" or ("a" <= char <= "z") or ("A" <= char <= "Z")


def _is_identifier_part(char: str) -> bool:
    return _is_identifier_start(char) or _is_digit(char)


def tokenize(source: str) -> list[Token]:
    """Split formula text into tokens, ending with an EOF token."""
    tokens: list[Token] = []
    index = 0
    length = len(source)

    while index < length:
        char = source[index]

        if char.isspace():
            index += 1
            continue

        if _is_digit(char):
            start = index
            has_dot = False
            while index < length:
                current = source[index]
                if current == ".":
                    if has_dot:
                        break
                    has_dot = True
                    index += 1
                    continue
                if not _is_digit(current):
                    break
                index += 1
            tokens.append(Token(NUMBER, source[start:index], SourceSpan(start, index)))
            continue

        if _is_identifier_start(char):
            start = index
            index += 1
            while index < length and _is_identifier_part(source[index]):
                index += 1
            tokens.append(Token(IDENTIFIER, source[start:index], SourceSpan(start, index)))
            continue

        if char in "()":
            tokens.append(Token(PAREN, char, SourceSpan(index, index + 1)))
            index += 1
            continue

        if char == ",":
            tokens.append(Token(COMMA, char, SourceSpan(index, index + 1)))
            index += 1
            continue

        two_char = source[index:index + 2]
        if two_char in OPERATORS:
            tokens.append(Token(OPERATOR, two_char, SourceSpan(index, index + 2)))
            index += 2
            continue

        if char in OPERATORS:
            tokens.append(Token(OPERATOR, char, SourceSpan(index, index + 1)))
            index += 1
            continue

        raise ExpressionSyntaxError(
            f"Unexpected character '{char}'", SourceSpan(index, index + 1)
        )

    tokens.append(Token(EOF, "", SourceSpan(length, length)))
    return tokens


# =============================================================================
# Parser
# =============================================================================

class Parser:
    """
    Recursive-descent parser over a token list.

    `^` is left-associative here: each application takes one unary operand
    to its right, so 2 ^ 3 ^ 2 parses as (2 ^ 3) ^ 2.
    """

    BINARY_LEVELS: tuple[tuple[str, ...], ...] = (
        ("||",),
        ("&&",),
        ("==", "!="),
        ("<", "<=", ">", ">="),
        ("+", "-"),
        ("*", "/", "%"),
        ("^",),
    )

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source)
        self.current = 0

    def parse(self) -> ExpressionNode:
        expr = self._parse_level(0)
        token = self._peek()
        if token.kind != EOF:
            raise ExpressionSyntaxError("Unexpected input after expression", token.span)
        return expr

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _previous(self) -> Token:
        return self.tokens[self.current - 1]

    def _advance(self) -> Token:
        token = self.tokens[self.current]
        self.current += 1
        return token

    def _check(self, kind: str, value: str | None = None) -> bool:
        token = self._peek()
        return token.kind == kind and (value is None or token.value == value)

    def _match(self, kind: str, value: str | None = None) -> bool:
        if self._check(kind, value):
            self.current += 1
            return True
        return False

    def _parse_level(self, level: int) -> ExpressionNode:
        if level == len(self.BINARY_LEVELS):
            return self._parse_unary()

        operators = self.BINARY_LEVELS[level]
        expr = self._parse_level(level + 1)
        while self._peek().kind == OPERATOR and self._peek().value in operators:
            operator = self._advance().value
            right = self._parse_level(level + 1)
            expr = BinaryExpression(
                operator=operator,
                left=expr,
                right=right,
                span=SourceSpan(expr.span.start, right.span.end),
            )
        return expr

    def _parse_unary(self) -> ExpressionNode:
        token = self._peek()
        if token.kind == OPERATOR and token.value in ("!", "-"):
            self._advance()
            operand = self._parse_unary()
            return UnaryExpression(
                operator=token.value,
                operand=operand,
                span=SourceSpan(token.span.start, operand.span.end),
            )
        return self._parse_primary()

    def _parse_primary(self) -> ExpressionNode:
        token = self._peek()

        if token.kind == NUMBER:
            self._advance()
            return NumberLiteral(value=_parse_number(token.value), span=token.span)

        if token.kind == IDENTIFIER:
            self._advance()
            if token.value == "true":
                return BooleanLiteral(value=True, span=token.span)
            if token.value == "false":
                return BooleanLiteral(value=False, span=token.span)
            if token.value == "null":
                return NullLiteral(span=token.span)
            callee = Identifier(name=token.value, span=token.span)
            if self._match(PAREN, "("):
                return self._finish_call(callee)
            return callee

        if token.kind == PAREN and token.value == "(":
            self._advance()
            expr = self._parse_level(0)
            closing = self._peek()
            if not self._match(PAREN, ")"):
                raise ExpressionSyntaxError("Expected closing parenthesis", closing.span)
            return expr

        raise ExpressionSyntaxError(f"Unexpected token '{token.value}'", token.span)

    def _finish_call(self, callee: Identifier) -> CallExpression:
        arguments: list[ExpressionNode] = []
        if not self._check(PAREN, ")"):
            arguments.append(self._parse_level(0))
            while self._match(COMMA):
                arguments.append(self._parse_level(0))
        if not self._match(PAREN, ")"):
            raise ExpressionSyntaxError("Expected closing parenthesis", self._peek().span)
        return CallExpression(
            callee=callee,
            arguments=tuple(arguments),
            span=SourceSpan(callee.span.start, self._previous().span.end),
        )


def _parse_number(text: str) -> Union[int, float]:
    if "." in text:
        return float(text)
    return int(text)


def parse_expression(source: str) -> ExpressionNode:
    """Parse formula text into an AST. Raises ExpressionSyntaxError."""
    return Parser(source).parse()


def compile_expression(source: str) -> CompiledExpression:
    """Parse once; the result may be evaluated many times."""
    return CompiledExpression(source=source, ast=parse_expression(source))


# =============================================================================
# Evaluation
# =============================================================================

class DiceSource(Protocol):
    def next_int(self, max_exclusive: int) -> int: ...


HostFunction = Callable[[list[MiniValue]], MiniValue]


@dataclass
class EvaluationContext:
    """
    Context for evaluating formulas.

    Provides:
    - Variable bindings (name -> number, boolean or null)
    - Optional host functions, consulted before the builtins
    - Optional RNG for the dice builtins
    """
    variables: dict[str, MiniValue] = field(default_factory=dict)
    functions: dict[str, HostFunction] = field(default_factory=dict)
    rng: Optional[DiceSource] = None


def _as_number(value: MiniValue, message: str) -> Union[int, float]:
    if isinstance(value, bool):
        raise ExpressionEvaluationError(message)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    raise ExpressionEvaluationError(message)


def _as_boolean(value: MiniValue, message: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ExpressionEvaluationError(message)


def _as_positive_integer(value: Union[int, float], message: str) -> int:
    if isinstance(value, float):
        if not value.is_integer():
            raise ExpressionEvaluationError(message)
        value = int(value)
    if value < 1:
        raise ExpressionEvaluationError(message)
    return value


def _strict_equals(left: MiniValue, right: MiniValue) -> bool:
    if left is None or right is None:
        return left is right
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _truncated_mod(left: Union[int, float], right: Union[int, float]) -> Union[int, float]:
    if isinstance(left, int) and isinstance(right, int):
        remainder = abs(left) % abs(right)
        return -remainder if left < 0 else remainder
    return math.fmod(left, right)


def _power(left: Union[int, float], right: Union[int, float]) -> Union[int, float]:
    if isinstance(left, int) and isinstance(right, int) and right >= 0:
        return left ** right
    try:
        return math.pow(left, right)
    except (ValueError, OverflowError) as exc:
        raise ExpressionEvaluationError("Exponentiation failed") from exc


def _arithmetic(op: str, left: Union[int, float], right: Union[int, float]) -> Union[int, float]:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        if right == 0:
            raise ExpressionEvaluationError("Division by zero")
        return left / right
    if op == "%":
        if right == 0:
            raise ExpressionEvaluationError("Modulo by zero")
        return _truncated_mod(left, right)
    return _power(left, right)


def _to_integer(convert: Callable[[float], int], value: Union[int, float], name: str) -> int:
    # Infinity and NaN have no integer value.
    try:
        return convert(value)
    except (ValueError, OverflowError) as exc:
        raise ExpressionEvaluationError(f"{name} result is out of range") from exc


def _round_half_up(value: Union[int, float]) -> Union[int, float]:
    try:
        shifted = value + 0.5
    except OverflowError as exc:
        raise ExpressionEvaluationError("ROUND result is out of range") from exc
    return _to_integer(math.floor, shifted, "ROUND")


def roll_dice(sides: Union[int, float], count: Union[int, float], rng: DiceSource | None) -> int:
    """Roll `count` dice with `sides` faces and return the sum."""
    if rng is None:
        raise ExpressionEvaluationError(
            "Dice functions require an RNG in the evaluation context"
        )
    sides = _as_positive_integer(sides, "Dice sides must be a positive integer")
    count = _as_positive_integer(count, "Dice count must be a positive integer")
    total = 0
    for _ in range(count):
        total += rng.next_int(sides) + 1
    return total


class ExpressionEvaluator:
    """
    Tree-walking evaluator.

    Usage:
        evaluator = ExpressionEvaluator(EvaluationContext(variables={"ore": 3}))
        evaluator.evaluate(compile_expression("ore * 2").ast)  # -> 6
    """

    def __init__(self, context: EvaluationContext | None = None):
        self.context = context or EvaluationContext()
        self._builtins: dict[str, Callable[[tuple[ExpressionNode, ...]], MiniValue]] = {
            "IF": self._builtin_if,
            "MIN": self._builtin_min,
            "MAX": self._builtin_max,
            "CLAMP": self._builtin_clamp,
            "ABS": self._builtin_abs,
            "FLOOR": self._builtin_floor,
            "CEIL": self._builtin_ceil,
            "ROUND": self._builtin_round,
            "D6": self._builtin_d6,
            "D": self._builtin_d,
        }

    def evaluate(self, node: ExpressionNode) -> MiniValue:
        if isinstance(node, NumberLiteral):
            return node.value

        if isinstance(node, BooleanLiteral):
            return node.value

        if isinstance(node, NullLiteral):
            return None

        if isinstance(node, Identifier):
            if node.name not in self.context.variables:
                raise ExpressionEvaluationError(f"Unknown identifier '{node.name}'")
            return self.context.variables[node.name]

        if isinstance(node, UnaryExpression):
            operand = self.evaluate(node.operand)
            if node.operator == "!":
                return not _as_boolean(operand, "Logical not expects a boolean operand")
            return -_as_number(operand, "Unary minus expects a numeric operand")

        if isinstance(node, BinaryExpression):
            return self._evaluate_binary(node)

        if isinstance(node, CallExpression):
            return self._evaluate_call(node)

        raise ExpressionEvaluationError("Unsupported expression node")

    def _evaluate_binary(self, node: BinaryExpression) -> MiniValue:
        op = node.operator

        if op == "||":
            if self.evaluate(node.left):
                return True
            return bool(self.evaluate(node.right))

        if op == "&&":
            if not self.evaluate(node.left):
                return False
            return bool(self.evaluate(node.right))

        if op == "==":
            return _strict_equals(self.evaluate(node.left), self.evaluate(node.right))

        if op == "!=":
            return not _strict_equals(self.evaluate(node.left), self.evaluate(node.right))

        label = _OPERATOR_LABELS.get(op)
        if label is None:
            raise ExpressionEvaluationError(f"Unsupported operator '{op}'")
        message = f"{label} operands must be numbers"
        left = _as_number(self.evaluate(node.left), message)
        right = _as_number(self.evaluate(node.right), message)

        if op == "<":
            return left < right
        if op == "<=":
            return left <= right
        if op == ">":
            return left > right
        if op == ">=":
            return left >= right
        # Unbounded integers overflow once they meet a float.
        try:
            return _arithmetic(op, left, right)
        except OverflowError as exc:
            raise ExpressionEvaluationError(f"{label} result is out of range") from exc

    def _evaluate_call(self, node: CallExpression) -> MiniValue:
        handler = self.context.functions.get(node.name)
        if handler is not None:
            return handler([self.evaluate(arg) for arg in node.arguments])

        builtin = self._builtins.get(node.name)
        if builtin is None:
            raise ExpressionEvaluationError(f"Unknown function '{node.name}'")
        return builtin(node.arguments)

    # -------------------------------------------------------------------------
    # Builtins receive unevaluated arguments so IF can stay lazy.
    # -------------------------------------------------------------------------

    def _builtin_if(self, args):
        if len(args) != 3:
            raise ExpressionEvaluationError("IF expects exactly three arguments")
        if self.evaluate(args[0]):
            return self.evaluate(args[1])
        return self.evaluate(args[2])

    def _builtin_min(self, args):
        if not args:
            raise ExpressionEvaluationError("MIN expects at least one argument")
        return min(_as_number(self.evaluate(a), "MIN arguments must be numbers") for a in args)

    def _builtin_max(self, args):
        if not args:
            raise ExpressionEvaluationError("MAX expects at least one argument")
        return max(_as_number(self.evaluate(a), "MAX arguments must be numbers") for a in args)

    def _builtin_clamp(self, args):
        if len(args) != 3:
            raise ExpressionEvaluationError("CLAMP expects exactly three arguments")
        value = _as_number(self.evaluate(args[0]), "CLAMP value must be a number")
        low = _as_number(self.evaluate(args[1]), "CLAMP minimum must be a number")
        high = _as_number(self.evaluate(args[2]), "CLAMP maximum must be a number")
        if low > high:
            raise ExpressionEvaluationError("CLAMP minimum cannot exceed maximum")
        return min(max(value, low), high)

    def _single_numeric(self, name: str, args) -> Union[int, float]:
        if len(args) != 1:
            raise ExpressionEvaluationError(f"{name} expects exactly one argument")
        return _as_number(self.evaluate(args[0]), f"{name} argument must be a number")

    def _builtin_abs(self, args):
        return abs(self._single_numeric("ABS", args))

    def _builtin_floor(self, args):
        return _to_integer(math.floor, self._single_numeric("FLOOR", args), "FLOOR")

    def _builtin_ceil(self, args):
        return _to_integer(math.ceil, self._single_numeric("CEIL", args), "CEIL")

    def _builtin_round(self, args):
        if len(args) < 1 or len(args) > 2:
            raise ExpressionEvaluationError("ROUND expects one or two arguments")
        value = _as_number(self.evaluate(args[0]), "ROUND value must be a number")
        if len(args) == 1:
            return _round_half_up(value)
        precision = _as_number(self.evaluate(args[1]), "ROUND precision must be a number")
        try:
            factor = 10 ** precision
            return _round_half_up(value * factor) / factor
        except OverflowError as exc:
            raise ExpressionEvaluationError("ROUND result is out of range") from exc

    def _builtin_d6(self, args):
        count = 1
        if args:
            count = _as_number(self.evaluate(args[0]), "D6 argument must be a number")
        return roll_dice(6, count, self.context.rng)

    def _builtin_d(self, args):
        if not args:
            raise ExpressionEvaluationError("D expects at least one argument")
        sides = _as_number(self.evaluate(args[0]), "D sides must be a number")
        count = 1
        if len(args) > 1:
            count = _as_number(self.evaluate(args[1]), "D count must be a number")
        return roll_dice(sides, count, self.context.rng)


_OPERATOR_LABELS = {
    "<": "Comparison",
    "<=": "Comparison",
    ">": "Comparison",
    ">=": "Comparison",
    "+": "Addition",
    "-": "Subtraction",
    "*": "Multiplication",
    "/": "Division",
    "%": "Modulo",
    "^": "Exponentiation",
}

BUILTIN_FUNCTIONS = frozenset(
    ["IF", "MIN", "MAX", "CLAMP", "ABS", "FLOOR", "CEIL", "ROUND", "D6", "D"]
)


def evaluate_expression(
    compiled: CompiledExpression | str,
    variables: dict[str, MiniValue] | None = None,
    functions: dict[str, HostFunction] | None = None,
    rng: DiceSource | None = None,
) -> MiniValue:
    """
    Evaluate a compiled formula (or formula text) in a fresh context.

    Args:
        compiled: CompiledExpression, or source text compiled on the fly
        variables: Identifier bindings
        functions: Host functions, checked before the builtins
        rng: Generator for D6/D

    Returns:
        Evaluated value (number, boolean or None)
    """
    if isinstance(compiled, str):
        compiled = compile_expression(compiled)
    context = EvaluationContext(
        variables=variables if variables is not None else {},
        functions=functions or {},
        rng=rng,
    )
    return ExpressionEvaluator(context).evaluate(compiled.ast)


def list_identifiers(node: ExpressionNode) -> frozenset[str]:
    """Free identifier names referenced by a tree. Call names are not included."""
    found: set[str] = set()
    stack: list[ExpressionNode] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Identifier):
            found.add(current.name)
        elif isinstance(current, UnaryExpression):
            stack.append(current.operand)
        elif isinstance(current, BinaryExpression):
            stack.append(current.left)
            stack.append(current.right)
        elif isinstance(current, CallExpression):
            stack.extend(current.arguments)
    return frozenset(found)
