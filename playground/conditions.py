"""Filter condition evaluator for iteration and tag lists.

Conditions are boolean expressions over one data item, written with the
JavaScript-like syntax users type into the editor, e.g.::

    item.active
    item.price >= 10 && item.price <= 20
    item.name.startsWith("A") || item.tags.includes("new")
    ["red", "blue"].includes(item.color)

A condition is tokenized and parsed once into a small expression tree, then
interpreted per item. Nothing is ever executed as host-language code.

Supported operations:
- Comparison: ==, ===, !=, !==, >, <, >=, <=
- Boolean: && / and, || / or, ! / not
- Member access: item.field, item["field"], item[0], value.length
- Methods: includes, startsWith, endsWith, toLowerCase, toUpperCase, trim
- Literals: numbers, quoted strings, true, false, null, undefined, [a, b]
- Parentheses for grouping
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .display import get_display
from .errors import ExpressionError
from .paths import UNDEFINED

Token = Tuple[str, str]


# =============================================================================
# Expression tree
# =============================================================================


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Member:
    """Property or index access: ``target.key`` / ``target[key]``."""

    target: "Expr"
    key: "Expr"


@dataclass(frozen=True)
class Call:
    """Method call on a value: ``target.method(args)``."""

    target: "Expr"
    method: str
    args: Tuple["Expr", ...]


@dataclass(frozen=True)
class ArrayLiteral:
    items: Tuple["Expr", ...]


@dataclass(frozen=True)
class Not:
    operand: "Expr"


@dataclass(frozen=True)
class Negate:
    operand: "Expr"


@dataclass(frozen=True)
class Compare:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Logical:
    op: str  # "and" | "or"
    left: "Expr"
    right: "Expr"


Expr = Union[Literal, Variable, Member, Call, ArrayLiteral, Not, Negate, Compare, Logical]

_COMPARISON_OPS = ("===", "!==", "==", "!=", ">=", "<=", ">", "<")
_METHODS = ("includes", "startsWith", "endsWith", "toLowerCase", "toUpperCase", "trim")


@dataclass
class ConditionResult:
    """Outcome of checking one item against a condition."""

    satisfied: bool
    error: Optional[str] = None


class ConditionEvaluator:
    """Compiles conditions once and evaluates them per item.

    Args:
        var_name: Name of the implicit variable bound to the item
            ("item" for iteration, "tag" for tag lists)
    """

    # Token patterns
    _TOKEN_PATTERN = re.compile(
        r"""
        (?P<NUMBER>\d+(?:\.\d+)?)                         |  # Numbers
        (?P<STRING>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')   |  # Quoted strings
        (?P<OP>===|!==|==|!=|>=|<=|&&|\|\||>|<|!|-)       |  # Operators
        (?P<PUNCT>[()\[\],.])                             |  # Punctuation
        (?P<IDENT>[A-Za-z_$][A-Za-z0-9_$]*)               |  # Identifiers
        (?P<WS>\s+)                                          # Whitespace
        """,
        re.VERBOSE,
    )

    _KEYWORDS = {
        "true": ("BOOL", "true"),
        "false": ("BOOL", "false"),
        "null": ("NULL", "null"),
        "undefined": ("UNDEFINED", "undefined"),
        "and": ("OP", "&&"),
        "or": ("OP", "||"),
        "not": ("KEYWORD", "not"),
    }

    def __init__(self, var_name: str = "item") -> None:
        self.var_name = var_name
        self._cache: Dict[str, Union[Expr, ExpressionError]] = {}

    # =========================================================================
    # Public API
    # =========================================================================

    def compile(self, condition: str) -> Expr:
        """Parse a condition into an expression tree, caching by text.

        Raises:
            ExpressionError: If the condition is not valid syntax
        """
        cached = self._cache.get(condition)
        if cached is None:
            try:
                cached = self._compile(condition)
            except ExpressionError as e:
                cached = e
            self._cache[condition] = cached

        if isinstance(cached, ExpressionError):
            raise cached
        return cached

    def evaluate(self, condition: str, item: Any) -> bool:
        """Evaluate a condition against one item.

        An empty condition is always satisfied.

        Raises:
            ExpressionError: If the condition fails to compile or evaluate
        """
        if condition is None:
            return True
        if not isinstance(condition, str):
            raise ExpressionError(
                f"Condition must be a string, got {type(condition).__name__}"
            )
        if not condition.strip():
            return True
        expr = self.compile(condition)
        try:
            return self._is_truthy(self._eval(expr, item))
        except RecursionError:
            raise ExpressionError("Expression nested too deeply", condition)
        except (ArithmeticError, ValueError) as e:
            raise ExpressionError(str(e), condition)

    def check(self, condition: str, item: Any) -> ConditionResult:
        """Evaluate without raising: failures keep the item and are reported."""
        try:
            return ConditionResult(satisfied=self.evaluate(condition, item))
        except ExpressionError as e:
            get_display().print_warning(
                f"Condition '{condition}' failed: {e}. Keeping item."
            )
            return ConditionResult(satisfied=True, error=str(e))

    def matches(self, condition: str, item: Any) -> bool:
        """Fail-open boolean check."""
        return self.check(condition, item).satisfied

    def filter(self, items: List[Any], condition: Optional[str]) -> List[Any]:
        """Keep the items satisfying condition, in their original order."""
        if condition is None or (isinstance(condition, str) and not condition.strip()):
            return list(items)
        return [item for item in items if self.matches(condition, item)]

    # =========================================================================
    # Tokenizer
    # =========================================================================

    def _compile(self, condition: str) -> Expr:
        tokens = self._tokenize(condition)
        if not tokens:
            raise ExpressionError("Empty expression", condition)
        try:
            expr, remaining = self._parse_or(tokens)
        except RecursionError:
            raise ExpressionError("Expression nested too deeply", condition)
        if remaining:
            raise ExpressionError(
                f"Unexpected token '{remaining[0][1]}'", condition
            )
        return expr

    def _tokenize(self, expr: str) -> List[Token]:
        """Tokenize expression into (type, value) pairs."""
        tokens: List[Token] = []
        pos = 0

        while pos < len(expr):
            match = self._TOKEN_PATTERN.match(expr, pos)
            if not match:
                raise ExpressionError(
                    f"Unexpected character '{expr[pos]}' at position {pos}", expr
                )

            pos = match.end()
            kind = match.lastgroup
            text = match.group()

            if kind == "WS":
                continue

            if kind == "STRING":
                tokens.append(("STRING", self._unescape(text[1:-1])))
            elif kind == "IDENT" and text in self._KEYWORDS:
                tokens.append(self._KEYWORDS[text])
            elif kind is not None:
                tokens.append((kind, text))

        return tokens

    def _unescape(self, text: str) -> str:
        escapes = {"n": "\n", "t": "\t"}
        return re.sub(r"\\(.)", lambda m: escapes.get(m.group(1), m.group(1)), text)

    # =========================================================================
    # Parser
    # =========================================================================

    def _parse_or(self, tokens: List[Token]) -> Tuple[Expr, List[Token]]:
        """Parse: and (|| and)*"""
        left, tokens = self._parse_and(tokens)

        while tokens and tokens[0] == ("OP", "||"):
            right, tokens = self._parse_and(tokens[1:])
            left = Logical("or", left, right)

        return left, tokens

    def _parse_and(self, tokens: List[Token]) -> Tuple[Expr, List[Token]]:
        """Parse: not (&& not)*"""
        left, tokens = self._parse_not(tokens)

        while tokens and tokens[0] == ("OP", "&&"):
            right, tokens = self._parse_not(tokens[1:])
            left = Logical("and", left, right)

        return left, tokens

    def _parse_not(self, tokens: List[Token]) -> Tuple[Expr, List[Token]]:
        """Parse: not not | comparison"""
        if tokens and tokens[0] == ("KEYWORD", "not"):
            operand, tokens = self._parse_not(tokens[1:])
            return Not(operand), tokens

        return self._parse_comparison(tokens)

    def _parse_comparison(self, tokens: List[Token]) -> Tuple[Expr, List[Token]]:
        """Parse: unary (CMP unary)?"""
        left, tokens = self._parse_unary(tokens)

        if tokens and tokens[0][0] == "OP" and tokens[0][1] in _COMPARISON_OPS:
            op = tokens[0][1]
            right, tokens = self._parse_unary(tokens[1:])
            return Compare(op, left, right), tokens

        return left, tokens

    def _parse_unary(self, tokens: List[Token]) -> Tuple[Expr, List[Token]]:
        """Parse: -unary | !unary | postfix"""
        if tokens and tokens[0] == ("OP", "-"):
            operand, tokens = self._parse_unary(tokens[1:])
            return Negate(operand), tokens
        if tokens and tokens[0] == ("OP", "!"):
            operand, tokens = self._parse_unary(tokens[1:])
            return Not(operand), tokens

        return self._parse_postfix(tokens)

    def _parse_postfix(self, tokens: List[Token]) -> Tuple[Expr, List[Token]]:
        """Parse: primary (.name | .method(args) | [expr])*"""
        expr, tokens = self._parse_primary(tokens)

        while tokens:
            if tokens[0] == ("PUNCT", "."):
                if len(tokens) < 2 or tokens[1][0] not in ("IDENT", "BOOL", "NULL", "UNDEFINED"):
                    raise ExpressionError("Expected property name after '.'")
                name = tokens[1][1]
                tokens = tokens[2:]
                if tokens and tokens[0] == ("PUNCT", "("):
                    if name not in _METHODS:
                        raise ExpressionError(f"Unsupported method '{name}'")
                    args, tokens = self._parse_arguments(tokens[1:])
                    expr = Call(expr, name, args)
                else:
                    expr = Member(expr, Literal(name))
            elif tokens[0] == ("PUNCT", "["):
                key, tokens = self._parse_or(tokens[1:])
                if not tokens or tokens[0] != ("PUNCT", "]"):
                    raise ExpressionError("Missing closing bracket")
                tokens = tokens[1:]
                expr = Member(expr, key)
            else:
                break

        return expr, tokens

    def _parse_arguments(
        self, tokens: List[Token]
    ) -> Tuple[Tuple[Expr, ...], List[Token]]:
        """Parse call arguments after '(' up to the matching ')'."""
        args, tokens = self._parse_sequence(tokens, ")")
        return args, tokens

    def _parse_sequence(
        self, tokens: List[Token], closer: str
    ) -> Tuple[Tuple[Expr, ...], List[Token]]:
        """Parse comma-separated expressions until closer."""
        items: List[Expr] = []
        if tokens and tokens[0] == ("PUNCT", closer):
            return tuple(items), tokens[1:]

        while True:
            item, tokens = self._parse_or(tokens)
            items.append(item)
            if not tokens:
                raise ExpressionError(f"Missing closing '{closer}'")
            if tokens[0] == ("PUNCT", ","):
                tokens = tokens[1:]
                continue
            if tokens[0] == ("PUNCT", closer):
                return tuple(items), tokens[1:]
            raise ExpressionError(f"Unexpected token '{tokens[0][1]}'")

    def _parse_primary(self, tokens: List[Token]) -> Tuple[Expr, List[Token]]:
        """Parse: NUMBER | STRING | BOOL | NULL | IDENT | (expr) | [items]"""
        if not tokens:
            raise ExpressionError("Unexpected end of expression")

        token_type, token_val = tokens[0]

        if token_type == "NUMBER":
            try:
                val = float(token_val) if "." in token_val else int(token_val)
            except ValueError:
                raise ExpressionError(f"Number literal too long ({len(token_val)} digits)")
            return Literal(val), tokens[1:]

        if token_type == "STRING":
            return Literal(token_val), tokens[1:]

        if token_type == "BOOL":
            return Literal(token_val == "true"), tokens[1:]

        if token_type == "NULL":
            return Literal(None), tokens[1:]

        if token_type == "UNDEFINED":
            return Literal(UNDEFINED), tokens[1:]

        if token_type == "IDENT":
            return Variable(token_val), tokens[1:]

        if (token_type, token_val) == ("PUNCT", "("):
            expr, tokens = self._parse_or(tokens[1:])
            if not tokens or tokens[0] != ("PUNCT", ")"):
                raise ExpressionError("Missing closing parenthesis")
            return expr, tokens[1:]

        if (token_type, token_val) == ("PUNCT", "["):
            items, tokens = self._parse_sequence(tokens[1:], "]")
            return ArrayLiteral(items), tokens

        raise ExpressionError(f"Unexpected token '{token_val}'")

    # =========================================================================
    # Interpreter
    # =========================================================================

    def _eval(self, expr: Expr, item: Any) -> Any:
        if isinstance(expr, Literal):
            return expr.value

        if isinstance(expr, Variable):
            if expr.name == self.var_name:
                return item
            raise ExpressionError(f"Unknown identifier '{expr.name}'")

        if isinstance(expr, Member):
            return self._member(self._eval(expr.target, item), self._eval(expr.key, item))

        if isinstance(expr, Call):
            target = self._eval(expr.target, item)
            args = [self._eval(arg, item) for arg in expr.args]
            return self._call(target, expr.method, args)

        if isinstance(expr, ArrayLiteral):
            return [self._eval(element, item) for element in expr.items]

        if isinstance(expr, Not):
            return not self._is_truthy(self._eval(expr.operand, item))

        if isinstance(expr, Negate):
            num = self._to_number(self._eval(expr.operand, item))
            if num is None:
                raise ExpressionError("Cannot negate non-number")
            return -num

        if isinstance(expr, Logical):
            left = self._eval(expr.left, item)
            if expr.op == "and":
                return self._eval(expr.right, item) if self._is_truthy(left) else left
            return left if self._is_truthy(left) else self._eval(expr.right, item)

        if isinstance(expr, Compare):
            return self._compare(
                expr.op, self._eval(expr.left, item), self._eval(expr.right, item)
            )

        raise ExpressionError(f"Unsupported expression: {expr!r}")

    def _member(self, target: Any, key: Any) -> Any:
        """Property access with undefined-on-miss, error on null target."""
        if target is None or target is UNDEFINED:
            raise ExpressionError(
                f"Cannot read property '{self._to_string(key)}' of {self._to_string(target)}"
            )

        if isinstance(target, dict):
            return target.get(self._to_string(key), UNDEFINED)

        if isinstance(target, (list, str)):
            if key == "length":
                return len(target)
            idx = self._to_number(key)
            if idx is not None and not isinstance(key, bool) and float(idx).is_integer():
                idx = int(idx)
                if 0 <= idx < len(target):
                    return target[idx]
            return UNDEFINED

        return UNDEFINED

    def _call(self, target: Any, method: str, args: List[Any]) -> Any:
        first = args[0] if args else UNDEFINED

        if method == "includes":
            if isinstance(target, list):
                return any(self._strict_equal(element, first) for element in target)
            if isinstance(target, str):
                return self._to_string(first) in target
        elif isinstance(target, str):
            if method == "startsWith":
                return target.startswith(self._to_string(first))
            if method == "endsWith":
                return target.endswith(self._to_string(first))
            if method == "toLowerCase":
                return target.lower()
            if method == "toUpperCase":
                return target.upper()
            if method == "trim":
                return target.strip()

        raise ExpressionError(
            f"Cannot call {method}() on {self._type_name(target)}"
        )

    def _compare(self, op: str, left: Any, right: Any) -> bool:
        if op == "===":
            return self._strict_equal(left, right)
        if op == "!==":
            return not self._strict_equal(left, right)
        if op == "==":
            return self._loose_equal(left, right)
        if op == "!=":
            return not self._loose_equal(left, right)

        # Relational: strings compare lexically, everything else numerically
        if isinstance(left, str) and isinstance(right, str):
            left_cmp: Union[str, float] = left
            right_cmp: Union[str, float] = right
        elif self._is_number(left) and self._is_number(right):
            left_cmp, right_cmp = left, right
        else:
            left_num = self._to_number(left)
            right_num = self._to_number(right)
            if left_num is None or right_num is None:
                return False
            left_cmp, right_cmp = left_num, right_num

        if op == ">":
            return left_cmp > right_cmp
        if op == "<":
            return left_cmp < right_cmp
        if op == ">=":
            return left_cmp >= right_cmp
        return left_cmp <= right_cmp

    def _strict_equal(self, left: Any, right: Any) -> bool:
        if isinstance(left, bool) or isinstance(right, bool):
            return isinstance(left, bool) and isinstance(right, bool) and left == right
        if self._is_number(left) and self._is_number(right):
            return left == right
        if type(left) is not type(right):
            return False
        return left == right

    def _loose_equal(self, left: Any, right: Any) -> bool:
        nullish = (None, UNDEFINED)
        if left in nullish or right in nullish:
            return left in nullish and right in nullish
        if type(left) is type(right) or (self._is_number(left) and self._is_number(right)):
            return self._strict_equal(left, right)
        if isinstance(left, (list, dict)) or isinstance(right, (list, dict)):
            return False
        left_num = self._to_number(left)
        right_num = self._to_number(right)
        if left_num is None or right_num is None:
            return False
        return left_num == right_num

    # =========================================================================
    # Value helpers
    # =========================================================================

    def _is_number(self, val: Any) -> bool:
        return isinstance(val, (int, float)) and not isinstance(val, bool)

    def _to_number(self, val: Any) -> Optional[float]:
        """Try to convert value to number."""
        if isinstance(val, bool):
            return float(val)
        if isinstance(val, (int, float)):
            if isinstance(val, float) and math.isnan(val):
                return None
            try:
                return float(val)
            except OverflowError:
                # Integers beyond float range behave like Infinity
                return math.inf if val > 0 else -math.inf
        if val is None:
            return 0.0
        if isinstance(val, str):
            if not val.strip():
                return 0.0
            try:
                num = float(val)
            except ValueError:
                return None
            return None if math.isnan(num) else num
        return None

    def _is_truthy(self, val: Any) -> bool:
        """Check if value is truthy (JavaScript semantics)."""
        if val is None or val is UNDEFINED:
            return False
        if isinstance(val, bool):
            return val
        if isinstance(val, (int, float)):
            return val != 0 and not (isinstance(val, float) and math.isnan(val))
        if isinstance(val, str):
            return val != ""
        return True

    def _to_string(self, val: Any) -> str:
        """Convert value to string."""
        if val is UNDEFINED:
            return "undefined"
        if val is None:
            return "null"
        if isinstance(val, bool):
            return "true" if val else "false"
        if isinstance(val, float) and val.is_integer():
            return str(int(val))
        return str(val)

    def _type_name(self, val: Any) -> str:
        if val is UNDEFINED:
            return "undefined"
        if val is None:
            return "null"
        if isinstance(val, bool):
            return "boolean"
        if isinstance(val, (int, float)):
            return "number"
        if isinstance(val, str):
            return "string"
        if isinstance(val, list):
            return "array"
        return "object"


# Shared evaluator instances keyed by variable name
_evaluators: Dict[str, ConditionEvaluator] = {}


def get_evaluator(var_name: str = "item") -> ConditionEvaluator:
    """Get the shared evaluator for a variable name."""
    evaluator = _evaluators.get(var_name)
    if evaluator is None:
        evaluator = ConditionEvaluator(var_name)
        _evaluators[var_name] = evaluator
    return evaluator
