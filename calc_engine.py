#!/usr/bin/env python3
"""
Keypad calculator engine (no GUI imports)

- Expression kept as a list of tokens { display, value } built from key presses
- Auto '*' between adjacent operands: 2(3) -> 2*(3), 2π, π2, )2, 2sin(, %(
- Calculator-style percent: 200+25% -> 250, 50×10% -> 5, 200÷25% -> 800, 10% -> 0.1
- Unclosed '(' are closed before evaluation (sin(30 == sin(30))
- Safe recursive-descent evaluator (no eval/exec), degree/radian trig
- Results: shortest round-trip decimal up to 16 digits, else d.ddddddddddddddde±n
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# ============================= Errors =======================================

class CalculationError(Exception): pass

class PercentWithoutOperand(CalculationError): pass

class EvaluationFailure(CalculationError): pass

class NonFiniteResult(CalculationError): pass

# ============================= Settings =====================================

@dataclass
class Settings:
    angle_mode: str = "deg"   # "deg" or "rad"
    auto_evaluate_percent: bool = True
    max_digits: int = 16      # longest plain result before switching to exponential
    exp_digits: int = 15      # fractional digits of the exponential form
    log_level: str = "WARNING"

    def validate(self) -> None:
        if self.angle_mode not in {"rad", "deg"}:
            raise ValueError("angle_mode must be 'rad' or 'deg'")
        if not (1 <= int(self.max_digits) <= 17):
            raise ValueError("max_digits must be 1..17")
        if not (0 <= int(self.exp_digits) <= 20):
            raise ValueError("exp_digits must be 0..20")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ValueError(f"unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls) -> "Settings":
        env = EnvSettings()
        settings = cls(
            angle_mode=env.angle_mode.strip().lower(),
            auto_evaluate_percent=env.auto_percent,
            log_level=env.log_level.strip().upper(),
        )
        settings.validate()
        return settings


class EnvSettings(BaseSettings):
    """CALC_ANGLE_MODE, CALC_AUTO_PERCENT and CALC_LOG_LEVEL overrides."""
    model_config = SettingsConfigDict(env_prefix="CALC_")

    angle_mode: str = "deg"
    auto_percent: bool = True
    log_level: str = "WARNING"

# ============================= Tokens =======================================

DIGIT, DOT, LPAREN, RPAREN, PERCENT = "digit", "dot", "lparen", "rparen", "percent"
FUNC_OPEN, CONST, OP, OTHER = "funcOpen", "const", "op", "other"

_NUMBER_PARTS = {DIGIT, DOT}
_MULTIPLY_AFTER = {DIGIT, RPAREN, CONST, PERCENT}
_MULTIPLY_BEFORE = {LPAREN, FUNC_OPEN, CONST, DIGIT}

_CONST_DISPLAYS = {"π", "e"}
_CONST_VALUES = {"pi", "e"}
_OP_DISPLAYS = {"+", "−", "×", "÷", "-", "*", "/"}
_OP_VALUES = {"+", "-", "*", "/"}
_OPERATORS = {"+": "+", "-": "-", "−": "-", "*": "*", "×": "*", "/": "/", "÷": "/"}


@dataclass(frozen=True)
class Token:
    display: str
    value: str

    @property
    def category(self) -> str:
        return classify(self.display, self.value)


MULTIPLY = Token("×", "*")


def classify(display: str, value: str) -> str:
    """Semantic category of a (display, value) pair; unmatched input is ``other``."""
    if len(display) == 1 and display in "0123456789": return DIGIT
    if display == ".": return DOT
    if display == "(": return LPAREN
    if display == ")": return RPAREN
    # '%' is also an operator glyph, so it has to win before the operator check
    if display == "%" or value == "%": return PERCENT
    if value.endswith("(") and value != "(": return FUNC_OPEN
    if display in _CONST_DISPLAYS or value in _CONST_VALUES: return CONST
    if display in _OP_DISPLAYS or value in _OP_VALUES: return OP
    return OTHER


def _operator_of(token: Token) -> Optional[str]:
    if token.category != OP: return None
    return _OPERATORS.get(token.value) or _OPERATORS.get(token.display)


_PLAIN_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_EXP_NUMBER = re.compile(r"-?\d+(?:\.\d+)?e[+-]\d+")

def operand_kind(token: Token) -> str:
    """Category used when joining tokens: a previous result counts as an operand.

    A plain result such as ``250`` continues like a digit run; an exponent
    result such as ``1e+21`` is a closed value like a constant, so typing
    after it never extends its exponent.
    """
    kind = token.category
    if kind != OTHER: return kind
    if _PLAIN_NUMBER.fullmatch(token.value): return DIGIT
    if _EXP_NUMBER.fullmatch(token.value): return CONST
    return kind

# ============================= Percent rewrite ==============================

def find_operand_range(tokens: Sequence[Token], end: int) -> Optional[Tuple[int, int]]:
    """Inclusive (start, end) of the operand that finishes at ``tokens[end]``.

    Handles numerals, constants, parenthesised groups and function calls
    (``sin(30)`` is one operand). Returns None when nothing usable as an
    operand ends there (start of input, an operator, or an opening paren).
    """
    if end < 0 or end >= len(tokens):
        return None
    kind = operand_kind(tokens[end])
    if kind == RPAREN:
        depth = 0
        for i in range(end, -1, -1):
            k = tokens[i].category
            if k == RPAREN:
                depth += 1
            elif k in (LPAREN, FUNC_OPEN):
                depth -= 1
                if depth == 0:
                    return i, end
        return 0, end
    if kind == CONST:
        return end, end
    if kind in _NUMBER_PARTS:
        start = end
        while start > 0 and operand_kind(tokens[start - 1]) in _NUMBER_PARTS:
            start -= 1
        return start, end
    if kind == PERCENT:
        return find_operand_range(tokens, end - 1)
    if kind in (OP, LPAREN, FUNC_OPEN):
        return None
    return end, end


def _values(tokens: Sequence[Token], span: Tuple[int, int]) -> str:
    return "".join(t.value for t in tokens[span[0]:span[1] + 1])


def _percent_of(b: str) -> str:
    return f"(({b})/100)"


def _apply_percent(op: str, a: str, b: str) -> str:
    if op in ("+", "-"): return f"(({a}){op}(({a})*{_percent_of(b)}))"
    if op == "*": return f"(({a})*{_percent_of(b)})"
    if op == "/": return f"(({a})/{_percent_of(b)})"
    return _percent_of(b)


def _nearest_operator(tokens: Sequence[Token], start: int) -> Optional[int]:
    for i in range(start, -1, -1):
        if _operator_of(tokens[i]) is not None:
            return i
    return None


def rewrite_percent(tokens: Sequence[Token]) -> str:
    """Evaluable string for ``tokens`` with every '%' turned into plain arithmetic.

    ``A + B%`` and ``A - B%`` are relative to A, ``A × B%`` and ``A ÷ B%`` scale
    by B/100, a bare ``B%`` is B/100. The input sequence is not modified.
    """
    work = list(tokens)
    i = 0
    while i < len(work):
        if work[i].category != PERCENT:
            i += 1
            continue
        b = find_operand_range(work, i - 1)
        if b is None:
            raise PercentWithoutOperand("'%' needs a number before it.")
        start, rewritten = b[0], _percent_of(_values(work, b))
        at = _nearest_operator(work, b[0] - 1)
        if at is not None:
            a = find_operand_range(work, at - 1)
            if a is not None:
                op = _operator_of(work[at])
                start, rewritten = a[0], _apply_percent(op, _values(work, a), _values(work, b))
        merged = Token("".join(t.display for t in work[start:i + 1]), rewritten)
        work[start:i + 1] = [merged]
        i = start + 1
    return "".join(t.value for t in work)

# ============================= Finalizer ====================================

def auto_balance(expr: str) -> str:
    """Close every '(' the user left open: ``1*(2+3`` -> ``1*(2+3)``."""
    balance = 0
    for ch in expr:
        if ch == "(": balance += 1
        elif ch == ")" and balance > 0: balance -= 1
    return expr + ")" * balance

# ============================= Evaluator ====================================

_DIGITS = "0123456789"

def _divide(a: float, b: float) -> float:
    if b != 0: return a / b
    if a == 0 or math.isnan(a): return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)

def _modulo(a: float, b: float) -> float:
    if b == 0 or math.isinf(a) or math.isnan(a) or math.isnan(b): return math.nan
    return math.fmod(a, b)


class SafeEvaluator:
    """Recursive-descent evaluator for the keypad grammar.

        expr    := term (('+' | '-') term)*
        term    := unary (('*' | '/' | '%') unary)*
        unary   := ('+' | '-') unary | primary
        primary := NUMBER | CONST | FUNC '(' expr ')' | '(' expr ')'

    Names are looked up in ``env``: callables are unary functions, anything
    else is a constant. Arithmetic follows IEEE floats, so x/0 is infinite
    rather than an exception.
    """

    MAX_LEN = 2000

    def __init__(self, env: Dict[str, Any]) -> None:
        self.env = env
        self._toks: List[Tuple[str, str]] = []
        self._pos = 0

    def eval_expr(self, expr: str) -> float:
        if not expr or not expr.strip():
            raise EvaluationFailure("Empty expression.")
        if len(expr) > self.MAX_LEN:
            raise EvaluationFailure(f"Expression too long (limit: {self.MAX_LEN} chars).")
        self._toks = self._tokenize(expr); self._pos = 0
        try:
            value = self._expr()
        except RecursionError:
            raise EvaluationFailure("Expression nested too deeply.") from None
        kind, text = self._peek()
        if kind != "end":
            raise EvaluationFailure(f"Unexpected '{text}'.")
        return value

    @staticmethod
    def _tokenize(expr: str) -> List[Tuple[str, str]]:
        out: List[Tuple[str, str]] = []
        i, n = 0, len(expr)
        while i < n:
            ch = expr[i]
            if ch.isspace():
                i += 1
            elif ch in _DIGITS or ch == ".":
                j = i
                while j < n and (expr[j] in _DIGITS or expr[j] == "."): j += 1
                if j < n and expr[j] in "eE":
                    k = j + 1
                    if k < n and expr[k] in "+-": k += 1
                    if k < n and expr[k] in _DIGITS:
                        while k < n and expr[k] in _DIGITS: k += 1
                        j = k
                out.append(("num", expr[i:j])); i = j
            elif ch.isalpha() or ch == "_":
                j = i
                while j < n and (expr[j].isalnum() or expr[j] == "_"): j += 1
                out.append(("name", expr[i:j])); i = j
            elif ch in "+-*/%":
                out.append(("op", ch)); i += 1
            elif ch in "()":
                out.append((ch, ch)); i += 1
            else:
                raise EvaluationFailure(f"Unexpected character {ch!r}.")
        out.append(("end", ""))
        return out

    def _peek(self) -> Tuple[str, str]: return self._toks[self._pos]

    def _next(self) -> Tuple[str, str]:
        tok = self._toks[self._pos]
        if tok[0] != "end": self._pos += 1
        return tok

    def _expect(self, kind: str) -> None:
        got, text = self._next()
        if got != kind:
            raise EvaluationFailure(f"Expected '{kind}' but found '{text or 'end of input'}'.")

    def _expr(self) -> float:
        value = self._term()
        while self._peek() in (("op", "+"), ("op", "-")):
            op = self._next()[1]
            rhs = self._term()
            value = value + rhs if op == "+" else value - rhs
        return value

    def _term(self) -> float:
        value = self._unary()
        while self._peek() in (("op", "*"), ("op", "/"), ("op", "%")):
            op = self._next()[1]
            rhs = self._unary()
            if op == "*": value = value * rhs
            elif op == "/": value = _divide(value, rhs)
            else: value = _modulo(value, rhs)
        return value

    def _unary(self) -> float:
        if self._peek() in (("op", "+"), ("op", "-")):
            op = self._next()[1]
            value = self._unary()
            return -value if op == "-" else value
        return self._primary()

    def _primary(self) -> float:
        kind, text = self._next()
        if kind == "num":
            try: return float(text)
            except ValueError: raise EvaluationFailure(f"Malformed number: {text}.") from None
        if kind == "(":
            value = self._expr(); self._expect(")")
            return value
        if kind == "name":
            target = self.env.get(text)
            if target is None: raise EvaluationFailure(f"Unknown name: {text}.")
            if not callable(target):
                if self._peek()[0] == "(":
                    raise EvaluationFailure(f"'{text}' is a constant, not a function.")
                return float(target)
            self._expect("(")
            arg = self._expr(); self._expect(")")
            try: return float(target(arg))
            except (ValueError, OverflowError) as exc:
                raise EvaluationFailure(f"{text} domain error: {exc}.") from None
        if kind == "end":
            raise EvaluationFailure("Unexpected end of expression.")
        raise EvaluationFailure(f"Unexpected '{text}'.")

# ============================= Formatting ===================================

def _shortest_digits(x: float) -> Tuple[str, int]:
    # repr() is the shortest string that round-trips; s * 10**exp == x
    t = Decimal(repr(x)).as_tuple()
    digits = "".join(map(str, t.digits))
    stripped = digits.rstrip("0") or "0"
    return stripped, int(t.exponent) + len(digits) - len(stripped)


def number_to_string(x: float) -> str:
    """Shortest round-trip text for ``x``, positional for 1e-7 < |x| < 1e21.

    ``250.0`` -> ``"250"``, ``1e-5`` -> ``"0.00001"``, ``1e21`` -> ``"1e+21"``.
    """
    if math.isnan(x): return "NaN"
    if math.isinf(x): return "Infinity" if x > 0 else "-Infinity"
    if x == 0: return "0"
    sign = "-" if x < 0 else ""
    digits, exp = _shortest_digits(abs(x))
    k = len(digits); n = k + exp
    if k <= n <= 21: body = digits + "0" * (n - k)
    elif 0 < n <= 21: body = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0: body = "0." + "0" * -n + digits
    else:
        mantissa = digits[0] + ("." + digits[1:] if k > 1 else "")
        body = f"{mantissa}e{n - 1:+d}"
    return sign + body


def to_exponential(x: float, fraction_digits: int = 15) -> str:
    mantissa, _, exp = f"{x:.{fraction_digits}e}".partition("e")
    return f"{mantissa}e{int(exp):+d}"


_TRAILING_ZEROS = re.compile(r"\.?0+$")

def format_result(x: Any, max_digits: int = 16, exp_digits: int = 15) -> str:
    """Display text for a result: plain up to ``max_digits`` digits, else exponential."""
    if isinstance(x, bool) or not isinstance(x, (int, float)): return "Error"
    x = float(x)
    if not math.isfinite(x): return "Error"
    if x == 0: return "0"
    plain = number_to_string(x)
    if "e" in plain: return to_exponential(x, exp_digits)
    if "." in plain: plain = _TRAILING_ZEROS.sub("", plain)
    if sum(ch.isdigit() for ch in plain) <= max_digits: return plain
    return to_exponential(x, exp_digits)

# ============================= Engine =======================================

class CalculatorEngine:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings(); self.settings.validate()

    def evaluate(self, expr: str) -> float:
        result = SafeEvaluator(self.build_env()).eval_expr(expr)
        if not math.isfinite(result):
            raise NonFiniteResult(f"Result is not a finite number ({number_to_string(result)}).")
        if result == 0.0: result = 0.0
        return result

    def format_number(self, x: float) -> str:
        return format_result(x, self.settings.max_digits, self.settings.exp_digits)

    def build_env(self) -> Dict[str, Any]:
        s = self.settings

        def _to_rad(x: float) -> float: return math.radians(x) if s.angle_mode == "deg" else x

        def sin(x: float) -> float: return math.sin(_to_rad(x))
        def cos(x: float) -> float: return math.cos(_to_rad(x))
        def tan(x: float) -> float: return math.tan(_to_rad(x))

        def ln(x: float) -> float:
            if x <= 0: raise ValueError("ln requires x > 0")
            return math.log(x)

        def log(x: float) -> float:
            if x <= 0: raise ValueError("log requires x > 0")
            return math.log10(x)

        def sqrt(x: float) -> float:
            if x < 0: raise ValueError("sqrt requires x >= 0")
            return math.sqrt(x)

        funcs: Dict[str, Callable[[float], float]] = {
            "sin": sin, "cos": cos, "tan": tan, "ln": ln, "log": log, "sqrt": sqrt}
        env: Dict[str, Any] = {"pi": math.pi, "e": math.e}
        env.update(funcs)
        return env

# ============================= Keypad actions ===============================

CLEAR, DELETE, EQUALS = "clear", "delete", "equals"
CONTROL_ACTIONS = (CLEAR, DELETE, EQUALS)

BUTTONS: Dict[str, Token] = {d: Token(d, d) for d in _DIGITS}
BUTTONS.update({
    "dot": Token(".", "."),
    "add": Token("+", "+"), "subtract": Token("−", "-"),
    "multiply": Token("×", "*"), "divide": Token("÷", "/"),
    "percent": Token("%", "%"),
    "lparen": Token("(", "("), "rparen": Token(")", ")"),
    "sin": Token("sin(", "sin("), "cos": Token("cos(", "cos("), "tan": Token("tan(", "tan("),
    "ln": Token("ln(", "ln("), "log": Token("log(", "log("), "sqrt": Token("√(", "sqrt("),
    "pi": Token("π", "pi"), "e": Token("e", "e"),
})

# Browser-style names and Tk keysyms both map here
KEY_ACTIONS: Dict[str, str] = {d: d for d in _DIGITS}
KEY_ACTIONS.update({
    ".": "dot", "period": "dot", "KP_Decimal": "dot",
    "+": "add", "-": "subtract", "*": "multiply", "/": "divide", "%": "percent",
    "(": "lparen", ")": "rparen",
    "Enter": EQUALS, "Return": EQUALS, "KP_Enter": EQUALS, "=": EQUALS,
    "Backspace": DELETE, "BackSpace": DELETE,
    "Delete": CLEAR, "Escape": CLEAR,
})

def action_for_key(key: str) -> Optional[str]:
    return KEY_ACTIONS.get(key)

# ============================= Controller ===================================

class Calculator:
    """Owns the token sequence and the two display cells (expression, result).

    Every change to the in-progress calculation goes through these methods.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.engine = CalculatorEngine(settings)
        self.tokens: List[Token] = []
        self.expression_text = "0"
        self.result_text = "0"

    @property
    def settings(self) -> Settings: return self.engine.settings

    def _refresh_expression(self) -> None:
        self.expression_text = "".join(t.display for t in self.tokens) if self.tokens else "0"

    def clear(self) -> None:
        self.tokens = []; self.result_text = "0"
        self._refresh_expression()
        logger.debug("cleared")

    def delete_last(self) -> None:
        if not self.tokens: return
        removed = self.tokens.pop()
        self._refresh_expression()
        logger.debug("deleted %r", removed.display)

    def handle_input(self, display: str, value: Optional[str] = None) -> None:
        value = display if value is None else value
        kind = classify(display, value)
        last_kind = operand_kind(self.tokens[-1]) if self.tokens else None

        # 1 2 . 5 -> "12.5"; digits and dots of one numeral are never split
        run = last_kind in _NUMBER_PARTS and kind in _NUMBER_PARTS
        if not run and last_kind in _MULTIPLY_AFTER and kind in _MULTIPLY_BEFORE:
            self.tokens.append(MULTIPLY)
        self.tokens.append(Token(display, value))
        self._refresh_expression()
        logger.debug("input %r (%s) -> %s", display, kind, self.expression_text)

        if kind == PERCENT and self.settings.auto_evaluate_percent:
            self.evaluate()

    def evaluable_expression(self) -> str:
        return auto_balance(rewrite_percent(self.tokens))

    def evaluate(self) -> bool:
        """Evaluate the current tokens; on failure show "Error" and keep them."""
        if not self.tokens: return False
        expr = None
        try:
            expr = self.evaluable_expression()
            result = self.engine.evaluate(expr)
        except CalculationError as exc:
            logger.warning("evaluation of %r failed: %s", expr or self.expression_text, exc)
            self.result_text = "Error"
            return False
        formatted = self.engine.format_number(result)
        self.result_text = formatted
        self.tokens = [Token(formatted, number_to_string(result))]
        self._refresh_expression()
        logger.info("%s = %s", expr, formatted)
        return True

    def press(self, action: str) -> None:
        if action == CLEAR: self.clear()
        elif action == DELETE: self.delete_last()
        elif action == EQUALS: self.evaluate()
        elif action in BUTTONS:
            tok = BUTTONS[action]; self.handle_input(tok.display, tok.value)
        else:
            raise ValueError(f"Unknown action: {action}")

    def handle_key(self, key: str) -> bool:
        action = action_for_key(key)
        if action is None: return False
        self.press(action)
        return True
