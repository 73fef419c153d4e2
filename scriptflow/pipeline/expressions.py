"""Arithmetic for the <CALC_expr> placeholder.

Grammar::

    expr  := term (('+' | '-') term)*
    term  := unary (('*' | '/') unary)*
    unary := ('+' | '-') unary | atom
    atom  := NUMBER ['%'] | '(' expr ')'

``N%`` is N/100, so ``<CALC_50%*1920>`` is 960.
"""

import math
import re

from scriptflow.utils import ScriptflowError

_TOKEN = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(\S))")


class ExpressionError(ScriptflowError):
    """Raised when a <CALC_> expression cannot be evaluated."""
    pass


def _tokenize(text: str) -> list[str]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if match is None:
            raise ExpressionError(f"Unexpected input at {pos}: {text[pos:]!r}")
        number, symbol = match.groups()
        if symbol is not None and symbol not in "+-*/()%":
            raise ExpressionError(f"Unexpected character {symbol!r}")
        tokens.append(number if number is not None else symbol)
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str):
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self):
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> str:
        token = self.peek()
        if token is None:
            raise ExpressionError("Unexpected end of expression")
        self.pos += 1
        return token

    def parse(self) -> float:
        if not self.tokens:
            raise ExpressionError("Empty expression")
        value = self.expr()
        if self.peek() is not None:
            raise ExpressionError(f"Unexpected token {self.peek()!r}")
        return value

    def expr(self) -> float:
        value = self.term()
        while self.peek() in ("+", "-"):
            if self.take() == "+":
                value += self.term()
            else:
                value -= self.term()
        return value

    def term(self) -> float:
        value = self.unary()
        while self.peek() in ("*", "/"):
            if self.take() == "*":
                value *= self.unary()
            else:
                divisor = self.unary()
                if divisor == 0:
                    raise ExpressionError("Division by zero")
                value /= divisor
        return value

    def unary(self) -> float:
        if self.peek() == "-":
            self.take()
            return -self.unary()
        if self.peek() == "+":
            self.take()
            return self.unary()
        return self.atom()

    def atom(self) -> float:
        token = self.take()
        if token == "(":
            value = self.expr()
            if self.take() != ")":
                raise ExpressionError("Expected ')'")
            return value
        if token[0].isdigit() or token[0] == ".":
            value = float(token)
            if self.peek() == "%":
                self.take()
                value /= 100
            return value
        raise ExpressionError(f"Unexpected token {token!r}")


def evaluate(expression: str) -> float:
    """Evaluate an arithmetic expression.

    Raises:
        ExpressionError: If the expression is malformed or divides by zero
    """
    value = _Parser(expression).parse()
    if not math.isfinite(value):
        raise ExpressionError(f"Result out of range: {expression}")
    return value


def format_number(value: float) -> str:
    """Render a result: integral values without a decimal point."""
    value = round(value, 10)
    if value == int(value):
        return str(int(value))
    return format(value, ".10f").rstrip("0").rstrip(".")
