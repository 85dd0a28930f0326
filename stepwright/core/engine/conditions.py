"""
Condition Evaluator — closed-grammar boolean expressions.

Conditions come from the configuration document, so they are parsed
into a small tagged AST and interpreted here.  Nothing is ever
compiled or executed as host code.

Grammar::

    expr        := or_expr
    or_expr     := and_expr (("||" | "or") and_expr)*
    and_expr    := not_expr (("&&" | "and") not_expr)*
    not_expr    := ("!" | "not") not_expr | comparison
    comparison  := primary (("==" | "===" | "!=" | "!==") primary
                           | ("in" | "not" "in") primary)?
    primary     := "(" expr ")" | STRING | NUMBER
                 | "true" | "false" | "null" | IDENT

Unknown variables evaluate to ``None`` (falsy).  A malformed
expression raises ``ConditionEvalError``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping

from stepwright.core.errors import ConditionEvalError

logger = logging.getLogger(__name__)


# ── AST ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Const:
    value: Any


@dataclass(frozen=True)
class Var:
    name: str


@dataclass(frozen=True)
class Eq:
    left: Node
    right: Node


@dataclass(frozen=True)
class Neq:
    left: Node
    right: Node


@dataclass(frozen=True)
class In:
    item: Node
    container: Node


@dataclass(frozen=True)
class And:
    left: Node
    right: Node


@dataclass(frozen=True)
class Or:
    left: Node
    right: Node


@dataclass(frozen=True)
class Not:
    operand: Node


Node = Const | Var | Eq | Neq | In | And | Or | Not


# ── Tokenizer ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    pos: int


_TOKEN_RE = re.compile(
    r"""
    (?P<STRING>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')
  | (?P<NUMBER>-?\d+(?:\.\d+)?)
  | (?P<OP>===|!==|==|!=|&&|\|\||!|\(|\))
  | (?P<ID>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<SKIP>\s+)
  | (?P<MISMATCH>.)
    """,
    re.VERBOSE,
)

_KEYWORDS = {"and", "or", "not", "in", "true", "false", "null"}


def _tokenize(expression: str) -> list[Token]:
    tokens: list[Token] = []
    for m in _TOKEN_RE.finditer(expression):
        kind = m.lastgroup or "MISMATCH"
        value = m.group(0)
        if kind == "SKIP":
            continue
        if kind == "MISMATCH":
            raise ConditionEvalError(
                expression, f"unexpected character {value!r} at {m.start()}"
            )
        if kind == "ID" and value in _KEYWORDS:
            kind = "KW"
        tokens.append(Token(kind, value, m.start()))
    tokens.append(Token("EOF", "", len(expression)))
    return tokens


def _unquote(literal: str) -> str:
    body = literal[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


# ── Parser ──────────────────────────────────────────────────────


class _Parser:
    def __init__(self, expression: str):
        self._expression = expression
        self._tokens = _tokenize(expression)
        self._pos = 0

    def parse(self) -> Node:
        if self._peek().kind == "EOF":
            raise ConditionEvalError(self._expression, "empty expression")
        node = self._or()
        tok = self._peek()
        if tok.kind != "EOF":
            raise self._error(f"unexpected {tok.value!r}", tok)
        return node

    # helpers

    def _peek(self, offset: int = 0) -> Token:
        return self._tokens[min(self._pos + offset, len(self._tokens) - 1)]

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def _match(self, *values: str) -> bool:
        tok = self._peek()
        if tok.kind in ("OP", "KW") and tok.value in values:
            self._pos += 1
            return True
        return False

    def _error(self, message: str, tok: Token) -> ConditionEvalError:
        return ConditionEvalError(self._expression, f"{message} at {tok.pos}")

    # grammar

    def _or(self) -> Node:
        node = self._and()
        while self._match("||", "or"):
            node = Or(node, self._and())
        return node

    def _and(self) -> Node:
        node = self._not()
        while self._match("&&", "and"):
            node = And(node, self._not())
        return node

    def _not(self) -> Node:
        # "not in" belongs to comparison, never to a leading "not"
        if self._match("!"):
            return Not(self._not())
        if self._peek().kind == "KW" and self._peek().value == "not":
            self._advance()
            return Not(self._not())
        return self._comparison()

    def _comparison(self) -> Node:
        left = self._primary()
        if self._match("==", "==="):
            return Eq(left, self._primary())
        if self._match("!=", "!=="):
            return Neq(left, self._primary())
        if self._match("in"):
            return In(left, self._primary())
        tok, nxt = self._peek(), self._peek(1)
        if tok.kind == "KW" and tok.value == "not" and nxt.kind == "KW" and nxt.value == "in":
            self._pos += 2
            return Not(In(left, self._primary()))
        return left

    def _primary(self) -> Node:
        tok = self._advance()
        if tok.kind == "OP" and tok.value == "(":
            node = self._or()
            if not self._match(")"):
                raise self._error("expected ')'", self._peek())
            return node
        if tok.kind == "STRING":
            return Const(_unquote(tok.value))
        if tok.kind == "NUMBER":
            return Const(float(tok.value) if "." in tok.value else int(tok.value))
        if tok.kind == "KW" and tok.value in ("true", "false", "null"):
            return Const({"true": True, "false": False, "null": None}[tok.value])
        if tok.kind == "ID":
            return Var(tok.value)
        if tok.kind == "EOF":
            raise self._error("unexpected end of expression", tok)
        raise self._error(f"unexpected {tok.value!r}", tok)


@lru_cache(maxsize=256)
def parse_condition(expression: str) -> Node:
    """Parse *expression* into an AST (cached; nodes are immutable)."""
    return _Parser(expression).parse()


# ── Interpreter ─────────────────────────────────────────────────


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _equal(left: Any, right: Any) -> bool:
    if left == right:
        return True
    # numbers from forms often arrive as strings
    if isinstance(left, (int, float)) != isinstance(right, (int, float)):
        a, b = _as_number(left), _as_number(right)
        if a is not None and b is not None:
            return a == b
    return False


def _eval(node: Node, variables: Mapping[str, Any], expression: str) -> Any:
    if isinstance(node, Const):
        return node.value
    if isinstance(node, Var):
        return variables.get(node.name)
    if isinstance(node, Eq):
        return _equal(_eval(node.left, variables, expression), _eval(node.right, variables, expression))
    if isinstance(node, Neq):
        return not _equal(_eval(node.left, variables, expression), _eval(node.right, variables, expression))
    if isinstance(node, And):
        return bool(_eval(node.left, variables, expression)) and bool(_eval(node.right, variables, expression))
    if isinstance(node, Or):
        return bool(_eval(node.left, variables, expression)) or bool(_eval(node.right, variables, expression))
    if isinstance(node, Not):
        return not _eval(node.operand, variables, expression)
    if isinstance(node, In):
        item = _eval(node.item, variables, expression)
        container = _eval(node.container, variables, expression)
        if container is None:
            return False
        if isinstance(container, str):
            return str(item) in container
        if isinstance(container, (list, tuple, set, frozenset)):
            return any(_equal(item, member) for member in container)
        raise ConditionEvalError(
            expression, f"cannot test membership in {type(container).__name__}"
        )
    raise ConditionEvalError(expression, f"unsupported node {node!r}")


def evaluate_condition(expression: str, variables: Mapping[str, Any]) -> bool:
    """Evaluate *expression* against *variables*.

    Raises:
        ConditionEvalError: if the expression is malformed.
    """
    return bool(_eval(parse_condition(expression.strip()), variables, expression))


def is_met(expression: str | None, variables: Mapping[str, Any]) -> bool:
    """Like ``evaluate_condition`` but treats errors as a false condition.

    ``None`` (no condition) is always met.
    """
    if expression is None or not expression.strip():
        return True
    try:
        return evaluate_condition(expression, variables)
    except ConditionEvalError as exc:
        logger.warning("%s — treating as false", exc)
        return False
