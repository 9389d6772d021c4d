"""
Guard expression parser.

Turns guard text such as `ctx.amount > 100 && ctx.approved` into a
ConditionGroup tree. Each nesting level holds a single logic operator;
`&&` and `||` may only be combined through parenthesized sub-groups, which
mirrors the one-operator-per-group model of the visual builder.

Malformed input never raises: parse_guard returns a ParseFailure instead so
the caller can keep the previous guard in effect.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from fsmstudio.guard.ast import Condition, ConditionGroup, GuardValue, Logic, Operator

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")

# Order matters: `!=` must win over `!`, fields over bare words.
_TOKEN_SPEC = [
    ("WS", r"\s+"),
    ("AND", r"&&"),
    ("OR", r"\|\|"),
    ("CMP", r"==|!=|>=|<=|>|<"),
    ("NOT", r"!"),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
    ("STRING", r"\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'"),
    ("FIELD", r"ctx(?:\.[A-Za-z0-9_]+)+(?![^\s()!&|=<>\"'])"),
    ("WORD", r"[^\s()!&|=<>\"']+"),
]
_TOKEN_RE = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _TOKEN_SPEC))


@dataclass(frozen=True)
class ParseFailure:
    """Guard text did not match the grammar."""

    message: str
    position: Optional[int] = None

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (at column {self.position + 1})"


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    pos: int


class _GuardSyntaxError(Exception):
    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.position = position


def _tokenize(text: str) -> List[_Token]:
    tokens: List[_Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            if text[pos] in "\"'":
                raise _GuardSyntaxError("unterminated string literal", pos)
            raise _GuardSyntaxError(f"unexpected character {text[pos]!r}", pos)
        kind = match.lastgroup
        if kind != "WS":
            tokens.append(_Token(kind, match.group(), pos))
        pos = match.end()
    return tokens


def _unquote(literal: str) -> str:
    body = literal[1:-1]
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            i += 1
            ch = body[i]
        out.append(ch)
        i += 1
    return "".join(out)


def parse_value(raw: str) -> GuardValue:
    """Interpret an unquoted value lexeme."""
    if raw == "null":
        return None
    if raw == "true":
        return True
    if raw == "false":
        return False
    if _NUMBER_RE.match(raw):
        return int(raw) if _INTEGER_RE.match(raw) else float(raw)
    return raw


class _Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0

    def peek(self) -> Optional[_Token]:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def advance(self) -> _Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def expect(self, kind: str, what: str) -> _Token:
        token = self.peek()
        if token is None:
            raise _GuardSyntaxError(f"expected {what}, got end of expression", len(self.text))
        if token.kind != kind:
            raise _GuardSyntaxError(f"expected {what}, got {token.text!r}", token.pos)
        return self.advance()

    def parse(self) -> ConditionGroup:
        logic, items = self.parse_expr()
        token = self.peek()
        if token is not None:
            if token.kind == "RPAREN":
                raise _GuardSyntaxError("unmatched ')'", token.pos)
            raise _GuardSyntaxError(f"unexpected {token.text!r}", token.pos)

        if len(items) == 1 and isinstance(items[0], ConditionGroup):
            return items[0]
        return ConditionGroup(logic=logic, items=items)

    def parse_expr(self) -> Tuple[Logic, List[Union[Condition, ConditionGroup]]]:
        items = [self.parse_term()]
        logic_kind: Optional[str] = None

        while True:
            token = self.peek()
            if token is None or token.kind not in ("AND", "OR"):
                break
            if logic_kind is None:
                logic_kind = token.kind
            elif token.kind != logic_kind:
                raise _GuardSyntaxError(
                    "cannot mix '&&' and '||' at the same level; group with parentheses",
                    token.pos,
                )
            self.advance()
            following = self.peek()
            if following is None or following.kind in ("AND", "OR", "RPAREN"):
                pos = following.pos if following else len(self.text)
                raise _GuardSyntaxError(f"missing operand after {token.text!r}", pos)
            items.append(self.parse_term())

        logic = Logic.OR if logic_kind == "OR" else Logic.AND
        return logic, items

    def parse_parenthesized(self) -> Tuple[Logic, List[Union[Condition, ConditionGroup]]]:
        opening = self.expect("LPAREN", "'('")
        following = self.peek()
        if following is not None and following.kind == "RPAREN":
            raise _GuardSyntaxError("empty parentheses", opening.pos)
        logic, items = self.parse_expr()
        token = self.peek()
        if token is None:
            raise _GuardSyntaxError("unmatched '('", opening.pos)
        self.expect("RPAREN", "')'")
        return logic, items

    def parse_term(self) -> Union[Condition, ConditionGroup]:
        token = self.peek()
        if token is None:
            raise _GuardSyntaxError("expected condition, got end of expression", len(self.text))

        if token.kind == "NOT":
            self.advance()
            following = self.peek()
            if following is not None and following.kind == "LPAREN":
                logic, items = self.parse_parenthesized()
                return _negate(logic, items)
            field = self.expect("FIELD", "'ctx.<field>' or '(' after '!'")
            return Condition(field=field.text, operator=Operator.NOT_EXISTS)

        if token.kind == "LPAREN":
            logic, items = self.parse_parenthesized()
            if len(items) == 1:
                return items[0]
            return ConditionGroup(logic=logic, items=items)

        return self.parse_atom()

    def parse_atom(self) -> Condition:
        field = self.expect("FIELD", "'ctx.<field>'")
        token = self.peek()
        if token is None or token.kind != "CMP":
            return Condition(field=field.text, operator=Operator.EXISTS)

        operator = Operator(self.advance().text)
        raw = self.peek()
        if raw is None or raw.kind not in ("STRING", "WORD", "FIELD"):
            pos = raw.pos if raw else len(self.text)
            raise _GuardSyntaxError(f"missing value after {operator.value!r}", pos)
        self.advance()

        if raw.kind == "STRING":
            value: GuardValue = _unquote(raw.text)
        else:
            value = parse_value(raw.text)
        return Condition(field=field.text, operator=operator, value=value)


def _negate(
    logic: Logic, items: List[Union[Condition, ConditionGroup]]
) -> Union[Condition, ConditionGroup]:
    """`!( ... )`: negate a lone item directly, otherwise wrap in a negated group."""
    if len(items) == 1 and not items[0].negated:
        return items[0].model_copy(update={"negated": True})
    return ConditionGroup(logic=logic, items=items, negated=True)


def parse_guard(text: str) -> Union[ConditionGroup, ParseFailure]:
    """
    Parse guard text into a ConditionGroup.

    Args:
        text: Guard expression, e.g. `ctx.amount > 100 && ctx.approved`

    Returns:
        The root ConditionGroup, or a ParseFailure describing why the text
        is outside the guard grammar. Blank text is a failure as well: an
        absent guard is represented by no guard at all.
    """
    if text is None or not text.strip():
        return ParseFailure("empty expression", 0)

    try:
        return _Parser(text).parse()
    except _GuardSyntaxError as e:
        logger.debug(f"Guard parse failed: {e.message} at {e.position}: {text!r}")
        return ParseFailure(e.message, e.position)


def is_parse_failure(result: object) -> bool:
    return isinstance(result, ParseFailure)
