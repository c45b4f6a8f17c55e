"""
Textual access policy grammar.

    expr   := factor (("&&" | "&" | "||" | "|") factor)*
    factor := "(" expr ")" | "*" | Axis::Name

AND and OR share one precedence level and an unparenthesised chain nests to
the right: the expression splits at its first operator and the remainder is
parsed as one operand, so ``A && B || C`` reads ``A && (B || C)``. A bare
``*`` stands for every attribute. Spaces around operators and parentheses are
ignored, spaces inside names are kept.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..attribute import Attribute
from ..errors import InvalidPolicy, ParseError
from .expression import ALL_TOKEN, AccessPolicy, All, And, Attr, Or

UNSUPPORTED = "!^~"


@dataclass(frozen=True)
class Token:
    kind: str  # "(", ")", "&", "|", "leaf", "end"
    text: str
    position: int


def tokenize(expression: str) -> list[Token]:
    tokens: list[Token] = []
    i, n = 0, len(expression)
    leaf_start = None

    def close_leaf(end: int) -> None:
        nonlocal leaf_start
        if leaf_start is not None:
            tokens.append(Token("leaf", expression[leaf_start:end], leaf_start))
            leaf_start = None

    while i < n:
        c = expression[i]
        if c in "()":
            close_leaf(i)
            tokens.append(Token(c, c, i))
            i += 1
        elif c in "&|":
            close_leaf(i)
            width = 2 if expression[i:i + 2] == c * 2 else 1
            tokens.append(Token(c, expression[i:i + width], i))
            i += width
        elif c in UNSUPPORTED:
            raise ParseError(f"unsupported operator {c!r}", expression, i)
        else:
            if leaf_start is None and not c.isspace():
                leaf_start = i
            i += 1
    close_leaf(n)
    tokens.append(Token("end", "", n))
    return tokens


class Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = tokenize(expression)
        self.pos = 0

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def fail(self, reason: str, tok: Token) -> ParseError:
        return ParseError(reason, self.expression, tok.position)

    def parse(self) -> AccessPolicy:
        if not self.expression.strip():
            raise InvalidPolicy("empty access policy expression")
        node = self.expr()
        tok = self.peek()
        if tok.kind == ")":
            raise self.fail("unbalanced closing parenthesis", tok)
        if tok.kind != "end":
            raise self.fail(f"unexpected {tok.text!r}", tok)
        return node

    def expr(self) -> AccessPolicy:
        operands = [self.factor()]
        operators: list[str] = []
        while self.peek().kind in ("&", "|"):
            operators.append(self.advance().kind)
            operands.append(self.factor())
        node = operands.pop()
        while operators:
            left = operands.pop()
            node = And(left, node) if operators.pop() == "&" else Or(left, node)
        return node

    def factor(self) -> AccessPolicy:
        tok = self.advance()
        if tok.kind == "(":
            node = self.expr()
            closing = self.advance()
            if closing.kind != ")":
                raise self.fail("missing closing parenthesis", closing)
            return node
        if tok.kind == "leaf":
            return self.leaf(tok)
        if tok.kind == "end":
            raise self.fail("empty leaf: expression ends where an attribute was expected", tok)
        if tok.kind == ")":
            raise self.fail("empty leaf before closing parenthesis", tok)
        raise self.fail(f"operator {tok.text!r} has no left operand", tok)

    def leaf(self, tok: Token) -> AccessPolicy:
        text = tok.text.strip()
        nxt = self.peek()
        if nxt.kind == "(":
            raise self.fail(f"missing operator between {text!r} and '('", nxt)
        if text == ALL_TOKEN:
            return All()
        try:
            return Attr(Attribute.parse(text))
        except ParseError as exc:
            raise ParseError(exc.reason, self.expression, tok.position) from None


def parse(expression: str) -> AccessPolicy:
    """Parse ``"(Department::HR || Department::RnD) && Level::L2"`` style text."""
    return Parser(expression).parse()
