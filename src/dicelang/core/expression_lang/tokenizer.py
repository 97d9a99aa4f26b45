"""
Tokenizer for the dicelang expression language.

Converts source text into a sequence of typed tokens. A single combined
regular expression is matched at the current offset; the order of its
alternatives decides ties (`...` before `.`, `<=` before `<`, `**` before
`*`, `!=` before `!`).
"""

from __future__ import annotations

import json
import re
from enum import StrEnum, auto

from dicelang.core.errors import make_lex_error


class TokenKind(StrEnum):
    """Token types for the expression language."""

    # Literals
    NUMBER = auto()
    STRING = auto()

    # Identifiers (including the `...` fold builtin) and keywords
    NAME = auto()
    LET = auto()
    AND = auto()
    IN = auto()
    IF = auto()
    THEN = auto()
    ELSE = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    POWER = auto()
    EQ = auto()
    NE = auto()
    LT = auto()
    GT = auto()
    LE = auto()
    GE = auto()
    OR = auto()
    AMP = auto()
    BANG = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    DOT = auto()
    AT = auto()

    # End of input
    EOF = auto()


class Token:
    """A single token from the expression tokenizer."""

    __slots__ = ("kind", "value", "pos")

    def __init__(self, kind: TokenKind, value: str, pos: int) -> None:
        self.kind = kind
        self.value = value
        self.pos = pos

    @property
    def end(self) -> int:
        """Offset one past the token's last character."""
        return self.pos + len(self.value)

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r}, pos={self.pos})"


_KEYWORDS: dict[str, TokenKind] = {
    "let": TokenKind.LET,
    "and": TokenKind.AND,
    "in": TokenKind.IN,
    "if": TokenKind.IF,
    "then": TokenKind.THEN,
    "else": TokenKind.ELSE,
}

_OPERATORS: dict[str, TokenKind] = {
    "<=": TokenKind.LE,
    ">=": TokenKind.GE,
    "!=": TokenKind.NE,
    "**": TokenKind.POWER,
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.STAR,
    "/": TokenKind.SLASH,
    "%": TokenKind.PERCENT,
    "<": TokenKind.LT,
    ">": TokenKind.GT,
    "=": TokenKind.EQ,
    "!": TokenKind.BANG,
    "|": TokenKind.OR,
    "&": TokenKind.AMP,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    ",": TokenKind.COMMA,
    ".": TokenKind.DOT,
    "@": TokenKind.AT,
}

_TOKEN_RE = re.compile(
    r"""
    (?P<ellipsis>\.\.\.)
    | (?P<op><=|>=|!=|\*\*|[-+*/%<>=!|&()\[\],.@])
    | (?P<number>\d+(?:\.\d+)?(?:e[+-]\d+)?)
    | (?P<string>"(?:[^"\\]|\\(?:["\\/bfnrt]|u[0-9a-fA-F]{4}))*")
    | (?P<name>[a-zA-Z_]+)
    | (?P<space>\s+)
    | (?P<comment>\#[^\n]*)
    """,
    re.VERBOSE,
)


def _scan(source: str, pos: int) -> tuple[Token, int]:
    """Return the next significant token at or after `pos` and the new offset."""
    n = len(source)
    while pos < n:
        m = _TOKEN_RE.match(source, pos)
        if m is None:
            if source[pos] == '"':
                raise make_lex_error("Unterminated or malformed string literal", source, pos)
            raise make_lex_error(f"Unexpected character: {source[pos]!r}", source, pos)

        group = m.lastgroup
        text = m.group(0)
        start = pos
        pos = m.end()

        if group in ("space", "comment"):
            continue
        if group == "ellipsis":
            return Token(TokenKind.NAME, text, start), pos
        if group == "op":
            return Token(_OPERATORS[text], text, start), pos
        if group == "number":
            return Token(TokenKind.NUMBER, text, start), pos
        if group == "string":
            return Token(TokenKind.STRING, text, start), pos
        return Token(_KEYWORDS.get(text, TokenKind.NAME), text, start), pos

    return Token(TokenKind.EOF, "", n), n


def decode_string(token: Token) -> str:
    """Decode a STRING token's quoted text into its value."""
    # The accepted escapes are exactly JSON's
    return json.loads(token.value, strict=False)


class Lexer:
    """Token stream over source text with one token of lookahead."""

    def __init__(self, source: str) -> None:
        self.source = source
        self._pos = 0
        self._next = self._advance()

    def _advance(self) -> Token:
        tok, self._pos = _scan(self.source, self._pos)
        return tok

    def peek(self) -> Token:
        """Return the next token without consuming it."""
        return self._next

    def next(self) -> Token:
        """Consume and return the next token."""
        tok = self._next
        if tok.kind != TokenKind.EOF:
            self._next = self._advance()
        return tok


def tokenize(source: str) -> list[Token]:
    """Tokenize an expression string into a list of tokens ending with EOF."""
    lexer = Lexer(source)
    tokens: list[Token] = []
    while True:
        tok = lexer.next()
        tokens.append(tok)
        if tok.kind == TokenKind.EOF:
            return tokens
