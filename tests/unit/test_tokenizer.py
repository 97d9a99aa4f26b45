"""Tests for the dicelang tokenizer."""

from __future__ import annotations

import pytest

from dicelang.core.errors import LexError
from dicelang.core.expression_lang.tokenizer import Lexer, TokenKind, decode_string, tokenize


def kinds(source: str) -> list[TokenKind]:
    return [tok.kind for tok in tokenize(source)]


class TestTokenizer:
    """Tokenizer produces correct token sequences."""

    def test_integer(self) -> None:
        tokens = tokenize("42")
        assert tokens[0].kind == TokenKind.NUMBER
        assert tokens[0].value == "42"

    def test_decimal_and_exponent(self) -> None:
        tokens = tokenize("3.25 2e+3 1.5e-2")
        assert [t.value for t in tokens[:-1]] == ["3.25", "2e+3", "1.5e-2"]
        assert all(t.kind == TokenKind.NUMBER for t in tokens[:-1])

    def test_ends_with_eof(self) -> None:
        tokens = tokenize("1")
        assert tokens[-1].kind == TokenKind.EOF
        assert tokens[-1].pos == 1

    def test_empty_source(self) -> None:
        assert kinds("") == [TokenKind.EOF]
        assert kinds("   \n\t") == [TokenKind.EOF]

    def test_keywords(self) -> None:
        assert kinds("let and in if then else")[:-1] == [
            TokenKind.LET,
            TokenKind.AND,
            TokenKind.IN,
            TokenKind.IF,
            TokenKind.THEN,
            TokenKind.ELSE,
        ]

    def test_keyword_prefix_is_a_name(self) -> None:
        tokens = tokenize("letter iffy")
        assert tokens[0].kind == TokenKind.NAME
        assert tokens[1].kind == TokenKind.NAME

    def test_names_exclude_digits(self) -> None:
        # `d20` is the die builtin applied to 20
        tokens = tokenize("d20")
        assert (tokens[0].kind, tokens[0].value) == (TokenKind.NAME, "d")
        assert (tokens[1].kind, tokens[1].value) == (TokenKind.NUMBER, "20")

    def test_two_character_operators_win(self) -> None:
        assert kinds("<= >= != ** < > = ! *")[:-1] == [
            TokenKind.LE,
            TokenKind.GE,
            TokenKind.NE,
            TokenKind.POWER,
            TokenKind.LT,
            TokenKind.GT,
            TokenKind.EQ,
            TokenKind.BANG,
            TokenKind.STAR,
        ]

    def test_ellipsis_is_a_name(self) -> None:
        tokens = tokenize("...[1. 2]")
        assert (tokens[0].kind, tokens[0].value) == (TokenKind.NAME, "...")
        assert tokens[1].kind == TokenKind.LBRACKET
        assert tokens[3].kind == TokenKind.DOT

    def test_punctuation(self) -> None:
        assert kinds("( ) [ ] , . @ | &")[:-1] == [
            TokenKind.LPAREN,
            TokenKind.RPAREN,
            TokenKind.LBRACKET,
            TokenKind.RBRACKET,
            TokenKind.COMMA,
            TokenKind.DOT,
            TokenKind.AT,
            TokenKind.OR,
            TokenKind.AMP,
        ]

    def test_comments_are_skipped(self) -> None:
        assert kinds("1 # roll nothing\n+ 2 # trailing")[:-1] == [
            TokenKind.NUMBER,
            TokenKind.PLUS,
            TokenKind.NUMBER,
        ]

    def test_positions(self) -> None:
        tokens = tokenize("ab  + 12")
        assert [t.pos for t in tokens] == [0, 4, 6, 8]
        assert tokens[2].end == 8


class TestStrings:
    def test_simple(self) -> None:
        tok = tokenize('"hello"')[0]
        assert tok.kind == TokenKind.STRING
        assert decode_string(tok) == "hello"

    def test_escapes(self) -> None:
        tok = tokenize(r'"a\"b\nA\\"')[0]
        assert decode_string(tok) == 'a"b\nA\\'

    def test_unterminated(self) -> None:
        with pytest.raises(LexError, match="Unterminated"):
            tokenize('"abc')

    def test_invalid_escape(self) -> None:
        with pytest.raises(LexError, match="malformed string"):
            tokenize(r'"\q"')


class TestLexErrors:
    def test_unexpected_character(self) -> None:
        with pytest.raises(LexError, match="Unexpected character: '\\$'") as exc_info:
            tokenize("1 $ 2")
        assert exc_info.value.pos == 2

    def test_error_renders_location(self) -> None:
        with pytest.raises(LexError) as exc_info:
            tokenize("1 +\n2 ~")
        message = str(exc_info.value)
        assert message.startswith("Line 2 column 3")
        assert message.endswith("2 ~\n--^")


class TestLexer:
    def test_peek_does_not_consume(self) -> None:
        lexer = Lexer("a b")
        assert lexer.peek().value == "a"
        assert lexer.peek().value == "a"
        assert lexer.next().value == "a"
        assert lexer.next().value == "b"

    def test_next_at_eof_is_stable(self) -> None:
        lexer = Lexer("")
        assert lexer.next().kind == TokenKind.EOF
        assert lexer.next().kind == TokenKind.EOF

    def test_lexing_is_lazy(self) -> None:
        # The bad character is only reached once the lexer gets there
        lexer = Lexer("1 $")
        assert lexer.peek().value == "1"
        with pytest.raises(LexError):
            lexer.next()
