"""
Pratt parser for the dicelang expression language.

Every expression is parsed by `parse_expression(min_bp)`: one prefix term,
then a loop over infix operators whose left binding power is at least
`min_bp`. Binding powers (low to high; a right power below the left one
makes an operator right-associative):

    ,                   1  2     application, left-associative
    = !=                3  4
    < <= > >=           5  6
    |                   7  8
    &                   9  10
    + -                 11 12
    * / %               13 14
    **                  16 15    right-associative
    unary + - !            17
    juxtaposition       20 19    `d 20`, right-associative
    call f(a, b)        21

Prefix terms:
    number | string | "()" | "(" expr ")" | "[" (expr ("." expr)* "."?)? "]"
    | "@" NAME expr | ("+" | "-" | "!") expr
    | "let" NAME expr ("and" NAME expr)* "in" expr
    | "if" expr "then" expr "else" expr
    | NAME

Operators are sugar: `a + b` becomes `Apply(Apply(Variable("+"), a), b)`.
"""

from __future__ import annotations

from dicelang.core.errors import make_parse_error
from dicelang.core.expression_lang.tokenizer import Lexer, Token, TokenKind, decode_string
from dicelang.core.ir.expressions import (
    Apply,
    ArrayLiteral,
    Expr,
    FunctionLiteral,
    If,
    Let,
    NumberLiteral,
    StringLiteral,
    UnitLiteral,
    Variable,
)

# Binary operators: token -> (left bp, right bp)
_INFIX_BP: dict[TokenKind, tuple[int, int]] = {
    TokenKind.EQ: (3, 4),
    TokenKind.NE: (3, 4),
    TokenKind.LT: (5, 6),
    TokenKind.LE: (5, 6),
    TokenKind.GT: (5, 6),
    TokenKind.GE: (5, 6),
    TokenKind.OR: (7, 8),
    TokenKind.AMP: (9, 10),
    TokenKind.PLUS: (11, 12),
    TokenKind.MINUS: (11, 12),
    TokenKind.STAR: (13, 14),
    TokenKind.SLASH: (13, 14),
    TokenKind.PERCENT: (13, 14),
    TokenKind.POWER: (16, 15),
}

_COMMA_BP = (1, 2)
_UNARY_BP = 17
_JUXTAPOSITION_BP = (20, 19)
_CALL_BP = 21

# Names the unary operators are bound to; none is a valid identifier
UNARY_BUILTINS: dict[TokenKind, str] = {
    TokenKind.PLUS: "+x",
    TokenKind.MINUS: "-x",
    TokenKind.BANG: "!",
}

# Tokens that can begin a prefix term, and so trigger juxtaposition
_PREFIX_START = frozenset(
    {
        TokenKind.NUMBER,
        TokenKind.STRING,
        TokenKind.NAME,
        TokenKind.LPAREN,
        TokenKind.LBRACKET,
        TokenKind.AT,
        TokenKind.BANG,
        TokenKind.LET,
        TokenKind.IF,
    }
)


class _Parser:
    """Pratt parser over a one-token-lookahead lexer."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.lexer = Lexer(source)

    @property
    def current(self) -> Token:
        return self.lexer.peek()

    def advance(self) -> Token:
        return self.lexer.next()

    def error(self, message: str, tok: Token | None = None) -> Exception:
        tok = tok or self.current
        return make_parse_error(message, self.source, tok.pos, tok.end)

    def expect(self, kind: TokenKind, what: str) -> Token:
        tok = self.current
        if tok.kind != kind:
            raise self.error(f"Expected {what}, got {_describe(tok)}")
        return self.advance()

    def match(self, *kinds: TokenKind) -> Token | None:
        if self.current.kind in kinds:
            return self.advance()
        return None

    # -- Pratt loop --

    def parse_expression(self, min_bp: int = 0) -> Expr:
        lhs = self.parse_prefix()

        while True:
            tok = self.current

            if tok.kind == TokenKind.LPAREN:
                if _CALL_BP < min_bp:
                    break
                lhs = self.parse_call(lhs)
                continue

            if tok.kind == TokenKind.COMMA:
                lbp, rbp = _COMMA_BP
                if lbp < min_bp:
                    break
                self.advance()
                rhs = self.parse_expression(rbp)
                lhs = Apply(callee=lhs, argument=rhs, start=lhs.start, end=rhs.end)
                continue

            if tok.kind in _INFIX_BP:
                lbp, rbp = _INFIX_BP[tok.kind]
                if lbp < min_bp:
                    break
                self.advance()
                rhs = self.parse_expression(rbp)
                op = Variable(name=tok.value, start=tok.pos, end=tok.end)
                partial = Apply(callee=op, argument=lhs, start=lhs.start, end=tok.end)
                lhs = Apply(callee=partial, argument=rhs, start=lhs.start, end=rhs.end)
                continue

            # Two expressions in a row: `d 20`, `5 d20`, `highest 3`
            if tok.kind in _PREFIX_START:
                lbp, rbp = _JUXTAPOSITION_BP
                if lbp < min_bp:
                    break
                rhs = self.parse_expression(rbp)
                lhs = Apply(callee=lhs, argument=rhs, start=lhs.start, end=rhs.end)
                continue

            break

        return lhs

    def parse_call(self, callee: Expr) -> Expr:
        """callee '(' (expr (',' expr)*)? ')'"""
        open_ = self.expect(TokenKind.LPAREN, "'('")
        if self.current.kind == TokenKind.RPAREN:
            close = self.advance()
            unit = UnitLiteral(start=open_.pos, end=close.end)
            return Apply(callee=callee, argument=unit, start=callee.start, end=close.end)

        result = callee
        while True:
            # Commas separate arguments here, so stop below their binding power
            arg = self.parse_expression(_COMMA_BP[1])
            result = Apply(callee=result, argument=arg, start=callee.start, end=arg.end)
            if not self.match(TokenKind.COMMA):
                break
        close = self.expect(TokenKind.RPAREN, "')' after arguments")
        return result.model_copy(update={"end": close.end})

    # -- Prefix terms --

    def parse_prefix(self) -> Expr:
        tok = self.current

        if tok.kind == TokenKind.NUMBER:
            self.advance()
            return NumberLiteral(value=float(tok.value), start=tok.pos, end=tok.end)

        if tok.kind == TokenKind.STRING:
            self.advance()
            return StringLiteral(value=decode_string(tok), start=tok.pos, end=tok.end)

        if tok.kind == TokenKind.LPAREN:
            return self.parse_parenthesized()

        if tok.kind == TokenKind.LBRACKET:
            return self.parse_array()

        if tok.kind == TokenKind.AT:
            return self.parse_function()

        if tok.kind in UNARY_BUILTINS:
            self.advance()
            operand = self.parse_expression(_UNARY_BP)
            op = Variable(name=UNARY_BUILTINS[tok.kind], start=tok.pos, end=tok.end)
            return Apply(callee=op, argument=operand, start=tok.pos, end=operand.end)

        if tok.kind == TokenKind.LET:
            return self.parse_let()

        if tok.kind == TokenKind.IF:
            return self.parse_if()

        if tok.kind == TokenKind.NAME:
            self.advance()
            return Variable(name=tok.value, start=tok.pos, end=tok.end)

        raise self.error(f"Expected expression, got {_describe(tok)}")

    def parse_parenthesized(self) -> Expr:
        """'(' ')' | '(' expr ')'"""
        open_ = self.advance()
        if self.current.kind == TokenKind.RPAREN:
            close = self.advance()
            return UnitLiteral(start=open_.pos, end=close.end)
        inner = self.parse_expression(0)
        self.expect(TokenKind.RPAREN, "closing parenthesis")
        return inner

    def parse_array(self) -> ArrayLiteral:
        """'[' (expr ('.' expr)* '.'?)? ']'"""
        open_ = self.advance()
        elements: list[Expr] = []
        while self.current.kind != TokenKind.RBRACKET:
            elements.append(self.parse_expression(0))
            if not self.match(TokenKind.DOT):
                break
        close = self.expect(TokenKind.RBRACKET, "'.' or closing bracket")
        return ArrayLiteral(elements=elements, start=open_.pos, end=close.end)

    def parse_function(self) -> FunctionLiteral:
        """'@' NAME expr"""
        at = self.advance()
        param = self.expect(TokenKind.NAME, "parameter name after '@'")
        body = self.parse_expression(0)
        return FunctionLiteral(parameter=param.value, body=body, start=at.pos, end=body.end)

    def parse_let(self) -> Let:
        """'let' NAME expr ('and' NAME expr)* 'in' expr"""
        let = self.advance()
        bindings: list[tuple[str, Expr]] = []
        while True:
            name = self.expect(TokenKind.NAME, "variable name")
            bindings.append((name.value, self.parse_expression(0)))
            if not self.match(TokenKind.AND):
                break
        self.expect(TokenKind.IN, "'and' or 'in'")
        body = self.parse_expression(0)
        return Let(bindings=bindings, body=body, start=let.pos, end=body.end)

    def parse_if(self) -> If:
        """'if' expr 'then' expr 'else' expr"""
        if_ = self.advance()
        condition = self.parse_expression(0)
        self.expect(TokenKind.THEN, "'then'")
        then_expr = self.parse_expression(0)
        self.expect(TokenKind.ELSE, "'else'")
        else_expr = self.parse_expression(0)
        return If(
            condition=condition,
            then_expr=then_expr,
            else_expr=else_expr,
            start=if_.pos,
            end=else_expr.end,
        )


def _describe(tok: Token) -> str:
    if tok.kind == TokenKind.EOF:
        return "end of input"
    return repr(tok.value)


def parse_expr(source: str) -> Expr:
    """Parse an expression string into an AST.

    Args:
        source: Expression string (e.g., "highest 3, 4 d6")

    Returns:
        Parsed expression AST.

    Raises:
        ParseError: If the expression is invalid.
        LexError: If tokenization fails.
    """
    parser = _Parser(source)
    try:
        expr = parser.parse_expression(0)
    except RecursionError:
        # Each nesting level costs a few Python frames
        raise make_parse_error(
            "Expression is nested too deeply", source, parser.current.pos, parser.current.end
        ) from None

    # Ensure all tokens consumed
    if parser.current.kind != TokenKind.EOF:
        raise parser.error(f"Unexpected token after expression: {_describe(parser.current)}")

    return expr
