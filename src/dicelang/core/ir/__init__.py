"""
dicelang Intermediate Representation (IR) types.

All expression node types are re-exported from this package.
"""

from .expressions import (
    Apply,
    ArrayLiteral,
    Expr,
    FunctionLiteral,
    If,
    Let,
    Node,
    NumberLiteral,
    StringLiteral,
    UnitLiteral,
    Variable,
)

__all__ = [
    "Apply",
    "ArrayLiteral",
    "Expr",
    "FunctionLiteral",
    "If",
    "Let",
    "Node",
    "NumberLiteral",
    "StringLiteral",
    "UnitLiteral",
    "Variable",
]
