"""
dicelang expression language.

Tokenizer, Pratt parser, explicit-stack evaluator, builtin library and
value printer.

Usage:
    from dicelang.core.expression_lang import evaluate, parse_expr, print_value

    expr = parse_expr("highest 3, 4 d6")
    print(print_value(evaluate(expr)))
    # e.g. [3. 5. 6]
"""

from dicelang.core.expression_lang.builtins import (
    DEFAULT_BUILTINS,
    Builtin,
    BuiltinRegistry,
    BuiltinShape,
    wrap_function,
)
from dicelang.core.expression_lang.evaluator import Evaluator, evaluate
from dicelang.core.expression_lang.parser import parse_expr
from dicelang.core.expression_lang.printer import print_value
from dicelang.core.expression_lang.values import Function, Value

__all__ = [
    "DEFAULT_BUILTINS",
    "Builtin",
    "BuiltinRegistry",
    "BuiltinShape",
    "Evaluator",
    "Function",
    "Value",
    "evaluate",
    "parse_expr",
    "print_value",
    "wrap_function",
]
