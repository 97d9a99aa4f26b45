"""
dicelang - a small expression language for rolling dice.

    >>> from dicelang import evaluate, parse_expr, print_value
    >>> print_value(evaluate(parse_expr("...[1. 2. 3]")))
    '6'
"""

from __future__ import annotations

from ._version import get_version
from .core import ir
from .core.config import EvaluatorConfig, load_config
from .core.errors import (
    DiceLangError,
    EvaluationError,
    LexError,
    ParseError,
)
from .core.expression_lang import (
    BuiltinRegistry,
    Evaluator,
    evaluate,
    parse_expr,
    print_value,
    wrap_function,
)

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "BuiltinRegistry",
    "DiceLangError",
    "EvaluationError",
    "Evaluator",
    "EvaluatorConfig",
    "LexError",
    "ParseError",
    "evaluate",
    "load_config",
    "parse_expr",
    "print_value",
    "wrap_function",
]
