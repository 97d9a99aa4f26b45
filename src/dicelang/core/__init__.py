"""Core dicelang functionality: IR, errors, configuration, and the expression language."""

from . import ir
from .config import EvaluatorConfig, RerollExhausted, load_config
from .errors import (
    BuiltinArityError,
    DiceLangError,
    DomainError,
    ErrorContext,
    EvaluationError,
    LexError,
    ParseError,
    RuntimeLangError,
    UnboundNameError,
    ValueTypeError,
)

__all__ = [
    "ir",
    "EvaluatorConfig",
    "RerollExhausted",
    "load_config",
    "BuiltinArityError",
    "DiceLangError",
    "DomainError",
    "ErrorContext",
    "EvaluationError",
    "LexError",
    "ParseError",
    "RuntimeLangError",
    "UnboundNameError",
    "ValueTypeError",
]
