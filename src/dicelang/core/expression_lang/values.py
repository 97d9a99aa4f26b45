"""
Runtime value model for the dicelang evaluator.

A value is one of:

- ``float``: every number, integral or not
- ``str``
- ``None``: the unit value, written ``()``
- ``list``: an array of values, possibly heterogeneous
- ``Function``: an opaque callable (closure or builtin)

Guards convert an arbitrary value to the category an operation needs or
raise ``ValueTypeError`` naming the expected category and the printed value.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Callable, Union

from dicelang.core.errors import DomainError, ValueTypeError
from dicelang.core.expression_lang.printer import print_value

if TYPE_CHECKING:
    from dicelang.core.expression_lang.evaluator import Machine


class Function:
    """Base class for callable values.

    Every function takes exactly one argument. `invoke` must arrange for
    exactly one value to reach the continuation the caller pushed: either
    by calling ``machine.produce`` or by scheduling more work whose result
    eventually does.
    """

    __slots__ = ()

    def invoke(self, machine: Machine, argument: Value) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return "[function]"


Value = Union[float, str, None, list, Function]

Guard = Callable[[Value], Value]


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def expect_any(value: Value) -> Value:
    return value


def expect_number(value: Value) -> float:
    if not isinstance(value, float):
        raise ValueTypeError("number", print_value(value))
    return value


def expect_null(value: Value) -> None:
    if value is not None:
        raise ValueTypeError("()", print_value(value))
    return None


def expect_array(value: Value) -> list:
    if not isinstance(value, list):
        raise ValueTypeError("array", print_value(value))
    return value


def expect_function(value: Value) -> Function:
    if not isinstance(value, Function):
        raise ValueTypeError("function", print_value(value))
    return value


def expect_array_of_numbers(value: Value) -> list[float]:
    """Array whose every element is a number."""
    items = expect_array(value)
    for item in items:
        if not isinstance(item, float):
            raise ValueTypeError("array of numbers", print_value(value))
    return items


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def truthy(value: Value) -> bool:
    """Only strictly positive numbers are true; everything else is false."""
    return isinstance(value, float) and value > 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity."""
    if not math.isfinite(value):
        raise DomainError(f"Expected a finite number, got {print_value(value)}")
    return math.floor(value + 0.5)


def values_equal(a: Value, b: Value) -> bool:
    """Structural equality. Functions are never equal, not even to themselves."""
    pending = [(a, b)]
    while pending:
        x, y = pending.pop()
        if isinstance(x, Function) or isinstance(y, Function):
            return False
        if isinstance(x, list) and isinstance(y, list):
            if len(x) != len(y):
                return False
            pending.extend(zip(x, y))
        elif type(x) is not type(y) or x != y:
            return False
    return True


def to_value(obj: Any) -> Value:
    """Convert a host Python object into a runtime value.

    ints and bools become floats, tuples become arrays, and plain Python
    callables are wrapped as single-argument builtins.
    """
    if obj is None or isinstance(obj, (str, Function)):
        return obj
    if isinstance(obj, (bool, int, float)):
        return float(obj)
    if isinstance(obj, (list, tuple)):
        return [to_value(item) for item in obj]
    if callable(obj):
        from dicelang.core.expression_lang.builtins import wrap_function

        return wrap_function(obj)
    raise ValueTypeError("number, string, (), array or function", f"Python {type(obj).__name__}")
