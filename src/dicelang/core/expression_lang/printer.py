"""
Canonical textual rendering of runtime values.

Numbers print like JavaScript numbers (`5`, `1.5`, `Infinity`), strings are
JSON-quoted, arrays use the literal syntax `[1. 2. 3]`, unit prints as `()`
and functions as `[function]`.
"""

from __future__ import annotations

import json
import math
from typing import Any


def format_number(value: float) -> str:
    """Render a number the way JavaScript's `String(number)` does.

    Integral values drop the `.0`, exponents carry no leading zeros
    (`1e-7`, `1e+21`), and values down to `1e-6` print positionally.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))

    text = repr(value)
    if "e" not in text:
        return text
    mantissa, _, exponent_text = text.partition("e")
    exponent = int(exponent_text)
    if -7 < exponent < 0:
        sign = "-" if mantissa.startswith("-") else ""
        digits = mantissa.lstrip("-").replace(".", "")
        return f"{sign}0.{'0' * (-exponent - 1)}{digits}"
    return f"{mantissa}e{'+' if exponent >= 0 else '-'}{abs(exponent)}"


_CLOSE = object()
_SEPARATOR = object()


def print_value(value: Any) -> str:
    """Render a runtime value as text.

    Arrays are walked with an explicit stack, so nesting depth is bounded
    only by memory.
    """
    parts: list[str] = []
    pending: list[Any] = [value]
    while pending:
        item = pending.pop()
        if item is _CLOSE:
            parts.append("]")
        elif item is _SEPARATOR:
            parts.append(". ")
        elif isinstance(item, list):
            parts.append("[")
            pending.append(_CLOSE)
            for i in range(len(item) - 1, -1, -1):
                pending.append(item[i])
                if i:
                    pending.append(_SEPARATOR)
        else:
            parts.append(_print_scalar(item))
    return "".join(parts)


def _print_scalar(value: Any) -> str:
    if value is None:
        return "()"
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, str):
        return json.dumps(value)
    # TODO: keep the defining span on closures so this can point back at the source
    return "[function]"
