"""
Builtin function library for the dicelang evaluator.

Every builtin is curried and guarded: it declares one guard per parameter,
and each application checks one argument and returns the next partial
function until all parameters are bound. Builtins come in three shapes:

- PURE: computed from the arguments, returned synchronously
- RANDOMIZED: also receive the evaluator's random source
- SUSPENDING: receive the machine and call function arguments through it,
  so a user closure's body runs on the evaluator's explicit stacks

Usage:
    registry = BuiltinRegistry()

    @registry.pure("double", expect_number)
    def _double(n: float) -> float:
        return n * 2
"""

from __future__ import annotations

import inspect
import math
import random
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Callable

from dicelang.core.errors import BuiltinArityError, DomainError, ValueTypeError
from dicelang.core.expression_lang.printer import print_value
from dicelang.core.expression_lang.values import (
    Function,
    Guard,
    Value,
    expect_any,
    expect_array,
    expect_array_of_numbers,
    expect_function,
    expect_null,
    expect_number,
    round_half_up,
    to_value,
    truthy,
    values_equal,
)

if TYPE_CHECKING:
    from dicelang.core.expression_lang.evaluator import Machine


class BuiltinShape(StrEnum):
    """How a builtin's implementation is called once fully applied."""

    PURE = "pure"
    RANDOMIZED = "randomized"
    SUSPENDING = "suspending"


class Builtin(Function):
    """A curried host-implemented function value."""

    __slots__ = ("name", "guards", "impl", "shape", "bound")

    def __init__(
        self,
        name: str,
        guards: tuple[Guard, ...],
        impl: Callable[..., Any],
        shape: BuiltinShape = BuiltinShape.PURE,
        bound: tuple[Value, ...] = (),
    ) -> None:
        self.name = name
        self.guards = guards
        self.impl = impl
        self.shape = shape
        self.bound = bound

    def invoke(self, machine: Machine, argument: Value) -> None:
        args = (*self.bound, self.guards[len(self.bound)](argument))
        if len(args) < len(self.guards):
            machine.produce(Builtin(self.name, self.guards, self.impl, self.shape, args))
        elif self.shape == BuiltinShape.PURE:
            machine.produce(self.impl(*args))
        elif self.shape == BuiltinShape.RANDOMIZED:
            machine.produce(self.impl(machine.rng, *args))
        else:
            self.impl(machine, *args)

    def __repr__(self) -> str:
        return f"Builtin({self.name!r}, {len(self.bound)}/{len(self.guards)})"


def _check_arity(name: str, impl: Callable[..., Any], guards: tuple[Guard, ...], extra: int) -> None:
    if not guards:
        raise BuiltinArityError(f"Builtin {name!r} must declare at least one parameter")
    try:
        params = inspect.signature(impl).parameters.values()
    except (TypeError, ValueError):
        # Some C callables have no signature; trust the declaration
        return
    positional = [
        p
        for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
    ]
    if any(p.kind == p.VAR_POSITIONAL for p in params):
        return
    if len(positional) != len(guards) + extra:
        raise BuiltinArityError(
            f"Builtin {name!r} declares {len(guards)} parameter(s) "
            f"but its implementation takes {len(positional) - extra}"
        )


class BuiltinRegistry:
    """Named builtins that seed the root environment of every evaluation."""

    def __init__(self) -> None:
        self._builtins: dict[str, Builtin] = {}

    def register(
        self, name: str, *guards: Guard, shape: BuiltinShape = BuiltinShape.PURE
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator registering `impl` under `name` with one guard per parameter."""

        def decorator(impl: Callable[..., Any]) -> Callable[..., Any]:
            extra = 0 if shape == BuiltinShape.PURE else 1
            _check_arity(name, impl, guards, extra)
            self._builtins[name] = Builtin(name, guards, impl, shape)
            return impl

        return decorator

    def pure(self, name: str, *guards: Guard) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        return self.register(name, *guards, shape=BuiltinShape.PURE)

    def randomized(
        self, name: str, *guards: Guard
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        return self.register(name, *guards, shape=BuiltinShape.RANDOMIZED)

    def suspending(
        self, name: str, *guards: Guard
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        return self.register(name, *guards, shape=BuiltinShape.SUSPENDING)

    def get(self, name: str) -> Builtin | None:
        return self._builtins.get(name)

    def copy(self) -> BuiltinRegistry:
        registry = BuiltinRegistry()
        registry._builtins.update(self._builtins)
        return registry

    def as_bindings(self) -> dict[str, Value]:
        return dict(self._builtins)

    def __contains__(self, name: str) -> bool:
        return name in self._builtins


def wrap_function(
    fn: Callable[..., Any], *guards: Guard, name: str | None = None
) -> Builtin:
    """Expose a host callable as a curried dicelang function.

    With no guards the callable takes one argument of any type. Results are
    converted with `to_value`, so host ints and tuples are accepted.

    Example:
        rolls = iter([3, 5, 6])
        seq = wrap_function(lambda _: next(rolls), expect_null)
        evaluate(parse_expr("2 seq()"), {"seq": seq})  # [3.0, 5.0]
    """
    guards = guards or (expect_any,)
    label = name or getattr(fn, "__name__", "function")
    _check_arity(label, fn, guards, 0)

    def impl(*args: Value) -> Value:
        return to_value(fn(*args))

    return Builtin(label, guards, impl)


DEFAULT_BUILTINS = BuiltinRegistry()

_builtin = DEFAULT_BUILTINS


# ---------------------------------------------------------------------------
# Rounding and math
# ---------------------------------------------------------------------------


@_builtin.pure("floor", expect_number)
def _floor(n: float) -> float:
    return float(math.floor(n)) if math.isfinite(n) else n


@_builtin.pure("ceil", expect_number)
def _ceil(n: float) -> float:
    return float(math.ceil(n)) if math.isfinite(n) else n


@_builtin.pure("round", expect_number)
def _round(n: float) -> float:
    return float(round_half_up(n)) if math.isfinite(n) else n


@_builtin.pure("abs", expect_number)
def _abs(n: float) -> float:
    return abs(n)


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


@_builtin.pure("+", expect_any, expect_any)
def _add(a: Value, b: Value) -> Value:
    """Numbers add, strings concatenate, arrays concatenate/append/prepend."""
    if isinstance(a, list) and isinstance(b, list):
        return [*a, *b]
    if isinstance(a, list):
        return [*a, b]
    if isinstance(b, list):
        return [a, *b]
    if isinstance(a, float) and isinstance(b, float):
        return a + b
    if isinstance(a, str) and isinstance(b, str):
        return a + b
    if isinstance(a, (float, str)):
        raise ValueTypeError("number" if isinstance(a, float) else "string", print_value(b))
    raise ValueTypeError("number, string or array", print_value(a))


@_builtin.pure("-", expect_number, expect_number)
def _sub(a: float, b: float) -> float:
    return a - b


@_builtin.pure("*", expect_number, expect_number)
def _mul(a: float, b: float) -> float:
    return a * b


@_builtin.pure("/", expect_number, expect_number)
def _div(a: float, b: float) -> float:
    if b == 0:
        raise DomainError("Division by zero")
    return a / b


@_builtin.pure("%", expect_number, expect_number)
def _mod(a: float, b: float) -> float:
    """Floored modulo: the result takes the sign of the divisor."""
    if b == 0:
        raise DomainError("Modulo by zero")
    return a % b


@_builtin.pure("**", expect_number, expect_number)
def _pow(a: float, b: float) -> float:
    try:
        result = a**b
    except ZeroDivisionError:
        raise DomainError("Zero raised to a negative power") from None
    except OverflowError:
        return math.inf
    if isinstance(result, complex):
        raise DomainError(f"{print_value(a)} ** {print_value(b)} is not a real number")
    return result


@_builtin.pure("<", expect_number, expect_number)
def _lt(a: float, b: float) -> float:
    return float(a < b)


@_builtin.pure("<=", expect_number, expect_number)
def _le(a: float, b: float) -> float:
    return float(a <= b)


@_builtin.pure(">", expect_number, expect_number)
def _gt(a: float, b: float) -> float:
    return float(a > b)


@_builtin.pure(">=", expect_number, expect_number)
def _ge(a: float, b: float) -> float:
    return float(a >= b)


@_builtin.pure("=", expect_any, expect_any)
def _eq(a: Value, b: Value) -> float:
    return float(values_equal(a, b))


@_builtin.pure("!=", expect_any, expect_any)
def _ne(a: Value, b: Value) -> float:
    return float(not values_equal(a, b))


@_builtin.pure("|", expect_number, expect_number)
def _or(a: float, b: float) -> float:
    return max(a, b)


@_builtin.pure("&", expect_number, expect_number)
def _and(a: float, b: float) -> float:
    return min(a, b)


@_builtin.pure("+x", expect_number)
def _positive(n: float) -> float:
    return n


@_builtin.pure("-x", expect_number)
def _negative(n: float) -> float:
    return -n


@_builtin.pure("!", expect_number)
def _not(n: float) -> float:
    return 1 - n


@_builtin.pure("...", expect_array)
def _sum(items: list) -> Value:
    """Fold `+` over an array; `()` for an empty one."""
    if not items:
        return None
    total = items[0]
    for item in items[1:]:
        total = _add(total, item)
    return total


# ---------------------------------------------------------------------------
# Arrays
# ---------------------------------------------------------------------------


@_builtin.pure("sort", expect_array_of_numbers)
def _sort(items: list[float]) -> list[float]:
    return sorted(items)


@_builtin.pure("len", expect_array)
def _len(items: list) -> float:
    return float(len(items))


@_builtin.pure("min", expect_array_of_numbers)
def _min(items: list[float]) -> float:
    if not items:
        raise DomainError("min of an empty array")
    return min(items)


@_builtin.pure("max", expect_array_of_numbers)
def _max(items: list[float]) -> float:
    if not items:
        raise DomainError("max of an empty array")
    return max(items)


@_builtin.pure("highest", expect_number, expect_array_of_numbers)
def _highest(n: float, rolls: list[float]) -> list[float]:
    """The `n` largest rolls, in ascending order."""
    count = round_half_up(n)
    if count <= 0:
        return []
    return sorted(rolls)[-count:]


@_builtin.pure("lowest", expect_number, expect_array_of_numbers)
def _lowest(n: float, rolls: list[float]) -> list[float]:
    """The `n` smallest rolls, in descending order."""
    count = round_half_up(n)
    if count <= 0:
        return []
    return sorted(rolls, reverse=True)[-count:]


@_builtin.suspending("map", expect_array, expect_function)
def _map(machine: Machine, items: list, fn: Function) -> None:
    results: list[Value] = []

    def step() -> None:
        if len(results) == len(items):
            machine.produce(results)
            return
        machine.call(fn, items[len(results)], collect)

    def collect(value: Value) -> None:
        results.append(value)
        step()

    step()


@_builtin.suspending("reduce", expect_array, expect_function, expect_any)
def _reduce(machine: Machine, items: list, fn: Function, initial: Value) -> None:
    """Left fold: reduce xs, (@acc @x ...), initial."""

    def step(index: int, acc: Value) -> None:
        if index == len(items):
            machine.produce(acc)
            return

        def apply_item(partial: Value) -> None:
            machine.call(expect_function(partial), items[index], lambda acc: step(index + 1, acc))

        machine.call(fn, acc, apply_item)

    step(0, initial)


@_builtin.suspending("drop", expect_function, expect_array)
def _drop(machine: Machine, selector: Function, rolls: list) -> None:
    """Remove the values `selector(rolls)` returns, one occurrence each."""

    def remove(selected: Value) -> None:
        # Multiset of (value, remaining count); values may be unhashable arrays
        pending: list[list[Any]] = []
        for value in expect_array(selected):
            for entry in pending:
                if values_equal(entry[0], value):
                    entry[1] += 1
                    break
            else:
                pending.append([value, 1])

        kept: list[Value] = []
        for roll in rolls:
            for entry in pending:
                if entry[1] > 0 and values_equal(entry[0], roll):
                    entry[1] -= 1
                    break
            else:
                kept.append(roll)
        machine.produce(kept)

    machine.call(selector, rolls, remove)


# ---------------------------------------------------------------------------
# Dice
# ---------------------------------------------------------------------------


@_builtin.randomized("d", expect_any)
def _d(rng: random.Random, faces: Value) -> Value:
    """Roll a die: `d 6` is 1..6, `d [1. [2. 3]]` picks uniformly per level."""
    if isinstance(faces, float):
        sides = round_half_up(faces)
        if sides < 1:
            raise DomainError(f"Cannot roll a die with {print_value(faces)} sides")
        return float(rng.randint(1, sides))
    if isinstance(faces, list):
        choice: Value = faces
        while isinstance(choice, list):
            if not choice:
                raise DomainError("Cannot roll a die with no faces")
            choice = rng.choice(choice)
        return choice
    raise ValueTypeError("number or array", print_value(faces))


@_builtin.randomized("dF", expect_null)
def _fudge(rng: random.Random, _unit: None) -> float:
    return float(rng.choice((-1, 0, 1)))


@_builtin.suspending("reroll", expect_function, expect_function)
def _reroll(machine: Machine, roll: Function, accept: Function) -> None:
    """Roll until `accept` is truthy, giving up after `max_rerolls` rolls."""
    limit = machine.config.max_rerolls
    attempts = 0

    def roll_again() -> None:
        nonlocal attempts
        attempts += 1
        machine.call(roll, None, check)

    def check(result: Value) -> None:
        machine.call(accept, result, lambda ok: decide(result, ok))

    def decide(result: Value, ok: Value) -> None:
        if truthy(ok):
            machine.produce(result)
        elif attempts >= limit:
            if machine.config.reroll_exhausted == "error":
                raise DomainError("Maximum rerolls exceeded")
            machine.produce(result)
        else:
            roll_again()

    roll_again()


@_builtin.suspending("explode", expect_number, expect_function, expect_function)
def _explode(machine: Machine, n: float, roll: Function, again: Function) -> None:
    """Make `n` rolls; after each roll, roll once more while `again` is truthy."""
    count = max(round_half_up(n), 0)
    results: list[Value] = []
    base_rolls = 0

    def next_base() -> None:
        nonlocal base_rolls
        if base_rolls == count:
            machine.produce(results)
            return
        base_rolls += 1
        machine.call(roll, None, record)

    def record(value: Value) -> None:
        results.append(value)
        machine.call(again, value, decide)

    def decide(ok: Value) -> None:
        if truthy(ok):
            machine.call(roll, None, record)
        else:
            next_base()

    next_base()
