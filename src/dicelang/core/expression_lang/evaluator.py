"""
Expression evaluator for the dicelang expression language.

Evaluation does not recurse on the Python stack. The `Machine` keeps two
explicit stacks:

- a work stack of `(expression, environment)` frames still to evaluate
- a continuation stack of one-argument callbacks, each waiting for the
  value of the frame pushed together with it

The driving loop either steps the top work frame or, when a value has been
produced, pops the top continuation and hands it the value. Composite nodes
and suspending builtins push work plus a continuation instead of recursing,
so a closure mapped over an array, or a `reroll` inside a `map`, runs
through the same loop.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping
from typing import Any

from dicelang.core.config import EvaluatorConfig
from dicelang.core.errors import DomainError, EvaluationError, RuntimeLangError, ValueTypeError
from dicelang.core.expression_lang.builtins import DEFAULT_BUILTINS, BuiltinRegistry
from dicelang.core.expression_lang.environment import Environment
from dicelang.core.expression_lang.printer import print_value
from dicelang.core.expression_lang.values import (
    Function,
    Value,
    expect_number,
    round_half_up,
    to_value,
    truthy,
)
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

Continuation = Callable[[Value], None]

# Sentinel for "no value waiting to be delivered"; None is the unit value
_EMPTY: Any = object()


class Closure(Function):
    """A function literal together with the environment it was created in."""

    __slots__ = ("parameter", "body", "env")

    def __init__(self, parameter: str, body: Expr, env: Environment) -> None:
        self.parameter = parameter
        self.body = body
        self.env = env

    def invoke(self, machine: Machine, argument: Value) -> None:
        machine.tail(self.body, self.env.child({self.parameter: argument}))


class Machine:
    """Explicit-stack interpreter state for a single evaluation."""

    def __init__(self, config: EvaluatorConfig, rng: random.Random) -> None:
        self.config = config
        self.rng = rng
        self._work: list[tuple[Expr, Environment]] = []
        self._conts: list[tuple[Continuation, Expr]] = []
        self._value: Any = _EMPTY
        self._blame: Expr = NumberLiteral(value=0)

    # -- Protocol used by evaluation rules and builtins --

    def push(self, expr: Expr, env: Environment, cont: Continuation) -> None:
        """Evaluate `expr` in `env`, then pass its value to `cont`."""
        self._conts.append((cont, self._blame))
        self._work.append((expr, env))

    def tail(self, expr: Expr, env: Environment) -> None:
        """Evaluate `expr` in `env` for the continuation already waiting."""
        self._work.append((expr, env))

    def produce(self, value: Value) -> None:
        """Deliver `value` to the continuation on top of the stack."""
        if self._value is not _EMPTY:
            raise AssertionError("A value was produced twice for one continuation")
        self._value = value

    def call(self, fn: Function, argument: Value, cont: Continuation) -> None:
        """Apply `fn` to `argument`, then pass the result to `cont`."""
        self._conts.append((cont, self._blame))
        fn.invoke(self, argument)

    # -- Driving loop --

    def run(self, expr: Expr, env: Environment) -> Value:
        result: list[Value] = []
        self._blame = expr
        self.push(expr, env, result.append)

        try:
            while True:
                if self._value is not _EMPTY:
                    value, self._value = self._value, _EMPTY
                    cont, self._blame = self._conts.pop()
                    cont(value)
                elif self._work:
                    frame, frame_env = self._work.pop()
                    self._blame = frame
                    self._step(frame, frame_env)
                else:
                    break
        except RuntimeLangError as e:
            raise EvaluationError(str(e), self._blame.start, self._blame.end, cause=e) from e

        assert not self._conts and len(result) == 1
        return result[0]

    # -- Evaluation rules, one step per node --

    def _step(self, expr: Expr, env: Environment) -> None:
        if isinstance(expr, (NumberLiteral, StringLiteral)):
            self.produce(expr.value)
        elif isinstance(expr, UnitLiteral):
            self.produce(None)
        elif isinstance(expr, Variable):
            self.produce(env.lookup(expr.name))
        elif isinstance(expr, ArrayLiteral):
            self._step_array(expr, env)
        elif isinstance(expr, Apply):
            self.push(expr.callee, env, lambda callee: self._apply(expr, env, callee))
        elif isinstance(expr, FunctionLiteral):
            self.produce(Closure(expr.parameter, expr.body, env))
        elif isinstance(expr, Let):
            self._step_let(expr, env)
        elif isinstance(expr, If):
            self._step_if(expr, env)
        else:
            raise AssertionError(f"Unknown expression type: {type(expr).__name__}")

    def _step_array(self, expr: ArrayLiteral, env: Environment) -> None:
        self._collect(len(expr.elements), expr.elements.__getitem__, env)

    def _collect(self, count: int, expr_at: Callable[[int], Expr], env: Environment) -> None:
        """Evaluate `expr_at(0)` .. `expr_at(count - 1)` strictly in order into a list."""
        if count == 0:
            self.produce([])
            return
        items: list[Value] = []

        def collect(value: Value) -> None:
            items.append(value)
            if len(items) == count:
                self.produce(items)
            else:
                self.push(expr_at(len(items)), env, collect)

        self.push(expr_at(0), env, collect)

    def _apply(self, expr: Apply, env: Environment, callee: Value) -> None:
        if isinstance(callee, Function):
            self.push(expr.argument, env, lambda arg: callee.invoke(self, arg))
        elif isinstance(callee, float):
            # Each repetition re-evaluates the argument: `5 d20` is five rolls
            count = max(round_half_up(callee), 0)
            self._collect(count, lambda _: expr.argument, env)
        elif isinstance(callee, list):
            self.push(expr.argument, env, lambda index: self._index(callee, index))
        else:
            raise ValueTypeError("function, number or array", print_value(callee))

    def _index(self, items: list, index: Value) -> None:
        i = round_half_up(expect_number(index))
        if i < 0 or i >= len(items):
            raise DomainError(f"Array index {i} out of bounds for length {len(items)}")
        self.produce(items[i])

    def _step_let(self, expr: Let, env: Environment) -> None:
        # Function literals close over the new scope so they can recurse;
        # every other value is evaluated in the enclosing scope.
        scope = env.child()
        values: list[Value] = []

        def bind(value: Value) -> None:
            values.append(value)
            if len(values) < len(expr.bindings):
                evaluate_next()
                return
            for (name, _), bound in zip(expr.bindings, values):
                scope.define(name, bound)
            self.tail(expr.body, scope)

        def evaluate_next() -> None:
            value_expr = expr.bindings[len(values)][1]
            if isinstance(value_expr, FunctionLiteral):
                bind(Closure(value_expr.parameter, value_expr.body, scope))
            else:
                self.push(value_expr, env, bind)

        evaluate_next()

    def _step_if(self, expr: If, env: Environment) -> None:
        def branch(condition: Value) -> None:
            self.tail(expr.then_expr if truthy(condition) else expr.else_expr, env)

        self.push(expr.condition, env, branch)


class Evaluator:
    """Evaluates expression trees against a builtin table and random source.

    Each call to `evaluate` builds a fresh root environment and fresh
    stacks, so evaluations never share state beyond the random source.
    """

    def __init__(
        self,
        builtins: BuiltinRegistry | None = None,
        config: EvaluatorConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.builtins = builtins if builtins is not None else DEFAULT_BUILTINS
        self.config = config or EvaluatorConfig()
        self.rng = rng or random.Random(self.config.seed)

    def root_environment(self, bindings: Mapping[str, Any] | None = None) -> Environment:
        """Builtins at the root; caller bindings in a child that may shadow them."""
        root = Environment(self.builtins.as_bindings())
        if not bindings:
            return root
        converted = {}
        for name, value in bindings.items():
            try:
                converted[name] = to_value(value)
            except ValueTypeError as e:
                raise TypeError(f"Cannot bind {name!r}: {e}") from e
        return root.child(converted)

    def evaluate(self, expr: Expr, bindings: Mapping[str, Any] | None = None) -> Value:
        """Evaluate `expr` to a single value.

        Raises:
            EvaluationError: If evaluation fails.
        """
        machine = Machine(self.config, self.rng)
        return machine.run(expr, self.root_environment(bindings))


def evaluate(
    expr: Expr,
    bindings: Mapping[str, Any] | None = None,
    *,
    config: EvaluatorConfig | None = None,
    rng: random.Random | None = None,
    builtins: BuiltinRegistry | None = None,
) -> Value:
    """Evaluate an expression tree.

    Args:
        expr: Parsed expression AST.
        bindings: Extra variables, visible to the whole expression. Host
            values are converted: ints become floats, callables become
            single-argument functions.
        config: Evaluator limits and policies.
        rng: Random source for dice builtins; seeded from `config.seed`
            when omitted.
        builtins: Builtin table; the default library when omitted.

    Returns:
        The computed value.

    Raises:
        EvaluationError: If evaluation fails.
    """
    return Evaluator(builtins, config, rng).evaluate(expr, bindings)
