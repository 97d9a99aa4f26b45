"""Shared pytest fixtures for dicelang tests."""

from __future__ import annotations

import random
from collections.abc import Callable

import pytest

from dicelang.core.expression_lang import Builtin, wrap_function
from dicelang.core.expression_lang.values import expect_null


@pytest.fixture
def make_seq() -> Callable[..., Builtin]:
    """Return a factory for a zero-argument `seq()` builtin yielding fixed values.

    Each call of `seq()` in a program returns the next value, so tests can
    observe how many times, and in which order, an expression was evaluated.
    """

    def factory(*values: float) -> Builtin:
        it = iter(values)
        return wrap_function(lambda _: next(it), expect_null, name="seq")

    return factory


@pytest.fixture
def rng() -> random.Random:
    """Return a seeded random source."""
    return random.Random(1234)
