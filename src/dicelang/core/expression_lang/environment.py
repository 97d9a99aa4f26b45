"""
Lexical environments for the dicelang evaluator.

Environments form a tree through parent links. Closures keep a reference
to the environment they were created in, so a child may outlive the
`let` or call that created it.
"""

from __future__ import annotations

from collections.abc import Mapping

from dicelang.core.errors import UnboundNameError
from dicelang.core.expression_lang.values import Value


class Environment:
    """Name -> value bindings plus an optional parent scope."""

    __slots__ = ("_vars", "parent")

    def __init__(
        self,
        variables: Mapping[str, Value] | None = None,
        parent: Environment | None = None,
    ) -> None:
        self._vars: dict[str, Value] = dict(variables or {})
        self.parent = parent

    def lookup(self, name: str) -> Value:
        """Find `name` here or in the nearest ancestor that binds it."""
        env: Environment | None = self
        while env is not None:
            if name in env._vars:
                return env._vars[name]
            env = env.parent
        raise UnboundNameError(name)

    def define(self, name: str, value: Value) -> None:
        self._vars[name] = value

    def child(self, variables: Mapping[str, Value] | None = None) -> Environment:
        return Environment(variables, parent=self)

    def __contains__(self, name: str) -> bool:
        env: Environment | None = self
        while env is not None:
            if name in env._vars:
                return True
            env = env.parent
        return False

    def __repr__(self) -> str:
        return f"Environment({sorted(self._vars)}, parent={self.parent is not None})"
