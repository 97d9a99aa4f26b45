"""
Expression tree for the dicelang language.

Every node is a frozen pydantic model carrying the source span it was
parsed from (`start` inclusive, `end` exclusive). Operators do not get
their own node types: the parser desugars `a + b` into
`Apply(Apply(Variable("+"), a), b)`, so the evaluator only ever sees:

- Literals: numbers, strings, `()` (unit)
- Variable references
- Array literals: [a. b. c]
- Application: f x, 5 d20, rolls 0
- Function literals: @x body
- Let bindings: let x 1 and y 2 in body
- Conditionals: if c then t else f
"""

from __future__ import annotations

import json
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------


class Node(BaseModel):
    """Fields shared by every expression node."""

    start: int = Field(default=0, description="Offset of the first character")
    end: int = Field(default=0, description="Offset one past the last character")

    model_config = ConfigDict(frozen=True)


class NumberLiteral(Node):
    """A numeric literal. All numbers are double precision."""

    kind: Literal["number"] = "number"
    value: float

    def __str__(self) -> str:
        if self.value.is_integer():
            return str(int(self.value))
        return repr(self.value)


class StringLiteral(Node):
    """A string literal with escapes already decoded."""

    kind: Literal["string"] = "string"
    value: str

    def __str__(self) -> str:
        return json.dumps(self.value)


class UnitLiteral(Node):
    """The explicit no-value literal, spelled `()`."""

    kind: Literal["unit"] = "unit"

    def __str__(self) -> str:
        return "()"


class Variable(Node):
    """Reference to a name, resolved at evaluation time."""

    kind: Literal["variable"] = "variable"
    name: str

    def __str__(self) -> str:
        return self.name


class ArrayLiteral(Node):
    """Array literal; elements are evaluated left to right."""

    kind: Literal["array"] = "array"
    elements: list[Expr] = Field(default_factory=list)

    def __str__(self) -> str:
        return " ".join(["(array", *(str(e) for e in self.elements)]) + ")"


class Apply(Node):
    """
    Application of `callee` to `argument`.

    What this means depends on the runtime value of the callee:
    a function is called, a number repeats the argument that many times,
    and an array is indexed by it.
    """

    kind: Literal["apply"] = "apply"
    callee: Expr
    argument: Expr

    def __str__(self) -> str:
        return f"(apply {self.callee} {self.argument})"


class FunctionLiteral(Node):
    """Single-parameter function literal: @x body."""

    kind: Literal["function"] = "function"
    parameter: str
    body: Expr

    def __str__(self) -> str:
        return f"(fn {self.parameter} {self.body})"


class Let(Node):
    """
    let name1 value1 and name2 value2 in body.

    All values are evaluated in the enclosing scope, so bindings in the
    same block cannot see each other.
    """

    kind: Literal["let"] = "let"
    bindings: list[tuple[str, Expr]] = Field(description="(name, value) pairs")
    body: Expr

    def __str__(self) -> str:
        bindings = " ".join(f"({name} {value})" for name, value in self.bindings)
        return f"(let ({bindings}) {self.body})"


class If(Node):
    """Conditional: if condition then then_expr else else_expr."""

    kind: Literal["if"] = "if"
    condition: Expr
    then_expr: Expr
    else_expr: Expr

    def __str__(self) -> str:
        return f"(if {self.condition} {self.then_expr} {self.else_expr})"


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Expr = Annotated[
    NumberLiteral
    | StringLiteral
    | UnitLiteral
    | Variable
    | ArrayLiteral
    | Apply
    | FunctionLiteral
    | Let
    | If,
    Field(discriminator="kind"),
]

# Rebuild models for recursive forward references
ArrayLiteral.model_rebuild()
Apply.model_rebuild()
FunctionLiteral.model_rebuild()
Let.model_rebuild()
If.model_rebuild()
