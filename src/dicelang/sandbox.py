"""
Message protocol for running untrusted programs in a separate worker.

A host (an editor page, a bot, a job queue) sends one JSON message per
program and gets one JSON message back:

    {"program": "highest 3, 4 d6"}  ->  {"success": true, "output": "[3. 5. 6]"}
    {"program": "1 +"}              ->  {"success": false, "output": "Line 1 ..."}

The request field may also be spelled `programText`.

`output` is the printed value on success and the rendered error message on
failure. Language errors never escape `run_program`.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from typing import IO

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from dicelang.core.config import EvaluatorConfig
from dicelang.core.errors import DiceLangError, EvaluationError
from dicelang.core.expression_lang import Evaluator, parse_expr, print_value

logger = logging.getLogger(__name__)


class ProgramRequest(BaseModel):
    """A program to run."""

    model_config = ConfigDict(frozen=True)

    program: str = Field(
        validation_alias=AliasChoices("programText", "program"),
        description="Program source text",
    )


class ProgramResult(BaseModel):
    """Outcome of running a program."""

    model_config = ConfigDict(frozen=True)

    success: bool
    output: str


def format_error(error: DiceLangError, source: str) -> str:
    """Render a language error with a caret diagram pointing into `source`."""
    if isinstance(error, EvaluationError) and error.context is None:
        error = error.with_source(source)
    return str(error)


def run_program(
    request: ProgramRequest,
    config: EvaluatorConfig | None = None,
    rng: random.Random | None = None,
) -> ProgramResult:
    """Parse and evaluate one program, capturing language errors."""
    evaluator = Evaluator(config=config, rng=rng)
    try:
        value = evaluator.evaluate(parse_expr(request.program))
    except DiceLangError as e:
        logger.debug("Program failed: %s", e.message)
        return ProgramResult(success=False, output=format_error(e, request.program))
    return ProgramResult(success=True, output=print_value(value))


def handle_message(
    message: str,
    config: EvaluatorConfig | None = None,
    rng: random.Random | None = None,
) -> str:
    """Handle one JSON-encoded request and return the JSON-encoded result."""
    try:
        request = ProgramRequest.model_validate_json(message)
    except ValidationError as e:
        reason = _first_error(e)
        logger.warning("Rejected malformed message: %s", reason)
        result = ProgramResult(success=False, output=f"Malformed request: {reason}")
        return result.model_dump_json()
    return run_program(request, config, rng).model_dump_json()


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def serve(
    lines: Iterable[str],
    out: IO[str],
    config: EvaluatorConfig | None = None,
    rng: random.Random | None = None,
) -> int:
    """Answer each non-blank input line with one output line.

    Returns:
        Number of requests handled.
    """
    handled = 0
    for line in lines:
        if not line.strip():
            continue
        out.write(handle_message(line, config, rng) + "\n")
        out.flush()
        handled += 1
    logger.debug("Worker handled %d request(s)", handled)
    return handled
