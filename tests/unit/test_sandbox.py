"""Tests for the worker message protocol."""

from __future__ import annotations

import io
import json
import random

from dicelang.core.config import EvaluatorConfig
from dicelang.sandbox import (
    ProgramRequest,
    ProgramResult,
    handle_message,
    run_program,
    serve,
)


class TestRunProgram:
    def test_success(self) -> None:
        result = run_program(ProgramRequest(program="highest 2, [4. 1. 6]"))
        assert result == ProgramResult(success=True, output="[4. 6]")

    def test_parse_error(self) -> None:
        result = run_program(ProgramRequest(program="1 +"))
        assert not result.success
        assert result.output.startswith("Line 1 column 4: Expected expression, got end of input")

    def test_lex_error(self) -> None:
        result = run_program(ProgramRequest(program="1 $"))
        assert not result.success
        assert "Unexpected character" in result.output

    def test_evaluation_error_points_into_program(self) -> None:
        result = run_program(ProgramRequest(program="1 + foo"))
        assert result == ProgramResult(
            success=False,
            output="Line 1 column 5: Undefined variable: foo\n1 + foo\n----^^^",
        )

    def test_config_is_applied(self) -> None:
        config = EvaluatorConfig(max_rerolls=2, reroll_exhausted="error")
        result = run_program(ProgramRequest(program="reroll (@_ 1), (@x 0)"), config)
        assert not result.success
        assert "Maximum rerolls exceeded" in result.output

    def test_rng_is_used(self) -> None:
        first = run_program(ProgramRequest(program="5 d 100"), rng=random.Random(8))
        second = run_program(ProgramRequest(program="5 d 100"), rng=random.Random(8))
        assert first == second

    def test_deeply_nested_program_is_rejected(self) -> None:
        program = "(" * 3000 + "1" + ")" * 3000
        result = run_program(ProgramRequest(program=program))
        assert not result.success
        assert "Expression is nested too deeply" in result.output

    def test_deeply_nested_value_is_printed(self) -> None:
        result = run_program(ProgramRequest(program="reduce (3000 1), (@acc @x [acc]), 0"))
        assert result == ProgramResult(success=True, output="[" * 3000 + "0" + "]" * 3000)


class TestHandleMessage:
    def test_round_trip(self) -> None:
        reply = json.loads(handle_message('{"program": "2 * 3"}'))
        assert reply == {"success": True, "output": "6"}

    def test_string_output(self) -> None:
        reply = json.loads(handle_message(json.dumps({"program": '"a" + "b"'})))
        assert reply == {"success": True, "output": '"ab"'}

    def test_program_text_field(self) -> None:
        reply = json.loads(handle_message('{"programText": "1 + 1"}'))
        assert reply == {"success": True, "output": "2"}

    def test_missing_program(self) -> None:
        reply = json.loads(handle_message("{}"))
        assert reply["success"] is False
        assert reply["output"].startswith("Malformed request: program")

    def test_invalid_json(self) -> None:
        reply = json.loads(handle_message("not json"))
        assert reply["success"] is False
        assert reply["output"].startswith("Malformed request")


class TestServe:
    def test_one_line_per_request(self) -> None:
        lines = ['{"program": "1 + 1"}\n', "\n", '{"program": "nope"}\n']
        out = io.StringIO()
        assert serve(lines, out) == 2

        results = [ProgramResult.model_validate_json(line) for line in out.getvalue().splitlines()]
        assert results[0] == ProgramResult(success=True, output="2")
        assert results[1].success is False
        assert "Undefined variable: nope" in results[1].output

    def test_deep_nesting_does_not_stop_the_worker(self) -> None:
        lines = [json.dumps({"program": "[" * 3000 + "]" * 3000}), '{"program": "2"}']
        out = io.StringIO()
        assert serve(lines, out) == 2

        replies = [json.loads(line) for line in out.getvalue().splitlines()]
        assert replies[0]["success"] is False
        assert replies[1] == {"success": True, "output": "2"}
