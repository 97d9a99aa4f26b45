"""
dicelang command line interface.

Commands:
    eval    Evaluate a program and print the result
    parse   Print the parsed tree of a program
    repl    Interactive read-eval-print loop
    worker  Answer JSON-line program requests on stdin
"""

from __future__ import annotations

import logging
import platform
import random
import sys
import tomllib
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from dicelang._version import get_version
from dicelang.core.config import EvaluatorConfig, load_config
from dicelang.core.errors import DiceLangError
from dicelang.core.expression_lang import Evaluator, parse_expr, print_value
from dicelang.sandbox import format_error, serve

logger = logging.getLogger(__name__)

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"dicelang version {get_version()}")
        typer.echo("")
        typer.echo("Environment:")
        typer.echo(
            f"  Python:        {platform.python_implementation()} {platform.python_version()}"
        )
        typer.echo(f"  Platform:      {platform.system()} {platform.release()}")
        raise typer.Exit()


app = typer.Typer(
    help="""dicelang - a small expression language for dice rolls

Examples:
  dicelang eval "highest 3, 4 d6"
  dicelang eval --seed 7 "... 3 d20"
  dicelang parse "1 + 2 * 3"
""",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """dicelang CLI main callback for global options."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


# =============================================================================
# Helpers
# =============================================================================


def _load_settings(config_path: Path | None, seed: int | None) -> EvaluatorConfig:
    """Load config from file, then apply command line overrides."""
    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        typer.echo(f"Error loading config: {e}", err=True)
        raise typer.Exit(code=1)

    if seed is not None:
        config = config.model_copy(update={"seed": seed})
    return config


def _read_source(expression: str | None, file: Path | None) -> str:
    if file is not None:
        if expression is not None:
            typer.echo("Give either an expression or --file, not both", err=True)
            raise typer.Exit(code=1)
        if not file.exists():
            typer.echo(f"File not found: {file}", err=True)
            raise typer.Exit(code=1)
        return file.read_text()
    if expression is None:
        typer.echo("Missing expression (or use --file)", err=True)
        raise typer.Exit(code=1)
    return expression


def _report(error: DiceLangError, source: str) -> None:
    err_console.print(format_error(error, source), style="red", markup=False)


# =============================================================================
# Commands
# =============================================================================


@app.command(name="eval")
def eval_command(
    expression: str | None = typer.Argument(None, help="Program to evaluate"),
    file: Path | None = typer.Option(None, "--file", "-f", help="Read the program from a file"),
    seed: int | None = typer.Option(None, "--seed", help="Seed for deterministic dice"),
    config_path: Path | None = typer.Option(
        None, "--config", help="Path to dicelang.toml (default: ./dicelang.toml)"
    ),
    sexpr: bool = typer.Option(False, "--sexpr", help="Print the parsed tree before the result"),
) -> None:
    """Evaluate a program and print its value."""
    source = _read_source(expression, file)
    config = _load_settings(config_path, seed)

    try:
        expr = parse_expr(source)
        if sexpr:
            console.print(str(expr), markup=False)
        value = Evaluator(config=config).evaluate(expr)
    except DiceLangError as e:
        _report(e, source)
        raise typer.Exit(code=1)

    console.print(print_value(value), markup=False)


@app.command(name="parse")
def parse_command(
    expression: str = typer.Argument(..., help="Program to parse"),
) -> None:
    """Print the s-expression form of a program's parse tree."""
    try:
        expr = parse_expr(expression)
    except DiceLangError as e:
        _report(e, expression)
        raise typer.Exit(code=1)
    console.print(str(expr), markup=False)


@app.command(name="repl")
def repl_command(
    seed: int | None = typer.Option(None, "--seed", help="Seed for deterministic dice"),
    config_path: Path | None = typer.Option(None, "--config", help="Path to dicelang.toml"),
) -> None:
    """Read programs line by line and print each result. Ctrl-D exits."""
    config = _load_settings(config_path, seed)
    # One evaluator for the whole session so the dice stream continues
    evaluator = Evaluator(config=config, rng=random.Random(config.seed))

    while True:
        try:
            line = console.input("> ")
        except (EOFError, KeyboardInterrupt):
            console.print()
            break
        if not line.strip():
            continue
        try:
            value = evaluator.evaluate(parse_expr(line))
        except DiceLangError as e:
            _report(e, line)
            continue
        console.print(print_value(value), markup=False)


@app.command(name="worker")
def worker_command(
    seed: int | None = typer.Option(None, "--seed", help="Seed for deterministic dice"),
    config_path: Path | None = typer.Option(None, "--config", help="Path to dicelang.toml"),
) -> None:
    """Answer JSON-line requests on stdin with JSON-line results on stdout.

    Each input line is {"programText": "..."} (or {"program": "..."});
    each output line is {"success": true|false, "output": "..."}.
    """
    config = _load_settings(config_path, seed)
    logger.debug("Worker started")
    serve(sys.stdin, sys.stdout, config, random.Random(config.seed))


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
