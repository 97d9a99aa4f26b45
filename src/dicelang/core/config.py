"""
Evaluator configuration models.

Parses the [evaluator] section from dicelang.toml and provides typed
configuration for the evaluator and the hosts that run it.

Example dicelang.toml:

    [evaluator]
    max_rerolls = 100
    reroll_exhausted = "last"   # or "error"
    seed = 42
"""

from __future__ import annotations

import logging
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "dicelang.toml"


class RerollExhausted(str, Enum):
    """What `reroll` does when every allowed roll was rejected."""

    LAST = "last"
    ERROR = "error"


class EvaluatorConfig(BaseModel):
    """Evaluator limits and policies."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    max_rerolls: int = Field(default=100, ge=1, description="Rolls `reroll` makes before giving up")
    reroll_exhausted: RerollExhausted = Field(
        default=RerollExhausted.LAST,
        description="Return the last roll, or fail with an error",
    )
    seed: int | None = Field(default=None, description="Seed for dice; random when unset")


def load_config(path: Path | None = None) -> EvaluatorConfig:
    """
    Load evaluator configuration from a TOML file.

    Args:
        path: Path to a dicelang.toml. Defaults to ./dicelang.toml; a
            missing default file yields the defaults.

    Returns:
        Parsed configuration.

    Raises:
        FileNotFoundError: If an explicitly given path does not exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
        pydantic.ValidationError: If the [evaluator] table is invalid.
    """
    explicit = path is not None
    config_path = path if path is not None else Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        logger.debug("No %s found, using defaults", CONFIG_FILENAME)
        return EvaluatorConfig()

    with config_path.open("rb") as f:
        data: dict[str, Any] = tomllib.load(f)

    section = data.get("evaluator", {})
    logger.debug("Loaded evaluator config from %s: %s", config_path, section)
    return EvaluatorConfig(**section)
