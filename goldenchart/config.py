"""GoldenChart — application configuration.

Loads .env variables into a typed config object.
Every variable is optional; malformed values fail fast on startup.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from goldenchart.strategy.grid import STEP_SCHEMES, StepFunction, get_step_function

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    step_scheme: str  # "dynamic" or "fixed"
    fixed_step: float
    wait_pct: float
    sim_steps: int
    default_days_to_expiry: Optional[float]
    log_level: str
    api_port: int

    @property
    def step_fn(self) -> StepFunction:
        """Return the grid step function selected by ``step_scheme``."""
        return get_step_function(self.step_scheme, self.fixed_step)

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)


def _float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None


def _int(name: str, default: str) -> int:
    raw = os.environ.get(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the offending variable
    when a value cannot be parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    step_scheme = os.environ.get("GOLDENCHART_STEP_SCHEME", "dynamic").lower()
    if step_scheme not in STEP_SCHEMES:
        raise ValueError(
            f"GOLDENCHART_STEP_SCHEME must be one of {', '.join(STEP_SCHEMES)}, "
            f"got '{step_scheme}'"
        )

    fixed_step = _float("GOLDENCHART_FIXED_STEP", "5.0")
    if fixed_step <= 0:
        raise ValueError(f"GOLDENCHART_FIXED_STEP must be positive, got {fixed_step}")

    wait_pct = _float("GOLDENCHART_WAIT_PCT", "0.02")
    if not 0 <= wait_pct < 1:
        raise ValueError(f"GOLDENCHART_WAIT_PCT must be in [0, 1), got {wait_pct}")

    sim_steps = _int("GOLDENCHART_SIM_STEPS", "30")
    if sim_steps < 0:
        raise ValueError(f"GOLDENCHART_SIM_STEPS must be >= 0, got {sim_steps}")

    dte_raw = os.environ.get("GOLDENCHART_DEFAULT_DTE", "")
    default_dte = _float("GOLDENCHART_DEFAULT_DTE", dte_raw) if dte_raw else None

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(
            f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got '{log_level}'"
        )

    return Config(
        step_scheme=step_scheme,
        fixed_step=fixed_step,
        wait_pct=wait_pct,
        sim_steps=sim_steps,
        default_days_to_expiry=default_dte,
        log_level=log_level,
        api_port=_int("API_PORT", "8080"),
    )
