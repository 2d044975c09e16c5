"""Price grid — the round-number step scheme shared by rules and options.

Entries snap to the next "clean" level on a grid.  The grid spacing is a
pluggable ``StepFunction`` so the whole engine can switch between the
baseline fixed grid and the price-scaled grid in one place.
"""

import math
from typing import Callable

StepFunction = Callable[[float], float]

# Absorbs float noise such as 0.3 / 0.1 == 2.9999999999999996
_GRID_EPSILON = 1e-9

DEFAULT_FIXED_STEP = 5.0


def fixed_step(price: float, step: float = DEFAULT_FIXED_STEP) -> float:
    """Baseline grid: the same spacing regardless of price."""
    return step


def dynamic_step(price: float) -> float:
    """Price-scaled grid: finer for cheap instruments, coarser for expensive.

    ========== ======
    price      step
    ========== ======
    ≤ 20       0.05
    ≤ 100      0.5
    ≤ 300      1
    ≤ 1000     5
    > 1000     10
    ========== ======
    """
    price = abs(price)
    if price > 1000:
        return 10.0
    if price > 300:
        return 5.0
    if price > 100:
        return 1.0
    if price > 20:
        return 0.5
    return 0.05


def make_fixed_step(step: float) -> StepFunction:
    """Return a fixed-grid step function with a custom spacing."""
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")

    def _step(price: float) -> float:
        return fixed_step(price, step)

    return _step


STEP_SCHEMES: dict[str, StepFunction] = {
    "dynamic": dynamic_step,
    "fixed": fixed_step,
}


def get_step_function(name: str, fixed: float = DEFAULT_FIXED_STEP) -> StepFunction:
    """Resolve a step scheme by name.

    Raises ``KeyError`` if the scheme is not registered.
    """
    if name not in STEP_SCHEMES:
        raise KeyError(
            f"Unknown step scheme '{name}'. "
            f"Available: {', '.join(STEP_SCHEMES.keys())}"
        )
    if name == "fixed":
        return make_fixed_step(fixed)
    return STEP_SCHEMES[name]


def _snap(value: float) -> float:
    return round(value, 4)


def next_increment_up(price: float, step_fn: StepFunction = dynamic_step) -> float:
    """Round *price* up to the grid (a price already on the grid is kept)."""
    step = step_fn(price)
    return _snap(math.ceil(price / step - _GRID_EPSILON) * step)


def next_increment_down(price: float, step_fn: StepFunction = dynamic_step) -> float:
    """Round *price* down to the grid (a price already on the grid is kept)."""
    step = step_fn(price)
    return _snap(math.floor(price / step + _GRID_EPSILON) * step)


def nearest_increment(price: float, step_fn: StepFunction = dynamic_step) -> float:
    """Round *price* to the closest grid level (halves round up)."""
    step = step_fn(price)
    return _snap(math.floor(price / step + 0.5) * step)
