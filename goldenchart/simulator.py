"""Future-path simulator — a biased random walk for display only.

Nothing here feeds back into the decision engine.  The random source is
injectable (a ``numpy.random.Generator`` or a seed) so callers and tests
can reproduce a path.
"""

from typing import Iterator, Optional

import numpy as np

from goldenchart.strategy.models import ChartSnapshot, Decision

DEFAULT_STEPS = 30
DRIFT_PCT = 0.003        # per-step drift in the decision's direction
TREND_NOISE_PCT = 0.001  # full width of the noise band on a valid decision
FLAT_NOISE_PCT = 0.002   # full width of the noise band around price


def simulate_future(
    snapshot: ChartSnapshot,
    decision: Decision,
    steps: int = DEFAULT_STEPS,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> Iterator[float]:
    """Yield *steps* hypothetical future prices.

    - **Invalid decision**: each value is price ± 0.1% of uniform noise,
      independent of the previous value and of ``decision.direction``.
    - **Valid decision**: a cumulative walk that drifts 0.3% of price per
      step toward the trade (up for calls, down for puts) plus ±0.05%
      noise.

    Returns a generator; it can be consumed once.

    Raises ``ValueError`` if *steps* is negative.
    """
    if steps < 0:
        raise ValueError(f"steps must be >= 0, got {steps}")
    if rng is None:
        rng = np.random.default_rng(seed)
    price = snapshot.price or 0.0
    return _walk(price, decision, steps, rng)


def _walk(price: float, decision: Decision, steps: int, rng: np.random.Generator) -> Iterator[float]:
    if not decision.valid:
        for _ in range(steps):
            yield float(price + (rng.random() - 0.5) * price * FLAT_NOISE_PCT)
        return

    bias = 1.0 if decision.direction == "call" else -1.0
    current = price
    for _ in range(steps):
        current += bias * price * DRIFT_PCT + (rng.random() - 0.5) * price * TREND_NOISE_PCT
        yield float(current)
