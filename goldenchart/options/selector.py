"""Options contract selector — pure functions, no I/O.

Turns a valid ``Decision`` into a five-strike ladder around the entry,
classifies each strike's moneyness and recommends one contract based on
how much time the trade has:

=====================  ==============  =========================
days to expiry         bucket          recommended strike
=====================  ==============  =========================
≤ 2                    scalp           aggressive (1 step OTM)
3 – 5                  short-term      aggressive (1 step OTM)
6 – 10                 ~1 week         at entry (ATM)
11 – 20                1–3 week swing  at entry (ATM)
> 20                   position        conservative (1 step ITM)
not given              unspecified     at entry (ATM)
=====================  ==============  =========================
"""

import logging
from dataclasses import dataclass
from typing import Optional

from goldenchart.options.models import Moneyness, OptionCandidate, OptionsPlan
from goldenchart.strategy.grid import StepFunction, dynamic_step
from goldenchart.strategy.models import Decision

logger = logging.getLogger("goldenchart.options")

LADDER_OFFSETS = (-2, -1, 0, 1, 2)
CHAIN_WIDTH = 7
DEFAULT_UNDERLYING = "UNDERLYING"


# ── Expiry buckets ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExpiryBucket:
    key: str
    label: str
    style: str  # "aggressive", "atm" or "conservative"


_BUCKETS: tuple[tuple[float, ExpiryBucket], ...] = (
    (2, ExpiryBucket("scalp", "very short-term scalp", "aggressive")),
    (5, ExpiryBucket("short_term", "short-term move", "aggressive")),
    (10, ExpiryBucket("one_week", "hold of about a week", "atm")),
    (20, ExpiryBucket("swing", "1–3 week swing", "atm")),
)
_POSITION = ExpiryBucket("position", "position trade", "conservative")
_UNSPECIFIED = ExpiryBucket("unspecified", "unspecified timeframe", "atm")


def expiry_bucket(days_to_expiry: Optional[float]) -> ExpiryBucket:
    """Classify days-to-expiry into a named timeframe bucket."""
    if days_to_expiry is None:
        return _UNSPECIFIED
    days = float(days_to_expiry)
    for upper, bucket in _BUCKETS:
        if days <= upper:
            return bucket
    return _POSITION


# ── Strikes ──────────────────────────────────────────────────────────────


def classify_moneyness(strike: float, entry: float, direction: str) -> Moneyness:
    """Moneyness of *strike* relative to the planned entry.

    Calls are ITM below entry and OTM above; puts are the reverse.
    """
    if direction not in ("call", "put"):
        raise ValueError(f"direction must be 'call' or 'put', got '{direction}'")
    if abs(strike - entry) < 1e-9:
        return "ATM"
    below = strike < entry
    if direction == "call":
        return "ITM" if below else "OTM"
    return "OTM" if below else "ITM"


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _style_hint(moneyness: Moneyness, steps_away: int) -> str:
    if moneyness == "ATM":
        return "At the entry: balanced premium and responsiveness."
    if moneyness == "OTM":
        if steps_away <= 1:
            return "One step out of the money: cheaper, needs the move to come quickly."
        return "Far out of the money: lottery ticket, size it very small."
    if steps_away <= 1:
        return "One step in the money: pricier but more forgiving if the move is slow."
    return "Deep in the money: trades most like the shares, highest premium."


def _candidate(
    strike: float,
    entry: float,
    step: float,
    direction: str,
    ticker: str,
) -> OptionCandidate:
    moneyness = classify_moneyness(strike, entry, direction)
    steps_away = round(abs(strike - entry) / step) if step else 0
    return OptionCandidate(
        label=f"{ticker} {_fmt(strike)} {direction.upper()}",
        strike=strike,
        moneyness=moneyness,
        style_hint=_style_hint(moneyness, steps_away),
    )


def build_strike_ladder(
    entry: float,
    direction: str,
    ticker: Optional[str] = None,
    step_fn: StepFunction = dynamic_step,
    offsets: tuple[int, ...] = LADDER_OFFSETS,
) -> list[OptionCandidate]:
    """Strikes at ``entry + offset × step`` for each offset, ascending."""
    step = step_fn(entry)
    ticker = ticker or DEFAULT_UNDERLYING
    strikes = sorted(round(entry + k * step, 2) for k in offsets)
    return [_candidate(s, entry, step, direction, ticker) for s in strikes]


def build_strike_chain(
    entry: float,
    direction: str,
    ticker: Optional[str] = None,
    step_fn: StepFunction = dynamic_step,
    width: int = CHAIN_WIDTH,
) -> list[OptionCandidate]:
    """The wider display chain: *width* strikes either side of entry."""
    return build_strike_ladder(
        entry, direction, ticker, step_fn, offsets=tuple(range(-width, width + 1)),
    )


def _recommended_index(style: str, direction: str) -> int:
    """Position in the 5-rung ladder for the bucket's style."""
    if style == "atm":
        return 2
    # OTM is above entry for calls, below for puts
    otm, itm = (3, 1) if direction == "call" else (1, 3)
    return otm if style == "aggressive" else itm


def risk_reward(entry: float, stop: float, target: float) -> tuple[float, float, str]:
    """Return (risk, reward, ratio text).  Ratio is ``"N/A"`` when risk is zero."""
    risk = abs(entry - stop)
    reward = abs(target - entry)
    if risk == 0:
        return risk, reward, "N/A"
    return risk, reward, f"1:{reward / risk:.2f}"


# ── Plan ─────────────────────────────────────────────────────────────────


def _no_trade_plan() -> OptionsPlan:
    return OptionsPlan(
        direction_text="No clear trade.",
        summary="The setup is not clean enough to choose a contract.",
        notes=("Stand aside until the chart gives a clean setup.",),
    )


def pick_options_contract(
    decision: Decision,
    days_to_expiry: Optional[float] = None,
    ticker: Optional[str] = None,
    iv: Optional[str] = None,
    step_fn: StepFunction = dynamic_step,
) -> OptionsPlan:
    """Recommend an option contract for *decision*.

    Args:
        decision: Output of the decision engine.
        days_to_expiry: Days until the contract expires, or None.
        ticker: Underlying symbol used in contract labels.
        iv: Optional implied-volatility hint (e.g. ``"45%"``) for the notes.
        step_fn: Strike spacing; should match the grid the rules used.

    Returns:
        ``OptionsPlan``.  An invalid decision yields a "No clear trade."
        plan with no candidates.

    Raises:
        ValueError: If a valid decision lacks a positive entry, a stop or
            a target.
    """
    if not decision.valid or decision.direction not in ("call", "put"):
        return _no_trade_plan()

    entry, stop, target = decision.entry, decision.stop, decision.target
    if entry is None or stop is None or target is None or entry <= 0:
        raise ValueError("valid decision needs a positive entry plus stop and target")

    direction = decision.direction
    ticker = ticker or DEFAULT_UNDERLYING
    bucket = expiry_bucket(days_to_expiry)

    ladder = build_strike_ladder(entry, direction, ticker, step_fn)
    recommended = ladder[_recommended_index(bucket.style, direction)]
    risk, reward, ratio = risk_reward(entry, stop, target)

    direction_text = (
        "CALL: expecting upside." if direction == "call" else "PUT: expecting downside."
    )

    notes = [
        f"Direction: {direction_text}",
        f"Entry {_fmt(entry)} | Stop {_fmt(stop)} | Target {_fmt(target)}",
    ]
    if ratio == "N/A":
        notes.append("Risk:Reward N/A (entry and stop coincide).")
    else:
        notes.append(
            f"Risk:Reward {ratio} (risk {risk:.2f} vs reward {reward:.2f} per share)."
        )
    if days_to_expiry is None:
        notes.append("Timeframe: no expiration given, defaulting to the at-entry strike.")
    else:
        notes.append(f"Timeframe: {_fmt(float(days_to_expiry))} days → {bucket.label}.")
    if iv:
        notes.append(
            f"IV context: {iv}. Rich premiums favour strikes nearer the money."
        )
    if decision.wait:
        notes.append("Price is stretched → WAIT for a better entry.")
    else:
        notes.append("Price is close enough → OK to enter.")
    notes.append(
        f"Manage risk off the underlying's stop at {_fmt(stop)}, not the option's price."
    )

    summary = (
        f"Recommended {recommended.label} ({recommended.moneyness}) "
        f"for a {bucket.label}."
    )
    logger.debug("Options plan: %s", summary)

    return OptionsPlan(
        direction_text=direction_text,
        summary=summary,
        recommended=recommended,
        candidates=tuple(ladder),
        notes=tuple(notes),
        bucket=bucket.key,
        chain=tuple(build_strike_chain(entry, direction, ticker, step_fn)),
    )
