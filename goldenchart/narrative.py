"""Narrative builder — a mentor-style plain-text read of one chart.

Combines detector output with the engine's decision.  Purely descriptive:
nothing here changes the decision.
"""

from typing import Optional

from goldenchart.strategy.detectors import (
    detect_bull_flag,
    detect_double_top_bottom,
    detect_even_proximity,
    detect_ma_cluster,
    detect_ma_slope,
    detect_rounding,
    detect_support_resistance,
)
from goldenchart.strategy.grid import StepFunction, dynamic_step
from goldenchart.strategy.models import ChartSnapshot, Decision, RuleContext

BASE_STRUCTURE_SCORE = 50
OCR_WEIGHT = 0.4
STRUCTURE_WEIGHT = 0.6


def _num(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.2f}"


def range_position_text(snapshot: ChartSnapshot) -> Optional[str]:
    """Describe where price sits in today's range, or None without range data."""
    if snapshot.missing("price", "day_high", "day_low"):
        return None
    day_range = snapshot.day_range
    position = (snapshot.price - snapshot.day_low) / day_range if day_range > 0 else 0.5
    if position < 0.2:
        return "near the low of the day"
    if position < 0.4:
        return "in the lower half of today’s range"
    if position < 0.6:
        return "around the middle of today’s range"
    if position < 0.8:
        return "in the upper half of today’s range"
    return "pressing near the high of the day"


def composite_confidence(
    snapshot: ChartSnapshot,
    decision: Decision,
    ocr_confidence: float = 0.0,
) -> tuple[int, int]:
    """Blend OCR confidence with a structural score.

    Returns ``(combined, structural)``, both 0–100.
    """
    structural = BASE_STRUCTURE_SCORE
    if detect_ma_cluster(snapshot).clustered:
        structural += 10
    if detect_bull_flag(snapshot).is_flag:
        structural += 15
    if not decision.wait:
        structural += 10
    combined = round(ocr_confidence * OCR_WEIGHT + structural * STRUCTURE_WEIGHT)
    return max(0, min(100, combined)), structural


def build_narrative(
    snapshot: ChartSnapshot,
    decision: Decision,
    context: Optional[RuleContext] = None,
    ocr_confidence: Optional[float] = None,
    step_fn: StepFunction = dynamic_step,
) -> list[str]:
    """Return the narrative as a list of paragraphs."""
    history = context.history if context else ()
    parts: list[str] = []

    # Immediate read
    if ocr_confidence is not None:
        parts.append(f"OCR confidence: {ocr_confidence:.1f}%.")
    read = (
        f"Price {_num(snapshot.price)}, day high/low "
        f"{_num(snapshot.day_high)} / {_num(snapshot.day_low)}, "
        f"MA20/MA50/MA200 {_num(snapshot.ma_fast)} / {_num(snapshot.ma_slow)} / "
        f"{_num(snapshot.ma200)}."
    )
    if snapshot.ticker:
        read = f"{snapshot.ticker}: {read}"
    parts.append(read)

    # Structure
    position = range_position_text(snapshot)
    if position:
        parts.append(
            f"Price is {position}. The intraday range is {snapshot.day_range:.2f} points."
        )
    else:
        parts.append("Not enough range data to place price inside today’s range.")

    cluster = detect_ma_cluster(snapshot)
    if cluster.clustered:
        parts.append(
            f"Moving averages are tightly clustered (spread ≈ {cluster.spread:.3f}), "
            "which often precedes a directional break."
        )
    else:
        parts.append("Moving averages are not tightly clustered; expect more noise.")

    flag = detect_bull_flag(snapshot)
    if flag.is_flag:
        parts.append("Bull flag detected: " + "; ".join(flag.notes))

    slope = detect_ma_slope(history)
    if slope.available:
        parts.append(
            f"MA slope: fast {'up' if slope.fast_up else 'down' if slope.fast_down else 'flat'}, "
            f"slow {'up' if slope.slow_up else 'down' if slope.slow_down else 'flat'}"
            f"{', sharp move on the last bar' if slope.sharp_move else ''}."
        )

    even = detect_even_proximity(snapshot.price, step_fn)
    if even.is_near:
        where = "just above" if even.is_just_above else "just below" if even.is_just_below else "right on"
        parts.append(
            f"Price is {where} the even level {even.nearest:.2f}; "
            "round numbers act as magnets and barriers."
        )
    elif snapshot.price is not None:
        parts.append("Price is not especially close to a key even level.")

    levels = detect_support_resistance(history)
    if levels.supports:
        joined = ", ".join(f"{lvl.level:.2f} ({lvl.hits} hits)" for lvl in levels.supports)
        parts.append(f"Strong levels from history: {joined}.")

    pattern = detect_double_top_bottom(history)
    if pattern.double_top:
        parts.append("Double top in the history: be careful with longs near that zone.")
    if pattern.double_bottom:
        parts.append("Double bottom in the history: possible reversal support.")
    rounding = detect_rounding(history)
    if rounding.rounding_bottom:
        parts.append("Rounding bottom structure: accumulation phase possible.")
    if rounding.rounding_top:
        parts.append("Rounding top structure: distribution phase possible.")

    # Decision
    if not decision.valid:
        parts.append(
            "The rule engine did not find a clean setup. Stand aside and wait for "
            "clearer structure or a retest of a key level."
        )
    else:
        parts.append(
            f"The engine found a {decision.direction.upper()} setup"
            f"{f' ({decision.rule})' if decision.rule else ''}: entry {_num(decision.entry)}, "
            f"stop {_num(decision.stop)}, target {_num(decision.target)}."
        )
        if ocr_confidence is not None:
            combined, structural = composite_confidence(snapshot, decision, ocr_confidence)
            parts.append(
                f"Composite confidence: {combined}% "
                f"(OCR {ocr_confidence:.1f}% + structure {structural})."
            )
        parts.append(
            "Wait for a better fill near entry."
            if decision.wait
            else "Scale in according to your risk plan."
        )

    parts.append(
        "Size to risk so a full stop-out costs a fixed slice of the account. "
        "Use the underlying's stop level, not the option price, and exit if the "
        "chart stops matching the original setup."
    )
    return parts
