"""CLI report — prints a decision and its options plan to the console."""

from typing import Optional, Sequence

from goldenchart.options.models import OptionsPlan
from goldenchart.strategy.models import ChartSnapshot, Decision


def _fmt(value: Optional[float]) -> str:
    return f"{value:,.2f}" if value is not None else "N/A"


def format_report(
    snapshot: ChartSnapshot,
    decision: Decision,
    plan: Optional[OptionsPlan] = None,
    path: Optional[Sequence[float]] = None,
    narrative: Optional[Sequence[str]] = None,
) -> str:
    """Format the analysis of one chart as a console block."""
    ticker = snapshot.ticker or "N/A"
    direction = decision.direction.upper() if decision.valid else "NO TRADE"

    lines = [
        "─────────────── GoldenChart Analysis ───────────────",
        f"  Ticker:     {ticker}",
        f"  Price:      {_fmt(snapshot.price)}",
        f"  Day H/L:    {_fmt(snapshot.day_high)} / {_fmt(snapshot.day_low)}",
        f"  MA20/50/200 {_fmt(snapshot.ma_fast)} / {_fmt(snapshot.ma_slow)} / {_fmt(snapshot.ma200)}",
        "",
        f"  Decision:   {direction}",
    ]
    if decision.valid:
        lines += [
            f"  Rule:       {decision.rule or 'N/A'}",
            f"  Entry:      {_fmt(decision.entry)}",
            f"  Stop:       {_fmt(decision.stop)}",
            f"  Target:     {_fmt(decision.target)}",
            f"  Wait:       {'yes' if decision.wait else 'no'}",
        ]

    lines.append("")
    lines.append("  Notes:")
    lines += [f"    - {n}" for n in decision.notes]

    if plan is not None:
        lines.append("")
        lines.append(f"  Options:    {plan.direction_text}")
        lines.append(f"  {plan.summary}")
        for c in plan.candidates:
            marker = "*" if plan.recommended and c.strike == plan.recommended.strike else " "
            lines.append(f"   {marker} {c.label:<24} {c.moneyness}  {c.style_hint}")
        lines += [f"    - {n}" for n in plan.notes]

    if path:
        values = list(path)
        lines.append("")
        lines.append(
            f"  Simulated:  {len(values)} steps, "
            f"last {_fmt(values[-1])} (min {_fmt(min(values))}, max {_fmt(max(values))})"
        )

    if narrative:
        lines.append("")
        lines += [f"  {p}" for p in narrative]

    lines.append("────────────────────────────────────────────────────")
    output = "\n".join(lines)
    print(output)
    return output
