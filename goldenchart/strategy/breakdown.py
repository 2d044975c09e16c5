"""Breakdown Short — put when price presses the low of the day."""

from typing import Optional

from goldenchart.strategy.base import GridRule
from goldenchart.strategy.models import ChartSnapshot, RuleContext, RuleProposal

LOW_ZONE_FRACTION = 0.05  # bottom 5% of the day range
STOP_STEPS = 2            # stop sits this many grid steps above entry


class BreakdownShortRule(GridRule):
    """Short a session that is sitting on its lows.

    Fires when price < day low + ``LOW_ZONE_FRACTION`` × range.  Entry is
    the next grid level down, stop ``STOP_STEPS`` grid steps above entry,
    target one full day range below the day low.  Entry sits on the grid level
    below price rather than half a step above it, so the stop distance is
    always exactly two steps from entry.
    """

    name = "Breakdown Short"

    def check(
        self,
        snapshot: ChartSnapshot,
        notes: list[str],
        context: RuleContext,
    ) -> Optional[RuleProposal]:
        if snapshot.missing("price", "day_high", "day_low"):
            return None

        day_range = snapshot.day_range
        if day_range <= 0:
            return None

        price = snapshot.price
        if price >= snapshot.day_low + day_range * LOW_ZONE_FRACTION:
            return None

        notes.append("Price is pressing the low of the day → breakdown risk.")
        entry = self.entry_for("put", price)
        stop = entry + self.step_fn(price) * STOP_STEPS
        target = snapshot.day_low - day_range
        return self.propose("put", price, entry, stop, target)
