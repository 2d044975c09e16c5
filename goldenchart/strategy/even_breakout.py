"""Even Number Breakout + MA Cluster — coiled spring under a round level."""

from typing import Optional

from goldenchart.strategy.base import GridRule, fallback_range
from goldenchart.strategy.detectors import detect_even_proximity, detect_ma_cluster
from goldenchart.strategy.models import ChartSnapshot, RuleContext, RuleProposal

BREAKOUT_OFFSET = 0.05  # entry sits this far above the even level
STOP_FRACTION = 0.8


class EvenBreakoutRule(GridRule):
    """Call when price sits just below an even level with clustered MAs.

    Entry is ``BREAKOUT_OFFSET`` above the level (a confirmed break),
    stop is 80% of entry, target is entry + day range (3% of price when
    the range is unknown).  Waits when price is already more than
    ``wait_pct`` above entry.
    """

    name = "Even Number Breakout + MA Cluster"

    def check(
        self,
        snapshot: ChartSnapshot,
        notes: list[str],
        context: RuleContext,
    ) -> Optional[RuleProposal]:
        price = snapshot.price
        if not price:
            return None

        even = detect_even_proximity(price, self.step_fn)
        if not even.is_just_below:
            return None

        if not detect_ma_cluster(snapshot).clustered:
            return None

        notes.append(f"Price is sitting just below even level {even.nearest:g}.")
        notes.append("MAs are tightly clustered → coiled spring setup.")

        entry = even.nearest + BREAKOUT_OFFSET
        target = entry + fallback_range(snapshot)
        return self.propose("call", price, entry, entry * STOP_FRACTION, target)
