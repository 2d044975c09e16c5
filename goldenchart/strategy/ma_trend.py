"""Basic MA Trend — fallback rule following fast/slow MA alignment."""

from typing import Optional

from goldenchart.strategy.base import GridRule, fallback_range
from goldenchart.strategy.detectors import detect_even_proximity, detect_ma_cluster
from goldenchart.strategy.models import ChartSnapshot, RuleContext, RuleProposal

LONG_STOP_FRACTION = 0.8
SHORT_STOP_FRACTION = 1.2


class MATrendRule(GridRule):
    """Trade with the trend when price and both MAs line up.

    Rules:
        - **Call**: MA fast > MA slow AND price > MA fast.
        - **Put**:  MA fast < MA slow AND price < MA fast.
        - Anything else: no proposal.

    Levels mirror each other: calls enter on the next grid level up with
    the stop at 80% of entry and target price + day range; puts enter on
    the next level down with the stop at 120% of entry and target
    price − day range.  Day range falls back to 3% of price.
    """

    name = "Basic MA Trend"

    def check(
        self,
        snapshot: ChartSnapshot,
        notes: list[str],
        context: RuleContext,
    ) -> Optional[RuleProposal]:
        if snapshot.missing("price", "ma_fast", "ma_slow"):
            return None

        price = snapshot.price
        fast = snapshot.ma_fast
        slow = snapshot.ma_slow

        if fast > slow and price > fast:
            direction = "call"
            notes.append("Fast MA above slow MA and price above fast MA → uptrend.")
        elif fast < slow and price < fast:
            direction = "put"
            notes.append("Fast MA below slow MA and price below fast MA → downtrend.")
        else:
            return None

        even = detect_even_proximity(price, self.step_fn)
        if even.is_near:
            notes.append(
                f"Price is near even level {even.nearest:g} → psychological level in play."
            )

        if detect_ma_cluster(snapshot).clustered:
            notes.append("MAs are clustered → consolidation inside trend.")

        day_range = fallback_range(snapshot)
        entry = self.entry_for(direction, price)
        if direction == "call":
            return self.propose(
                "call", price, entry, entry * LONG_STOP_FRACTION, price + day_range,
            )
        return self.propose(
            "put", price, entry, entry * SHORT_STOP_FRACTION, price - day_range,
        )
