"""Bullish Flag Golden Play — continuation call off a tight consolidation.

Fires only when ``detect_bull_flag`` signals.  Side-channel notes from
the even-level and MA-cluster detectors are folded into the audit trail.
"""

import logging
from typing import Optional

from goldenchart.strategy.base import GridRule
from goldenchart.strategy.detectors import (
    detect_bull_flag,
    detect_even_proximity,
    detect_ma_cluster,
)
from goldenchart.strategy.models import ChartSnapshot, RuleContext, RuleProposal

logger = logging.getLogger("goldenchart.rules")

STOP_FRACTION = 0.8          # stop = 80% of entry
TARGET_RANGE_EXTENSION = 0.5  # target = day high + half the day range
FALLBACK_TARGET_PCT = 1.03


class BullishFlagRule(GridRule):
    """Call when price is flagging near the day high above tight MAs.

    - Entry:  next grid level above price.
    - Stop:   ``STOP_FRACTION`` × entry.
    - Target: day high + ``TARGET_RANGE_EXTENSION`` × day range; falls back
      to price × ``FALLBACK_TARGET_PCT`` when the range is unusable.
    - Wait:   price more than ``wait_pct`` above entry.
    """

    name = "Bullish Flag Golden Play"

    def check(
        self,
        snapshot: ChartSnapshot,
        notes: list[str],
        context: RuleContext,
    ) -> Optional[RuleProposal]:
        flag = detect_bull_flag(snapshot)
        if not flag.is_flag:
            return None

        notes.extend(flag.notes)

        even = detect_even_proximity(snapshot.price, self.step_fn)
        if even.is_just_below:
            notes.append(
                f"Price is just below key even level {even.nearest:g} → breakout fuel."
            )

        if detect_ma_cluster(snapshot).clustered:
            notes.append("MAs are tightly clustered → strong consolidation before move.")

        price = snapshot.price
        entry = self.entry_for("call", price)
        day_range = snapshot.day_range
        if day_range is not None and day_range > 0:
            target = snapshot.day_high + day_range * TARGET_RANGE_EXTENSION
        else:
            target = price * FALLBACK_TARGET_PCT

        logger.debug("Flag play: price=%.2f entry=%.2f target=%.2f", price, entry, target)
        return self.propose("call", price, entry, entry * STOP_FRACTION, target)
