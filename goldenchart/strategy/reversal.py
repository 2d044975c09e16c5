"""History-driven reversal rules — double top/bottom and rounding swings.

Both rules need the oldest-first price history in ``RuleContext`` and stay
silent when it is too short.
"""

from typing import Optional

from goldenchart.strategy.base import GridRule
from goldenchart.strategy.detectors import detect_double_top_bottom, detect_rounding
from goldenchart.strategy.models import ChartSnapshot, RuleContext, RuleProposal


# ── Double top / bottom ──────────────────────────────────────────────────

DOUBLE_MIN_HISTORY = 5
DOUBLE_TARGET_PCT = 0.03
DOUBLE_LONG_STOP = 0.8
DOUBLE_SHORT_STOP = 1.2


class DoubleTopBottomRule(GridRule):
    """Fade a double top (put) or buy a double bottom (call).

    Double top wins when both patterns show.  Target is 3% beyond price
    in the trade direction; stop is 120% (put) or 80% (call) of entry.
    """

    name = "Double Top / Bottom Reversal"

    def check(
        self,
        snapshot: ChartSnapshot,
        notes: list[str],
        context: RuleContext,
    ) -> Optional[RuleProposal]:
        history = context.history if context else ()
        if len(history) < DOUBLE_MIN_HISTORY:
            return None

        price = snapshot.price
        if not price:
            return None

        pattern = detect_double_top_bottom(history)

        if pattern.double_top:
            notes.append("Double top detected near recent highs → potential reversal down.")
            entry = self.entry_for("put", price)
            return self.propose(
                "put", price, entry, entry * DOUBLE_SHORT_STOP,
                price * (1 - DOUBLE_TARGET_PCT),
            )

        if pattern.double_bottom:
            notes.append("Double bottom detected near recent lows → potential reversal up.")
            entry = self.entry_for("call", price)
            return self.propose(
                "call", price, entry, entry * DOUBLE_LONG_STOP,
                price * (1 + DOUBLE_TARGET_PCT),
            )

        return None


# ── Rounding bottom / top ────────────────────────────────────────────────

ROUNDING_MIN_HISTORY = 10
ROUNDING_TARGET_PCT = 0.05
ROUNDING_LONG_STOP = 0.85
ROUNDING_SHORT_STOP = 1.15


class RoundingSwingRule(GridRule):
    """Swing with a rounding bottom (call) or rounding top (put).

    Wider than the double-top rule: stop at 85% / 115% of entry and
    target 5% beyond price.
    """

    name = "Rounding Bottom / Top Swing"

    def check(
        self,
        snapshot: ChartSnapshot,
        notes: list[str],
        context: RuleContext,
    ) -> Optional[RuleProposal]:
        history = context.history if context else ()
        if len(history) < ROUNDING_MIN_HISTORY:
            return None

        price = snapshot.price
        if not price:
            return None

        rounding = detect_rounding(history)

        if rounding.rounding_bottom:
            notes.append("Rounding bottom pattern detected → accumulation then push higher.")
            entry = self.entry_for("call", price)
            return self.propose(
                "call", price, entry, entry * ROUNDING_LONG_STOP,
                price * (1 + ROUNDING_TARGET_PCT),
            )

        if rounding.rounding_top:
            notes.append("Rounding top pattern detected → distribution then drop.")
            entry = self.entry_for("put", price)
            return self.propose(
                "put", price, entry, entry * ROUNDING_SHORT_STOP,
                price * (1 - ROUNDING_TARGET_PCT),
            )

        return None
