"""Rule registry — the ordered list of rules the decision engine walks.

Registration order is the tie-break policy: the first rule that fires
wins.  The registry is append-only; ``register`` is serialised with a
lock so concurrent start-up code cannot interleave partial writes.
"""

import threading
from typing import Iterator, Optional

from goldenchart.strategy.base import DEFAULT_WAIT_PCT, RuleProtocol
from goldenchart.strategy.grid import StepFunction, dynamic_step


class RuleRegistry:
    """Ordered, append-only collection of rules."""

    def __init__(self, rules: Optional[list[RuleProtocol]] = None) -> None:
        self._rules: list[RuleProtocol] = []
        self._lock = threading.Lock()
        for rule in rules or []:
            self.register(rule)

    def register(self, rule: RuleProtocol) -> RuleProtocol:
        """Append *rule* to the end of the evaluation order.

        Raises ``TypeError`` if *rule* does not satisfy ``RuleProtocol`` and
        ``ValueError`` if a rule with the same name is already registered.
        Returns the rule so it can be used as a decorator target.
        """
        if not isinstance(rule, RuleProtocol) or not isinstance(rule.name, str):
            raise TypeError(
                f"Rule must have a str 'name' and a 'check' method, got {rule!r}"
            )
        with self._lock:
            if any(r.name == rule.name for r in self._rules):
                raise ValueError(f"Rule '{rule.name}' is already registered")
            self._rules.append(rule)
        return rule

    def names(self) -> list[str]:
        """Rule names in evaluation order."""
        return [r.name for r in self._rules]

    def get(self, name: str) -> RuleProtocol:
        """Look up a rule by name.

        Raises ``KeyError`` if the rule name is not registered.
        """
        for rule in self._rules:
            if rule.name == name:
                return rule
        raise KeyError(
            f"Unknown rule '{name}'. "
            f"Available: {', '.join(self.names())}"
        )

    def __iter__(self) -> Iterator[RuleProtocol]:
        # Iterate over a snapshot so late registration can't disturb a run
        return iter(list(self._rules))

    def __len__(self) -> int:
        return len(self._rules)


def build_default_registry(
    step_fn: StepFunction = dynamic_step,
    wait_pct: float = DEFAULT_WAIT_PCT,
) -> RuleRegistry:
    """Create a registry holding the built-in rules in their canonical order."""
    from goldenchart.strategy.breakdown import BreakdownShortRule
    from goldenchart.strategy.even_breakout import EvenBreakoutRule
    from goldenchart.strategy.flag_play import BullishFlagRule
    from goldenchart.strategy.ma_trend import MATrendRule
    from goldenchart.strategy.reversal import DoubleTopBottomRule, RoundingSwingRule

    return RuleRegistry([
        BullishFlagRule(step_fn=step_fn, wait_pct=wait_pct),
        MATrendRule(step_fn=step_fn, wait_pct=wait_pct),
        EvenBreakoutRule(step_fn=step_fn, wait_pct=wait_pct),
        DoubleTopBottomRule(step_fn=step_fn, wait_pct=wait_pct),
        RoundingSwingRule(step_fn=step_fn, wait_pct=wait_pct),
        BreakdownShortRule(step_fn=step_fn, wait_pct=wait_pct),
    ])
