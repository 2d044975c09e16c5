"""GoldenChart — decision engine.

Walks the rule registry in order and turns the first proposal into a
``Decision``.  Pure and synchronous: the only state is the injected
registry, so identical inputs always produce identical decisions,
notes included.
"""

import logging
from typing import Optional, Sequence

from goldenchart.strategy.base import evaluate_rule
from goldenchart.strategy.models import ChartSnapshot, Decision, RuleContext, RuleProposal
from goldenchart.strategy.registry import RuleRegistry, build_default_registry

logger = logging.getLogger("goldenchart")

REQUIRED_FIELDS = ("price", "ma_fast", "ma_slow")
NO_TRADE_NOTE = "No rule fired → no simple trade."


def _degenerate(proposal: RuleProposal) -> bool:
    return min(proposal.entry, proposal.stop, proposal.target) <= 0


class DecisionEngine:
    """Evaluates rules first-match-wins over one chart snapshot.

    Args:
        registry: The ordered rules to evaluate.
        required_fields: Snapshot fields that must be present before any
            rule runs.  A snapshot missing one of them is a no-trade.
    """

    def __init__(
        self,
        registry: RuleRegistry,
        required_fields: Sequence[str] = REQUIRED_FIELDS,
    ) -> None:
        self._registry = registry
        self._required = tuple(required_fields)

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    def decide(
        self,
        snapshot: ChartSnapshot,
        context: Optional[RuleContext] = None,
    ) -> Decision:
        """Return the first firing rule's trade, or a no-trade decision.

        Per rule the notes receive ``Checking rule: <name>`` followed by
        whatever the rule reports, then ``Rule fired: <name>`` if it
        produced a proposal.  A rule that raises is recorded as
        ``Rule error: <name> → <message>`` and skipped.  A proposal whose entry, stop
        or target is not positive (a price below one grid step) is skipped
        with an ``Insufficient data`` note.
        """
        context = context or RuleContext()
        notes: list[str] = []

        missing = snapshot.missing(*self._required)
        if missing:
            logger.debug("Insufficient chart data, missing: %s", missing)
            notes.append(f"Insufficient data: missing {', '.join(missing)} → rules skipped.")
            notes.append(NO_TRADE_NOTE)
            return Decision.no_trade(notes)

        for rule in self._registry:
            notes.append(f"Checking rule: {rule.name}")
            outcome = evaluate_rule(rule, snapshot, notes, context)

            if outcome.fault is not None:
                logger.error("Rule '%s' failed: %s", rule.name, outcome.fault)
                notes.append(f"Rule error: {rule.name} → {outcome.fault}")
                continue

            if outcome.fired and _degenerate(outcome.proposal):
                logger.debug(
                    "Rule '%s' produced non-positive levels: %s", rule.name, outcome.proposal,
                )
                notes.append(
                    f"Insufficient data: {rule.name} produced a non-positive entry, "
                    "stop or target → rule skipped."
                )
                continue

            if outcome.fired:
                notes.append(f"Rule fired: {rule.name}")
                logger.info(
                    "Rule '%s' fired: %s entry=%s stop=%s target=%s wait=%s",
                    rule.name,
                    outcome.proposal.direction,
                    outcome.proposal.entry,
                    outcome.proposal.stop,
                    outcome.proposal.target,
                    outcome.proposal.wait,
                )
                return Decision.from_proposal(outcome.proposal, notes, rule=rule.name)

        notes.append(NO_TRADE_NOTE)
        return Decision.no_trade(notes)


_default_engine: Optional[DecisionEngine] = None


def get_default_engine() -> DecisionEngine:
    """Return the process-wide engine over the built-in rules."""
    global _default_engine  # noqa: PLW0603
    if _default_engine is None:
        _default_engine = DecisionEngine(build_default_registry())
    return _default_engine


def decide_trade(
    snapshot: ChartSnapshot,
    context: Optional[RuleContext] = None,
    registry: Optional[RuleRegistry] = None,
) -> Decision:
    """Decide on one snapshot using *registry* or the built-in rules."""
    if registry is not None:
        return DecisionEngine(registry).decide(snapshot, context)
    return get_default_engine().decide(snapshot, context)
