"""Rule protocol and per-rule evaluation result.

Defines the interface every trading rule must implement, plus the
``RuleOutcome`` wrapper the decision engine consumes so that a faulty
rule is an ordinary value rather than an escaping exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

from goldenchart.strategy.grid import (
    StepFunction,
    dynamic_step,
    next_increment_down,
    next_increment_up,
)
from goldenchart.strategy.models import ChartSnapshot, RuleContext, RuleProposal

# Baseline "too far from entry" threshold, as a fraction of entry.
DEFAULT_WAIT_PCT = 0.02


@runtime_checkable
class RuleProtocol(Protocol):
    """Interface that all decision rules must satisfy."""

    name: str

    def check(
        self,
        snapshot: ChartSnapshot,
        notes: list[str],
        context: RuleContext,
    ) -> Optional[RuleProposal]:
        """Inspect the snapshot, append notes, and return a proposal or None."""
        ...


@dataclass(frozen=True)
class FunctionRule:
    """Adapts a plain ``check(snapshot, notes, context)`` function to a rule."""

    name: str
    func: Callable[[ChartSnapshot, list[str], RuleContext], Optional[RuleProposal]]

    def check(self, snapshot, notes, context):
        return self.func(snapshot, notes, context)


@dataclass(frozen=True)
class RuleOutcome:
    """Result of evaluating one rule: a proposal, nothing, or a fault."""

    rule: str
    proposal: Optional[RuleProposal] = None
    fault: Optional[str] = None

    @property
    def fired(self) -> bool:
        return self.proposal is not None


def evaluate_rule(
    rule: RuleProtocol,
    snapshot: ChartSnapshot,
    notes: list[str],
    context: RuleContext,
) -> RuleOutcome:
    """Run *rule* and capture its result or the exception it raised."""
    try:
        proposal = rule.check(snapshot, notes, context)
    except Exception as exc:
        return RuleOutcome(rule=rule.name, fault=f"{type(exc).__name__}: {exc}")
    if proposal is not None and not isinstance(proposal, RuleProposal):
        return RuleOutcome(
            rule=rule.name,
            fault=f"returned {type(proposal).__name__}, expected RuleProposal",
        )
    return RuleOutcome(rule=rule.name, proposal=proposal)


def is_stretched(
    direction: str,
    price: float,
    entry: float,
    wait_pct: float = DEFAULT_WAIT_PCT,
) -> bool:
    """Return True when price has run past *entry* by more than *wait_pct*.

    - **Call**: price > entry × (1 + wait_pct)
    - **Put**:  price < entry × (1 − wait_pct)
    """
    if direction == "call":
        return price > entry * (1 + wait_pct)
    if direction == "put":
        return price < entry * (1 - wait_pct)
    raise ValueError(f"direction must be 'call' or 'put', got '{direction}'")


def fallback_range(snapshot: ChartSnapshot, pct: float = 0.03) -> float:
    """Today's range, or *pct* of price when the range is missing or degenerate."""
    day_range = snapshot.day_range
    if day_range is None or day_range <= 0:
        return snapshot.price * pct
    return day_range


class GridRule:
    """Shared plumbing for rules that snap entries to the price grid.

    Subclasses set ``name`` and implement ``check``.
    """

    name: str = ""

    def __init__(
        self,
        step_fn: StepFunction = dynamic_step,
        wait_pct: float = DEFAULT_WAIT_PCT,
    ) -> None:
        self.step_fn = step_fn
        self.wait_pct = wait_pct

    def entry_for(self, direction: str, price: float) -> float:
        """Next clean grid level in the trade direction."""
        if direction == "call":
            return next_increment_up(price, self.step_fn)
        return next_increment_down(price, self.step_fn)

    def propose(
        self,
        direction: str,
        price: float,
        entry: float,
        stop: float,
        target: float,
    ) -> RuleProposal:
        """Round the levels and attach the wait flag."""
        return RuleProposal(
            direction=direction,
            entry=round(entry, 2),
            stop=round(stop, 2),
            target=round(target, 2),
            wait=is_stretched(direction, price, entry, self.wait_pct),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
