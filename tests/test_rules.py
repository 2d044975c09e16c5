"""Tests for the built-in rules and the rule registry.

Each rule is exercised on its own with a hand-built snapshot so the
expected entry/stop/target can be worked out on paper.
"""

import pytest

from goldenchart.strategy.base import (
    FunctionRule,
    GridRule,
    RuleOutcome,
    evaluate_rule,
    is_stretched,
)
from goldenchart.strategy.breakdown import BreakdownShortRule
from goldenchart.strategy.detectors import FLAG_NOTES
from goldenchart.strategy.even_breakout import EvenBreakoutRule
from goldenchart.strategy.flag_play import BullishFlagRule
from goldenchart.strategy.grid import fixed_step
from goldenchart.strategy.ma_trend import MATrendRule
from goldenchart.strategy.models import ChartSnapshot, HistoryPoint, RuleContext, RuleProposal
from goldenchart.strategy.registry import RuleRegistry, build_default_registry
from goldenchart.strategy.reversal import DoubleTopBottomRule, RoundingSwingRule


# ── Helpers ──────────────────────────────────────────────────────────────


def _flag_snapshot(**overrides) -> ChartSnapshot:
    values = dict(
        price=110.0, day_high=112.0, day_low=100.0,
        ma_fast=109.0, ma_slow=109.2, ma200=109.5,
    )
    values.update(overrides)
    return ChartSnapshot(**values)


def _context(*prices: float) -> RuleContext:
    return RuleContext(history=tuple(HistoryPoint(price=p) for p in prices))


def _check(rule, snapshot, context=None):
    notes: list[str] = []
    proposal = rule.check(snapshot, notes, context or RuleContext())
    return proposal, notes


# ── Wait threshold ───────────────────────────────────────────────────────


class TestWaitThreshold:
    def test_call_stretched(self):
        assert is_stretched("call", 103.0, 100.0) is True
        assert is_stretched("call", 101.9, 100.0) is False

    def test_put_stretched(self):
        assert is_stretched("put", 97.0, 100.0) is True
        assert is_stretched("put", 98.5, 100.0) is False

    def test_custom_threshold(self):
        assert is_stretched("call", 101.5, 100.0, wait_pct=0.01) is True

    def test_bad_direction(self):
        with pytest.raises(ValueError, match="direction"):
            is_stretched("buy", 100.0, 100.0)

    def test_propose_sets_wait_both_ways(self):
        rule = GridRule()
        assert rule.propose("call", 103.0, 100.0, 80.0, 110.0).wait is True
        assert rule.propose("call", 100.5, 100.0, 80.0, 110.0).wait is False
        assert rule.propose("put", 97.0, 100.0, 120.0, 90.0).wait is True
        assert rule.propose("put", 99.5, 100.0, 120.0, 90.0).wait is False


# ── Bullish flag ─────────────────────────────────────────────────────────


class TestBullishFlagRule:
    def test_fires_on_flag(self):
        proposal, notes = _check(BullishFlagRule(), _flag_snapshot())
        assert proposal == RuleProposal(
            direction="call", entry=110.0, stop=88.0, target=118.0, wait=False,
        )
        assert notes == list(FLAG_NOTES) + [
            "MAs are tightly clustered → strong consolidation before move."
        ]

    def test_fixed_grid_entry(self):
        proposal, _ = _check(BullishFlagRule(step_fn=fixed_step), _flag_snapshot(price=111.0))
        # ceil(111 / 5) * 5 = 115
        assert proposal.entry == 115.0
        assert proposal.stop == 92.0

    def test_even_level_note(self):
        snapshot = _flag_snapshot(price=109.97, ma_fast=109.0, ma_slow=109.2)
        _, notes = _check(BullishFlagRule(), snapshot)
        assert "Price is just below key even level 110 → breakout fuel." in notes

    def test_silent_without_flag(self):
        proposal, notes = _check(BullishFlagRule(), _flag_snapshot(day_low=108.0))
        assert proposal is None
        assert notes == []


# ── MA trend ─────────────────────────────────────────────────────────────


class TestMATrendRule:
    def test_uptrend_call(self):
        snapshot = ChartSnapshot(
            price=50.3, day_high=51.0, day_low=49.0, ma_fast=50.0, ma_slow=49.0,
        )
        proposal, notes = _check(MATrendRule(), snapshot)
        assert proposal.direction == "call"
        assert proposal.entry == 50.5
        assert proposal.stop == pytest.approx(40.4)
        assert proposal.target == pytest.approx(52.3)
        assert proposal.wait is False
        assert notes == ["Fast MA above slow MA and price above fast MA → uptrend."]

    def test_downtrend_put(self):
        snapshot = ChartSnapshot(
            price=47.7, day_high=49.0, day_low=47.5, ma_fast=48.0, ma_slow=49.0,
        )
        proposal, notes = _check(MATrendRule(), snapshot)
        assert proposal.direction == "put"
        assert proposal.entry == 47.5
        assert proposal.stop == pytest.approx(57.0)
        assert proposal.target == pytest.approx(46.2)
        assert proposal.wait is False
        assert notes[0] == "Fast MA below slow MA and price below fast MA → downtrend."

    def test_range_fallback(self):
        snapshot = ChartSnapshot(price=50.3, ma_fast=50.0, ma_slow=49.0)
        proposal, _ = _check(MATrendRule(), snapshot)
        # 50.3 + 3% of 50.3
        assert proposal.target == pytest.approx(51.81, abs=0.01)

    def test_mixed_alignment_no_trade(self):
        snapshot = ChartSnapshot(price=49.5, ma_fast=50.0, ma_slow=49.0)
        proposal, notes = _check(MATrendRule(), snapshot)
        assert proposal is None
        assert notes == []

    def test_missing_ma(self):
        proposal, _ = _check(MATrendRule(), ChartSnapshot(price=50.0, ma_fast=49.0))
        assert proposal is None


# ── Even breakout ────────────────────────────────────────────────────────


class TestEvenBreakoutRule:
    def test_fires_below_even_level_with_cluster(self):
        snapshot = ChartSnapshot(
            price=99.95, day_high=101.0, day_low=99.0,
            ma_fast=99.5, ma_slow=99.8, ma200=100.2,
        )
        proposal, notes = _check(EvenBreakoutRule(), snapshot)
        assert proposal.direction == "call"
        assert proposal.entry == pytest.approx(100.05)
        assert proposal.stop == pytest.approx(80.04)
        assert proposal.target == pytest.approx(102.05)
        assert proposal.wait is False
        assert notes == [
            "Price is sitting just below even level 100.",
            "MAs are tightly clustered → coiled spring setup.",
        ]

    def test_needs_cluster(self):
        snapshot = ChartSnapshot(price=99.95, ma_fast=95.0, ma_slow=99.8)
        proposal, _ = _check(EvenBreakoutRule(), snapshot)
        assert proposal is None


# ── Reversals ────────────────────────────────────────────────────────────


class TestDoubleTopBottomRule:
    def test_double_top_put(self):
        context = _context(100.0, 105.0, 110.0, 104.0, 109.9, 103.0)
        proposal, notes = _check(DoubleTopBottomRule(), ChartSnapshot(price=104.3), context)
        assert proposal.direction == "put"
        assert proposal.entry == 104.0
        assert proposal.stop == pytest.approx(124.8)
        assert proposal.target == pytest.approx(101.17)
        assert "Double top" in notes[0]

    def test_double_bottom_call(self):
        context = _context(110.0, 104.0, 100.0, 106.0, 100.2, 107.0)
        proposal, _ = _check(DoubleTopBottomRule(), ChartSnapshot(price=101.4), context)
        assert proposal.direction == "call"
        assert proposal.entry == 102.0
        assert proposal.stop == pytest.approx(81.6)
        assert proposal.target == pytest.approx(104.44)

    def test_short_history(self):
        proposal, _ = _check(
            DoubleTopBottomRule(), ChartSnapshot(price=100.0), _context(100.0, 110.0, 110.0),
        )
        assert proposal is None


class TestRoundingSwingRule:
    def test_rounding_bottom_call(self):
        context = _context(110, 108, 106, 104, 102, 100, 101, 103, 105, 107)
        proposal, notes = _check(RoundingSwingRule(), ChartSnapshot(price=107.5), context)
        assert proposal.direction == "call"
        assert proposal.entry == 108.0
        assert proposal.stop == pytest.approx(91.8)
        assert proposal.target == pytest.approx(112.88, abs=0.01)
        assert notes[0].startswith("Rounding bottom")

    def test_rounding_top_put(self):
        context = _context(100, 102, 104, 106, 108, 110, 109, 107, 105, 103)
        proposal, _ = _check(RoundingSwingRule(), ChartSnapshot(price=102.6), context)
        assert proposal.direction == "put"
        assert proposal.entry == 102.0
        assert proposal.stop == pytest.approx(117.3)
        assert proposal.target == pytest.approx(97.47, abs=0.01)


# ── Breakdown short ──────────────────────────────────────────────────────


class TestBreakdownShortRule:
    def test_pressing_low_of_day(self):
        snapshot = ChartSnapshot(price=100.2, day_high=105.0, day_low=100.0)
        proposal, notes = _check(BreakdownShortRule(), snapshot)
        assert proposal.direction == "put"
        assert proposal.entry == 100.0
        assert proposal.stop == 102.0
        assert proposal.target == 95.0
        assert notes == ["Price is pressing the low of the day → breakdown risk."]

    def test_mid_range_silent(self):
        snapshot = ChartSnapshot(price=102.0, day_high=105.0, day_low=100.0)
        assert _check(BreakdownShortRule(), snapshot)[0] is None


# ── Evaluation wrapper ───────────────────────────────────────────────────


class TestEvaluateRule:
    def test_fault_captured(self):
        def boom(snapshot, notes, context):
            raise RuntimeError("kaput")

        outcome = evaluate_rule(FunctionRule("boom", boom), ChartSnapshot(), [], RuleContext())
        assert outcome == RuleOutcome(rule="boom", fault="RuntimeError: kaput")
        assert outcome.fired is False

    def test_wrong_return_type_is_fault(self):
        rule = FunctionRule("dict", lambda s, n, c: {"direction": "call"})
        outcome = evaluate_rule(rule, ChartSnapshot(), [], RuleContext())
        assert outcome.fault is not None
        assert "RuleProposal" in outcome.fault

    def test_no_proposal(self):
        outcome = evaluate_rule(
            FunctionRule("quiet", lambda s, n, c: None), ChartSnapshot(), [], RuleContext(),
        )
        assert outcome.fired is False
        assert outcome.fault is None


# ── Registry ─────────────────────────────────────────────────────────────


class TestRuleRegistry:
    def test_default_order(self):
        assert build_default_registry().names() == [
            "Bullish Flag Golden Play",
            "Basic MA Trend",
            "Even Number Breakout + MA Cluster",
            "Double Top / Bottom Reversal",
            "Rounding Bottom / Top Swing",
            "Breakdown Short",
        ]

    def test_append_only_order(self):
        registry = RuleRegistry()
        registry.register(FunctionRule("b", lambda s, n, c: None))
        registry.register(FunctionRule("a", lambda s, n, c: None))
        assert registry.names() == ["b", "a"]
        assert len(registry) == 2

    def test_duplicate_name_rejected(self):
        registry = RuleRegistry([FunctionRule("x", lambda s, n, c: None)])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(FunctionRule("x", lambda s, n, c: None))

    def test_non_rule_rejected(self):
        with pytest.raises(TypeError):
            RuleRegistry().register(object())

    def test_get(self):
        registry = build_default_registry()
        assert registry.get("Breakdown Short").name == "Breakdown Short"
        with pytest.raises(KeyError, match="Unknown rule"):
            registry.get("Head and Shoulders")
