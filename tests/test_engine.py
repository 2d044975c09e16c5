"""Tests for the decision engine orchestration.

Verifies the first-match-wins walk over the registry, the audit-trail
notes, fault isolation and the insufficient-data gate.
"""

import logging

import pytest

from goldenchart.engine import NO_TRADE_NOTE, DecisionEngine, decide_trade
from goldenchart.strategy.base import FunctionRule
from goldenchart.strategy.detectors import FLAG_NOTES
from goldenchart.strategy.flag_play import BullishFlagRule
from goldenchart.strategy.ma_trend import MATrendRule
from goldenchart.strategy.models import ChartSnapshot, Decision, RuleContext, RuleProposal
from goldenchart.strategy.registry import RuleRegistry, build_default_registry


# ── Helpers ──────────────────────────────────────────────────────────────


def _flag_snapshot(**overrides) -> ChartSnapshot:
    values = dict(
        price=110.0, day_high=112.0, day_low=100.0,
        ma_fast=109.0, ma_slow=109.2, ma200=109.5,
    )
    values.update(overrides)
    return ChartSnapshot(**values)


def _raising(snapshot, notes, context):
    raise ZeroDivisionError("division by zero")


ALL_RULES = build_default_registry().names()


# ── Engine ───────────────────────────────────────────────────────────────


class TestDecisionEngine:
    def test_flag_decision_notes(self):
        decision = decide_trade(_flag_snapshot())
        assert decision.valid is True
        assert decision.direction == "call"
        assert (decision.entry, decision.stop, decision.target) == (110.0, 88.0, 118.0)
        assert decision.wait is False
        assert decision.rule == "Bullish Flag Golden Play"
        assert list(decision.notes) == [
            "Checking rule: Bullish Flag Golden Play",
            *FLAG_NOTES,
            "MAs are tightly clustered → strong consolidation before move.",
            "Rule fired: Bullish Flag Golden Play",
        ]

    def test_no_rule_fires(self):
        decision = decide_trade(ChartSnapshot(price=100.0, ma_fast=100.0, ma_slow=100.0))
        assert decision == Decision.no_trade(
            [f"Checking rule: {name}" for name in ALL_RULES] + [NO_TRADE_NOTE]
        )
        assert decision.entry is None
        assert decision.wait is True

    def test_first_match_wins(self):
        # Both the flag and the MA trend rule fire on this snapshot
        snapshot = _flag_snapshot(ma_fast=109.2, ma_slow=109.0)
        assert decide_trade(snapshot).rule == "Bullish Flag Golden Play"

        reordered = RuleRegistry([MATrendRule(), BullishFlagRule()])
        assert decide_trade(snapshot, registry=reordered).rule == "Basic MA Trend"

    def test_later_rules_not_checked_after_fire(self):
        decision = decide_trade(_flag_snapshot())
        checked = [n for n in decision.notes if n.startswith("Checking rule:")]
        assert checked == ["Checking rule: Bullish Flag Golden Play"]

    def test_deterministic(self):
        engine = DecisionEngine(build_default_registry())
        assert engine.decide(_flag_snapshot()) == engine.decide(_flag_snapshot())

    def test_deterministic_with_history(self):
        engine = DecisionEngine(build_default_registry())
        snapshot = ChartSnapshot(price=104.3, ma_fast=105.0, ma_slow=105.0)
        context = RuleContext.from_prices([100.0, 105.0, 110.0, 104.0, 109.9, 103.0])
        first = engine.decide(snapshot, context)
        assert first.rule == "Double Top / Bottom Reversal"
        assert engine.decide(snapshot, context) == first


class TestFaultIsolation:
    def test_faulty_rule_skipped(self, caplog):
        registry = RuleRegistry([FunctionRule("Broken", _raising), BullishFlagRule()])
        with caplog.at_level(logging.ERROR, logger="goldenchart"):
            decision = DecisionEngine(registry).decide(_flag_snapshot())

        assert decision.valid is True
        assert decision.rule == "Bullish Flag Golden Play"
        assert decision.notes[:2] == (
            "Checking rule: Broken",
            "Rule error: Broken → ZeroDivisionError: division by zero",
        )
        assert "Broken" in caplog.text

    def test_all_rules_faulty(self):
        registry = RuleRegistry([FunctionRule("Broken", _raising)])
        decision = DecisionEngine(registry).decide(_flag_snapshot())
        assert decision.valid is False
        assert decision.notes[-1] == NO_TRADE_NOTE

    def test_bad_return_type_is_fault(self):
        registry = RuleRegistry([FunctionRule("Sloppy", lambda s, n, c: "call")])
        decision = DecisionEngine(registry).decide(_flag_snapshot())
        assert decision.valid is False
        assert decision.notes[1].startswith("Rule error: Sloppy → returned str")


class TestInsufficientData:
    @pytest.mark.parametrize(
        "snapshot",
        [
            ChartSnapshot(),
            ChartSnapshot(price=100.0),
            ChartSnapshot(ma_fast=100.0, ma_slow=99.0),
            ChartSnapshot(price=float("nan"), ma_fast=100.0, ma_slow=99.0),
        ],
    )
    def test_missing_fields_no_trade(self, snapshot):
        decision = decide_trade(snapshot)
        assert decision.valid is False
        assert decision.direction == "none"
        assert decision.entry is None and decision.stop is None and decision.target is None
        assert decision.notes[0].startswith("Insufficient data: missing")
        assert decision.notes[-1] == NO_TRADE_NOTE

    def test_missing_fields_named(self):
        decision = decide_trade(ChartSnapshot(price=100.0))
        assert decision.notes[0] == (
            "Insufficient data: missing ma_fast, ma_slow → rules skipped."
        )

    def test_custom_required_fields(self):
        registry = RuleRegistry([
            FunctionRule("Always", lambda s, n, c: RuleProposal("call", 1.0, 0.8, 1.2)),
        ])
        engine = DecisionEngine(registry, required_fields=())
        assert engine.decide(ChartSnapshot()).valid is True


class TestDecisionSerialisation:
    def test_round_trip_valid(self):
        decision = decide_trade(_flag_snapshot())
        assert Decision.from_dict(decision.to_dict()) == decision

    def test_blank_fields_on_invalid(self):
        decision = Decision.from_dict(
            {"valid": False, "direction": "none", "entry": "", "stop": "", "target": "",
             "wait": True, "notes": ["x"]}
        )
        assert decision.entry is None
        assert decision.notes == ("x",)

    def test_valid_decision_bad_direction(self):
        with pytest.raises(ValueError, match="direction"):
            Decision.from_dict({"valid": True, "direction": "sideways", "entry": 1})


class TestDegenerateLevels:
    def test_sub_step_price_is_no_trade(self):
        # 0.03 rounds down to 0.0 on the 0.05 grid
        snapshot = ChartSnapshot(
            price=0.03, day_high=0.05, day_low=0.02, ma_fast=0.04, ma_slow=0.045,
        )
        decision = decide_trade(snapshot)
        assert decision.valid is False
        assert (
            "Insufficient data: Basic MA Trend produced a non-positive entry, "
            "stop or target → rule skipped."
        ) in decision.notes
        assert decision.notes[-1] == NO_TRADE_NOTE

    def test_later_rule_still_fires(self):
        registry = RuleRegistry([
            FunctionRule("Negative", lambda s, n, c: RuleProposal("put", 1.0, 1.2, -0.5)),
            BullishFlagRule(),
        ])
        decision = DecisionEngine(registry).decide(_flag_snapshot())
        assert decision.valid is True
        assert decision.rule == "Bullish Flag Golden Play"
        assert not any(n == "Rule fired: Negative" for n in decision.notes)
