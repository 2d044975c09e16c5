"""Tests for the console report and the command-line entry point."""

import json

import pytest

from goldenchart.cli.report import format_report
from goldenchart.engine import decide_trade
from goldenchart.main import _run_cli
from goldenchart.options.selector import pick_options_contract
from goldenchart.strategy.models import ChartSnapshot, Decision

FLAG_SNAPSHOT = ChartSnapshot(
    price=110.0, day_high=112.0, day_low=100.0,
    ma_fast=109.0, ma_slow=109.2, ma200=109.5, ticker="ABC",
)


class TestFormatReport:
    def test_valid_decision(self, capsys):
        decision = decide_trade(FLAG_SNAPSHOT)
        plan = pick_options_contract(decision, 2, ticker="ABC")
        output = format_report(FLAG_SNAPSHOT, decision, plan, path=[110.5, 111.0])

        assert output == capsys.readouterr().out.rstrip("\n")
        assert "GoldenChart Analysis" in output
        assert "Decision:   CALL" in output
        assert "Entry:      110.00" in output
        assert "Rule:       Bullish Flag Golden Play" in output
        assert "Options:    CALL: expecting upside." in output
        assert "* ABC 111 CALL" in output
        assert "Simulated:  2 steps, last 111.00" in output

    def test_no_trade(self):
        decision = Decision.no_trade(["No rule fired → no simple trade."])
        output = format_report(ChartSnapshot(price=100.0), decision)
        assert "Decision:   NO TRADE" in output
        assert "Entry:" not in output
        assert "- No rule fired → no simple trade." in output
        assert "Ticker:     N/A" in output


class TestCli:
    def test_snapshot_json_output(self, tmp_path, capsys):
        snapshot_file = tmp_path / "chart.json"
        snapshot_file.write_text(json.dumps({
            "price": 110.0, "dayHigh": 112.0, "dayLow": 100.0,
            "maFast": 109.0, "maSlow": 109.2, "ma200": 109.5,
        }), encoding="utf-8")

        code = _run_cli(["--snapshot", str(snapshot_file), "--days", "15", "--seed", "3", "--json"])
        data = json.loads(capsys.readouterr().out)

        assert code == 0
        assert data["decision"]["rule"] == "Bullish Flag Golden Play"
        assert data["options"]["recommended"]["strike"] == 110.0
        assert data["narrative"] is None

    def test_text_report(self, tmp_path, capsys):
        text_file = tmp_path / "ocr.txt"
        text_file.write_text(
            "RIOT 14.52 +0.35 +2.47% H/L 14.80-13.90 MA20: 14.10 MA50: 13.95",
            encoding="utf-8",
        )
        assert _run_cli(["--text", str(text_file), "--narrative"]) == 0
        output = capsys.readouterr().out
        assert "Ticker:     RIOT" in output
        assert "GoldenChart Analysis" in output

    def test_history_file(self, tmp_path, capsys):
        snapshot_file = tmp_path / "chart.json"
        snapshot_file.write_text(
            json.dumps({"price": 104.3, "maFast": 105.0, "maSlow": 105.0}), encoding="utf-8",
        )
        history_file = tmp_path / "history.json"
        history_file.write_text(
            json.dumps([100.0, 105.0, 110.0, 104.0, 109.9, {"price": 103.0}]), encoding="utf-8",
        )
        _run_cli(["--snapshot", str(snapshot_file), "--history", str(history_file), "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["decision"]["direction"] == "put"

    def test_source_required(self):
        with pytest.raises(SystemExit):
            _run_cli([])
