"""GoldenChart — application entry point.

Builds the FastAPI internal server and provides the CLI that analyzes a
chart from OCR text or a JSON snapshot.
"""

import json
import logging
import pathlib

from fastapi import FastAPI

from goldenchart.api.routers import router

app = FastAPI(title="GoldenChart Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("goldenchart")


def _load_json(path: str):
    return json.loads(pathlib.Path(path).read_text(encoding="utf-8"))


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv=None) -> int:
    """Parse CLI arguments and analyze one chart (or serve the API)."""
    import argparse

    from goldenchart.api.routers import configure_routers
    from goldenchart.cli.report import format_report
    from goldenchart.config import load_config
    from goldenchart.engine import DecisionEngine
    from goldenchart.narrative import build_narrative
    from goldenchart.options.selector import pick_options_contract
    from goldenchart.parsing import parse_chart_text
    from goldenchart.simulator import simulate_future
    from goldenchart.strategy.models import ChartSnapshot, HistoryPoint, RuleContext
    from goldenchart.strategy.registry import build_default_registry

    parser = argparse.ArgumentParser(description="GoldenChart trade-idea engine")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--text", help="File holding OCR text of a chart screenshot")
    source.add_argument("--snapshot", help="JSON file with price/dayHigh/dayLow/MA fields")
    parser.add_argument("--history", help="JSON file: list of prices or {price, maFast, maSlow}")
    parser.add_argument("--days", type=float, help="Days to option expiry")
    parser.add_argument("--ticker", help="Underlying symbol (overrides the parsed one)")
    parser.add_argument("--seed", type=int, help="Seed for the simulated path")
    parser.add_argument("--narrative", action="store_true", help="Print the long-form read")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a report")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API instead")
    args = parser.parse_args(argv)

    config = load_config()
    logging.basicConfig(
        level=config.log_level_value,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.serve:
        import uvicorn

        configure_routers(config)
        logger.info("API available at http://localhost:%d", config.api_port)
        uvicorn.run(app, host="0.0.0.0", port=config.api_port, log_level="info")
        return 0

    if not args.text and not args.snapshot:
        parser.error("one of --text, --snapshot or --serve is required")

    iv = None
    if args.text:
        parsed = parse_chart_text(pathlib.Path(args.text).read_text(encoding="utf-8"))
        snapshot, iv = parsed.snapshot, parsed.iv
        logger.info("Parsed fields: %s", ", ".join(parsed.fields_found) or "none")
    else:
        snapshot = ChartSnapshot.from_dict(_load_json(args.snapshot))

    context = RuleContext()
    if args.history:
        raw = _load_json(args.history)
        context = RuleContext(history=tuple(
            HistoryPoint.from_dict(p) if isinstance(p, dict) else HistoryPoint(price=float(p))
            for p in raw
        ))

    engine = DecisionEngine(
        build_default_registry(step_fn=config.step_fn, wait_pct=config.wait_pct)
    )
    decision = engine.decide(snapshot, context)
    days = args.days if args.days is not None else config.default_days_to_expiry
    plan = pick_options_contract(
        decision, days, ticker=args.ticker or snapshot.ticker, iv=iv, step_fn=config.step_fn,
    )
    path = list(simulate_future(snapshot, decision, steps=config.sim_steps, seed=args.seed))
    narrative = (
        build_narrative(snapshot, decision, context, step_fn=config.step_fn)
        if args.narrative else None
    )

    if args.json:
        print(json.dumps({
            "snapshot": snapshot.to_dict(),
            "decision": decision.to_dict(),
            "options": plan.to_dict(),
            "simulation": path,
            "narrative": narrative,
        }, indent=2))
    else:
        format_report(snapshot, decision, plan, path, narrative)
    return 0


def main() -> None:
    raise SystemExit(_run_cli())


if __name__ == "__main__":
    main()
