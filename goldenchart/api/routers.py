"""Internal API routers — /rules, /analyze, /options endpoints.

No business logic. Delegates to the parser, decision engine, simulator
and options selector.
"""

import logging
from typing import Optional

from fastapi import APIRouter

from goldenchart.config import Config
from goldenchart.engine import DecisionEngine
from goldenchart.narrative import build_narrative
from goldenchart.options.selector import pick_options_contract
from goldenchart.parsing import parse_chart_text
from goldenchart.simulator import DEFAULT_STEPS, simulate_future
from goldenchart.strategy.base import DEFAULT_WAIT_PCT
from goldenchart.strategy.grid import StepFunction, dynamic_step
from goldenchart.strategy.models import ChartSnapshot, Decision, HistoryPoint, RuleContext
from goldenchart.strategy.registry import RuleRegistry, build_default_registry

logger = logging.getLogger("goldenchart")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_engine: Optional[DecisionEngine] = None
_step_fn: StepFunction = dynamic_step
_sim_steps: int = DEFAULT_STEPS
_default_dte: Optional[float] = None


def configure_routers(
    config: Optional[Config] = None,
    registry: Optional[RuleRegistry] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        config: Loaded ``Config``; defaults apply when omitted.
        registry: Rules to evaluate.  Built from *config* when omitted.
    """
    global _engine, _step_fn, _sim_steps, _default_dte  # noqa: PLW0603
    step_fn = config.step_fn if config else dynamic_step
    wait_pct = config.wait_pct if config else DEFAULT_WAIT_PCT
    if registry is None:
        registry = build_default_registry(step_fn=step_fn, wait_pct=wait_pct)
    _engine = DecisionEngine(registry)
    _step_fn = step_fn
    _sim_steps = config.sim_steps if config else DEFAULT_STEPS
    _default_dte = config.default_days_to_expiry if config else None


def _get_engine() -> DecisionEngine:
    if _engine is None:
        configure_routers()
    return _engine


def _parse_days(body: dict, errors: list[str]) -> Optional[float]:
    raw = body.get("days_to_expiry", _default_dte)
    if raw is None:
        return None
    try:
        days = float(raw)
    except (TypeError, ValueError):
        errors.append("days_to_expiry must be a number")
        return None
    if days < 0:
        errors.append("days_to_expiry must be >= 0")
        return None
    return days


def _parse_history(body: dict, errors: list[str]) -> RuleContext:
    points = []
    for i, item in enumerate(body.get("history") or []):
        try:
            if isinstance(item, dict):
                points.append(HistoryPoint.from_dict(item))
            else:
                points.append(HistoryPoint(price=float(item)))
        except (KeyError, TypeError, ValueError):
            errors.append(f"history[{i}] must be a number or an object with a price")
    return RuleContext(history=tuple(points))


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/rules")
async def get_rules():
    """Return rule names in evaluation order."""
    return {"rules": _get_engine().registry.names()}


@router.post("/analyze")
async def post_analyze(body: dict):
    """Decide on one chart.

    Accepts either ``snapshot`` (numeric fields) or ``text`` (OCR output),
    plus optional ``history``, ``days_to_expiry``, ``ticker``, ``seed``
    and ``ocr_confidence``.
    """
    errors: list[str] = []
    iv = body.get("iv")

    if "snapshot" in body:
        if not isinstance(body["snapshot"], dict):
            errors.append("snapshot must be an object")
            snapshot = ChartSnapshot()
        else:
            snapshot = ChartSnapshot.from_dict(body["snapshot"])
    elif "text" in body:
        parsed = parse_chart_text(str(body["text"]))
        snapshot = parsed.snapshot
        iv = iv or parsed.iv
    else:
        errors.append("body needs either 'snapshot' or 'text'")
        snapshot = ChartSnapshot()

    context = _parse_history(body, errors)
    days = _parse_days(body, errors)
    seed = body.get("seed")
    if seed is not None and not isinstance(seed, int):
        errors.append("seed must be an integer")
    ocr_confidence = body.get("ocr_confidence")
    if ocr_confidence is not None and not isinstance(ocr_confidence, (int, float)):
        errors.append("ocr_confidence must be a number")
    if errors:
        return {"status": "error", "errors": errors}

    decision = _get_engine().decide(snapshot, context)
    ticker = body.get("ticker") or snapshot.ticker
    plan = pick_options_contract(decision, days, ticker=ticker, iv=iv, step_fn=_step_fn)
    path = list(simulate_future(snapshot, decision, steps=_sim_steps, seed=seed))
    narrative = build_narrative(
        snapshot, decision, context, ocr_confidence=ocr_confidence, step_fn=_step_fn,
    )

    logger.info(
        "Analyzed %s: %s", snapshot.ticker or "chart",
        decision.direction if decision.valid else "no trade",
    )
    return {
        "status": "ok",
        "snapshot": snapshot.to_dict(),
        "decision": decision.to_dict(),
        "options": plan.to_dict(),
        "simulation": path,
        "narrative": narrative,
    }


@router.post("/options")
async def post_options(body: dict):
    """Re-run the options selector on a persisted decision.

    Used when the user changes the expiry after the chart was analyzed.
    """
    errors: list[str] = []
    raw = body.get("decision")
    decision = None
    if not isinstance(raw, dict):
        errors.append("decision must be an object")
    else:
        try:
            decision = Decision.from_dict(raw)
        except ValueError as exc:
            errors.append(str(exc))
    days = _parse_days(body, errors)
    if errors:
        return {"status": "error", "errors": errors}

    try:
        plan = pick_options_contract(
            decision, days, ticker=body.get("ticker"), iv=body.get("iv"), step_fn=_step_fn,
        )
    except ValueError as exc:
        return {"status": "error", "errors": [str(exc)]}
    return {"status": "ok", "options": plan.to_dict()}
