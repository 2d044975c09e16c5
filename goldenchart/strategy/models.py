"""Chart data models — typed records flowing between parser, rules and display."""

import math
from dataclasses import dataclass, field, fields
from typing import Literal, Optional

Direction = Literal["call", "put"]


def _finite(value) -> Optional[float]:
    """Coerce *value* to a finite float, or ``None`` when it is absent or junk."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


# Accepted external spellings → field name
_SNAPSHOT_ALIASES: dict[str, str] = {
    "dayHigh": "day_high",
    "dayLow": "day_low",
    "maFast": "ma_fast",
    "maSlow": "ma_slow",
    "ma20": "ma_fast",
    "ma50": "ma_slow",
}


@dataclass(frozen=True)
class ChartSnapshot:
    """Numeric read of one chart screenshot.

    Every field is independently optional.  Non-finite numbers are stored
    as ``None`` so downstream code can treat "missing" uniformly.
    """

    price: Optional[float] = None
    day_high: Optional[float] = None
    day_low: Optional[float] = None
    ma_fast: Optional[float] = None  # MA20
    ma_slow: Optional[float] = None  # MA50
    ma200: Optional[float] = None
    ticker: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("price", "day_high", "day_low", "ma_fast", "ma_slow", "ma200"):
            object.__setattr__(self, name, _finite(getattr(self, name)))
        ticker = self.ticker.strip().upper() if isinstance(self.ticker, str) else None
        object.__setattr__(self, "ticker", ticker or None)

    @property
    def day_range(self) -> Optional[float]:
        """Today's high − low, or ``None`` when either end is missing."""
        if self.day_high is None or self.day_low is None:
            return None
        return self.day_high - self.day_low

    def missing(self, *names: str) -> list[str]:
        """Return the subset of *names* whose values are absent."""
        return [n for n in names if getattr(self, n) is None]

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict) -> "ChartSnapshot":
        """Build a snapshot from a JSON-style dict (snake or camel case keys)."""
        known = {f.name for f in fields(cls)}
        kwargs: dict = {}
        for key, value in (data or {}).items():
            name = _SNAPSHOT_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class HistoryPoint:
    """One historical observation, oldest-first in a sequence."""

    price: float
    ma_fast: Optional[float] = None
    ma_slow: Optional[float] = None

    def __post_init__(self) -> None:
        price = _finite(self.price)
        if price is None:
            raise ValueError(f"history price must be a finite number, got {self.price!r}")
        object.__setattr__(self, "price", price)
        object.__setattr__(self, "ma_fast", _finite(self.ma_fast))
        object.__setattr__(self, "ma_slow", _finite(self.ma_slow))

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryPoint":
        return cls(
            price=data["price"],
            ma_fast=_finite(data.get("ma_fast", data.get("maFast"))),
            ma_slow=_finite(data.get("ma_slow", data.get("maSlow"))),
        )


@dataclass(frozen=True)
class RuleContext:
    """Extra temporal context handed to every rule."""

    history: tuple[HistoryPoint, ...] = ()

    @classmethod
    def from_prices(cls, prices) -> "RuleContext":
        return cls(history=tuple(HistoryPoint(price=p) for p in prices))


@dataclass(frozen=True)
class RuleProposal:
    """A trade idea returned by a rule that fired."""

    direction: Direction
    entry: float
    stop: float
    target: float
    wait: bool = False

    def __post_init__(self) -> None:
        if self.direction not in ("call", "put"):
            raise ValueError(
                f"direction must be 'call' or 'put', got '{self.direction}'"
            )


@dataclass(frozen=True)
class Decision:
    """Outcome of one decision-engine run.

    ``notes`` is the audit trail: one ``Checking rule`` entry per rule
    considered plus whatever the rules and detectors reported.
    """

    valid: bool
    direction: Literal["call", "put", "none"]
    entry: Optional[float]
    stop: Optional[float]
    target: Optional[float]
    wait: bool
    notes: tuple[str, ...] = field(default_factory=tuple)
    rule: Optional[str] = None

    @classmethod
    def no_trade(cls, notes) -> "Decision":
        return cls(
            valid=False,
            direction="none",
            entry=None,
            stop=None,
            target=None,
            wait=True,
            notes=tuple(notes),
        )

    @classmethod
    def from_proposal(cls, proposal: RuleProposal, notes, rule: str) -> "Decision":
        return cls(
            valid=True,
            direction=proposal.direction,
            entry=proposal.entry,
            stop=proposal.stop,
            target=proposal.target,
            wait=bool(proposal.wait),
            notes=tuple(notes),
            rule=rule,
        )

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "direction": self.direction,
            "entry": self.entry,
            "stop": self.stop,
            "target": self.target,
            "wait": self.wait,
            "notes": list(self.notes),
            "rule": self.rule,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Decision":
        """Rebuild a persisted decision.  Blank price fields become ``None``."""
        valid = bool(data.get("valid", False))
        notes = tuple(str(n) for n in data.get("notes") or ())
        if not valid:
            return cls.no_trade(notes)
        direction = data.get("direction")
        if direction not in ("call", "put"):
            raise ValueError(
                f"valid decision needs direction 'call' or 'put', got '{direction}'"
            )
        return cls(
            valid=True,
            direction=direction,
            entry=_finite(data.get("entry")),
            stop=_finite(data.get("stop")),
            target=_finite(data.get("target")),
            wait=bool(data.get("wait", False)),
            notes=notes,
            rule=data.get("rule"),
        )
