"""Chart structure detectors — pure functions, no I/O.

Each detector inspects a ``ChartSnapshot`` and/or an oldest-first history
and returns a small frozen record.  Detectors never raise on bad input:
missing or degenerate data yields an explicit "no signal" record with
``False`` flags and ``None`` values.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from goldenchart.strategy.grid import StepFunction, dynamic_step, nearest_increment
from goldenchart.strategy.models import ChartSnapshot, HistoryPoint


# ── Thresholds ───────────────────────────────────────────────────────────
# Fractions of price unless noted otherwise.

FLAG_MIN_RANGE_POSITION = 0.6   # top 40% of today's range
FLAG_MA_PAIR_TOLERANCE = 0.01
FLAG_MA_TRIO_TOLERANCE = 0.02
EVEN_PROXIMITY = 0.2            # fraction of one grid step
MA_CLUSTER_TOLERANCE = 0.015
SHARP_MOVE_PCT = 0.01
SR_TOLERANCE_FACTOR = 0.2       # percent of average price
SR_MIN_HITS = 3
DOUBLE_TOLERANCE_FACTOR = 0.3   # percent of average price

FLAG_NOTES = (
    "Price is holding in the upper part of today’s range.",
    "Price is above both fast and slow moving averages.",
    "Fast and slow MAs are tight → consolidation.",
    "20 / 50 / 200 MAs are clustered → strong trend.",
    "Bullish flag golden play detected.",
)


# ── Result records ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class BullFlag:
    is_flag: bool
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class EvenProximity:
    """Distance from price to the nearest round level on the grid."""

    nearest: Optional[float]
    diff: Optional[float]
    step: Optional[float]
    is_near: bool = False
    is_just_above: bool = False
    is_just_below: bool = False


@dataclass(frozen=True)
class MACluster:
    clustered: bool
    spread: Optional[float] = None
    max: Optional[float] = None
    min: Optional[float] = None


@dataclass(frozen=True)
class MASlope:
    """Last-step deltas of price and moving averages.

    Flags are all ``False`` when fewer than three points are available.
    """

    slope_fast: Optional[float] = None
    slope_slow: Optional[float] = None
    slope_price: Optional[float] = None
    fast_up: bool = False
    fast_down: bool = False
    slow_up: bool = False
    slow_down: bool = False
    price_up: bool = False
    price_down: bool = False
    sharp_move: bool = False

    @property
    def available(self) -> bool:
        return self.slope_price is not None


@dataclass(frozen=True)
class PriceLevel:
    level: float
    hits: int


@dataclass(frozen=True)
class SupportResistance:
    supports: tuple[PriceLevel, ...] = ()
    resistances: tuple[PriceLevel, ...] = ()


@dataclass(frozen=True)
class Breakout:
    kind: str  # "breakout" or "breakdown"
    level: float


@dataclass(frozen=True)
class DoubleTopBottom:
    double_top: bool = False
    double_bottom: bool = False
    max: Optional[float] = None
    min: Optional[float] = None


@dataclass(frozen=True)
class Rounding:
    rounding_bottom: bool = False
    rounding_top: bool = False


# ── Helpers ──────────────────────────────────────────────────────────────


def _prices(history: Optional[Sequence[HistoryPoint]]) -> list[float]:
    if not history:
        return []
    out: list[float] = []
    for point in history:
        price = getattr(point, "price", None)
        if price is not None and math.isfinite(price):
            out.append(float(price))
    return out


def _tolerance_from_average(prices: list[float], factor_pct: float, fallback: float) -> float:
    avg = sum(prices) / len(prices)
    tolerance = avg * (factor_pct / 100)
    return tolerance if tolerance > 0 else fallback


# ── Detectors ────────────────────────────────────────────────────────────


def detect_bull_flag(
    snapshot: ChartSnapshot,
    min_range_position: float = FLAG_MIN_RANGE_POSITION,
    ma_pair_tolerance: float = FLAG_MA_PAIR_TOLERANCE,
    ma_trio_tolerance: float = FLAG_MA_TRIO_TOLERANCE,
) -> BullFlag:
    """Detect a bullish flag: consolidation near highs with tight MAs.

    All conditions must hold, checked in this order:

    1. Price sits at or above *min_range_position* of today's range.
    2. Price is above both the fast and the slow MA.
    3. |fast − slow| ≤ *ma_pair_tolerance* × price.
    4. If MA200 is known, the spread of all three MAs ≤
       *ma_trio_tolerance* × price.

    Each passed condition appends its note, so a rejection still returns
    the notes gathered up to that point.
    """
    s = snapshot
    if s.missing("price", "day_high", "day_low", "ma_fast", "ma_slow"):
        return BullFlag(is_flag=False)

    notes: list[str] = []
    day_range = s.day_high - s.day_low
    if day_range <= 0:
        return BullFlag(is_flag=False)

    position = (s.price - s.day_low) / day_range
    if position < min_range_position:
        return BullFlag(is_flag=False, notes=tuple(notes))
    notes.append(FLAG_NOTES[0])

    if not (s.price > s.ma_fast and s.price > s.ma_slow):
        return BullFlag(is_flag=False, notes=tuple(notes))
    notes.append(FLAG_NOTES[1])

    if abs(s.ma_fast - s.ma_slow) > s.price * ma_pair_tolerance:
        return BullFlag(is_flag=False, notes=tuple(notes))
    notes.append(FLAG_NOTES[2])

    if s.ma200 is not None:
        trio = (s.ma_fast, s.ma_slow, s.ma200)
        if max(trio) - min(trio) > s.price * ma_trio_tolerance:
            return BullFlag(is_flag=False, notes=tuple(notes))
        notes.append(FLAG_NOTES[3])

    notes.append(FLAG_NOTES[4])
    return BullFlag(is_flag=True, notes=tuple(notes))


def detect_even_proximity(
    price: Optional[float],
    step_fn: StepFunction = dynamic_step,
    proximity: float = EVEN_PROXIMITY,
) -> EvenProximity:
    """Report how close *price* sits to the nearest round level.

    "Near" means within *proximity* × one grid step.
    """
    if price is None or price <= 0:
        return EvenProximity(nearest=None, diff=None, step=None)

    step = step_fn(price)
    nearest = nearest_increment(price, lambda _p: step)
    diff = round(price - nearest, 10)
    near = abs(diff) <= step * proximity
    return EvenProximity(
        nearest=nearest,
        diff=diff,
        step=step,
        is_near=near,
        is_just_above=near and diff > 0,
        is_just_below=near and diff < 0,
    )


def detect_ma_cluster(
    snapshot: ChartSnapshot,
    tolerance: float = MA_CLUSTER_TOLERANCE,
) -> MACluster:
    """Check whether the known moving averages are bunched together.

    Needs at least two of MA20/MA50/MA200 and a nonzero price.
    """
    values = [v for v in (snapshot.ma_fast, snapshot.ma_slow, snapshot.ma200) if v is not None]
    if len(values) < 2 or not snapshot.price:
        return MACluster(clustered=False)

    hi = max(values)
    lo = min(values)
    spread = hi - lo
    return MACluster(
        clustered=spread <= abs(snapshot.price) * tolerance,
        spread=spread,
        max=hi,
        min=lo,
    )


def detect_ma_slope(
    history: Optional[Sequence[HistoryPoint]],
    sharp_move_pct: float = SHARP_MOVE_PCT,
) -> MASlope:
    """Compare the last two history points for slope and sharp moves."""
    if not history or len(history) < 3:
        return MASlope()

    last = history[-1]
    prev = history[-2]

    def _delta(a: Optional[float], b: Optional[float]) -> Optional[float]:
        if a is None or b is None:
            return None
        return a - b

    slope_fast = _delta(last.ma_fast, prev.ma_fast)
    slope_slow = _delta(last.ma_slow, prev.ma_slow)
    slope_price = _delta(last.price, prev.price)
    if slope_price is None:
        return MASlope()

    return MASlope(
        slope_fast=slope_fast,
        slope_slow=slope_slow,
        slope_price=slope_price,
        fast_up=slope_fast is not None and slope_fast > 0,
        fast_down=slope_fast is not None and slope_fast < 0,
        slow_up=slope_slow is not None and slope_slow > 0,
        slow_down=slope_slow is not None and slope_slow < 0,
        price_up=slope_price > 0,
        price_down=slope_price < 0,
        sharp_move=abs(slope_price) > abs(last.price) * sharp_move_pct,
    )


def detect_support_resistance(
    history: Optional[Sequence[HistoryPoint]],
    tolerance_factor: float = SR_TOLERANCE_FACTOR,
    min_hits: int = SR_MIN_HITS,
) -> SupportResistance:
    """Bin historical prices into levels and keep the frequently hit ones.

    Bin width is *tolerance_factor* percent of the average price.  Both
    ``supports`` and ``resistances`` carry the same set of strong levels;
    the caller decides which role a level plays relative to current price.
    """
    prices = _prices(history)
    if not prices:
        return SupportResistance()

    tolerance = _tolerance_from_average(prices, tolerance_factor, fallback=0.2)
    hits: dict[float, int] = {}
    for price in prices:
        key = round(round(price / tolerance) * tolerance, 6)
        hits[key] = hits.get(key, 0) + 1

    strong = tuple(
        PriceLevel(level=level, hits=count)
        for level, count in hits.items()
        if count >= min_hits
    )
    return SupportResistance(supports=strong, resistances=strong)


def detect_breakout(
    price: Optional[float],
    supports: Sequence[PriceLevel],
    resistances: Sequence[PriceLevel],
) -> Optional[Breakout]:
    """Flag price trading beyond a strong level.

    Resistances are scanned first, then supports; the last level crossed
    wins, so a breakdown overrides a breakout when both apply.
    """
    if not price:
        return None

    result: Optional[Breakout] = None
    for r in resistances:
        if price > r.level:
            result = Breakout(kind="breakout", level=r.level)
    for s in supports:
        if price < s.level:
            result = Breakout(kind="breakdown", level=s.level)
    return result


def detect_double_top_bottom(
    history: Optional[Sequence[HistoryPoint]],
    tolerance_factor: float = DOUBLE_TOLERANCE_FACTOR,
) -> DoubleTopBottom:
    """Detect two or more touches of the series high (or low).

    Needs at least five prices.  Tolerance is *tolerance_factor* percent
    of the average price.
    """
    prices = _prices(history)
    if len(prices) < 5:
        return DoubleTopBottom()

    hi = max(prices)
    lo = min(prices)
    if hi == lo:
        # Flat series: every point "touches" both extremes
        return DoubleTopBottom(max=hi, min=lo)
    tolerance = _tolerance_from_average(prices, tolerance_factor, fallback=0.3)

    top_hits = sum(1 for p in prices if abs(p - hi) <= tolerance)
    bottom_hits = sum(1 for p in prices if abs(p - lo) <= tolerance)
    return DoubleTopBottom(
        double_top=top_hits >= 2,
        double_bottom=bottom_hits >= 2,
        max=hi,
        min=lo,
    )


def detect_rounding(history: Optional[Sequence[HistoryPoint]]) -> Rounding:
    """Coarse rounding top/bottom check from first, middle and last price.

    Needs at least ten prices.  Not a curve fit.
    """
    prices = _prices(history)
    if len(prices) < 10:
        return Rounding()

    left = prices[0]
    center = prices[len(prices) // 2]
    right = prices[-1]
    return Rounding(
        rounding_bottom=center < left and center < right,
        rounding_top=center > left and center > right,
    )
