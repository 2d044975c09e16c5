"""Chart text parser — OCR text in, ``ChartSnapshot`` out.

Best-effort regex extraction from broker chart screenshots (Webull-style
headers with ``H/L`` and ``MA20/MA50/MA200`` labels).  Never raises on
garbage input: fields it cannot find are left as ``None``.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from goldenchart.strategy.models import ChartSnapshot

_DASHES = re.compile(r"[–—]")
_JUNK = re.compile(r"[^0-9a-zA-Z.:\-/ %$+▲▼]")
_SPLIT_DIGITS = re.compile(r"(\d)\s+(\d)")
_WHITESPACE = re.compile(r"\s+")

_TICKER = re.compile(r"\b([A-Z]{1,6})\b")
_SIGNED_PRICE = re.compile(r"([0-9]+\.[0-9]+)\s*[+\-▲▼%]")
_FIRST_DECIMAL = re.compile(r"([0-9]+\.[0-9]+)")

_HIGH_LOW = (
    re.compile(r"H/L[^0-9]*([0-9]+\.[0-9]+)[^0-9]+([0-9]+\.[0-9]+)", re.IGNORECASE),
    re.compile(r"High[^0-9]*([0-9]+\.[0-9]+)[^0-9]+Low[^0-9]*([0-9]+\.[0-9]+)", re.IGNORECASE),
)

_MA = {
    "ma_fast": re.compile(r"MA ?20[: ]*([0-9]+\.[0-9]+)", re.IGNORECASE),
    "ma_slow": re.compile(r"MA ?50[: ]*([0-9]+\.[0-9]+)", re.IGNORECASE),
    "ma200": re.compile(r"MA ?200[: ]*([0-9]+\.[0-9]+)", re.IGNORECASE),
}

_IV = re.compile(r"IV[: ]*([0-9]{1,3}(?:\.[0-9])?)%", re.IGNORECASE)

# Uppercase words that show up in chart chrome but are never tickers
_NOT_TICKERS = frozenset({"H", "L", "HL", "MA", "IV", "VOL", "USD", "EMA", "SMA", "HIGH", "LOW"})


@dataclass(frozen=True)
class ParsedChart:
    """Parser output: the snapshot plus hints the core does not consume."""

    snapshot: ChartSnapshot
    iv: Optional[str] = None
    fields_found: tuple[str, ...] = field(default_factory=tuple)


def normalize_text(raw: Optional[str]) -> str:
    """Collapse whitespace, unify dashes, drop symbols and glue split digits."""
    text = _WHITESPACE.sub(" ", raw or "")
    text = _DASHES.sub("-", text)
    text = _JUNK.sub("", text)
    text = _SPLIT_DIGITS.sub(r"\1\2", text)
    return text.strip()


def _find_ticker(text: str) -> Optional[str]:
    for match in _TICKER.finditer(text):
        word = match.group(1)
        if word not in _NOT_TICKERS:
            return word
    return None


def _find_price(text: str, ticker: Optional[str]) -> Optional[float]:
    """Price next to the ticker, else before a change sign, else first decimal."""
    patterns = [_SIGNED_PRICE, _FIRST_DECIMAL]
    if ticker:
        patterns.insert(0, re.compile(rf"\b{re.escape(ticker)}\b[^0-9]*([0-9]+\.[0-9]+)"))
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return float(match.group(1))
    return None


def parse_chart_text(raw: Optional[str]) -> ParsedChart:
    """Extract ticker, price, day high/low, MAs and IV from OCR text."""
    text = normalize_text(raw)
    values: dict = {}

    ticker = _find_ticker(text)
    if ticker:
        values["ticker"] = ticker

    price = _find_price(text, ticker)
    if price is not None:
        values["price"] = price

    # Only labelled ranges; a bare "a - b" is usually "price -change"
    for pattern in _HIGH_LOW:
        match = pattern.search(text)
        if match and float(match.group(1)) >= float(match.group(2)):
            values["day_high"] = float(match.group(1))
            values["day_low"] = float(match.group(2))
            break

    for name, pattern in _MA.items():
        match = pattern.search(text)
        if match:
            values[name] = float(match.group(1))

    iv_match = _IV.search(text)
    iv = f"{iv_match.group(1)}%" if iv_match else None

    return ParsedChart(
        snapshot=ChartSnapshot(**values),
        iv=iv,
        fields_found=tuple(sorted(values)),
    )
