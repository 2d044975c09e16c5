"""Options data models — contract candidates and the selector's plan."""

from dataclasses import dataclass, field
from typing import Literal, Optional

Moneyness = Literal["ITM", "ATM", "OTM"]


@dataclass(frozen=True)
class OptionCandidate:
    """One strike on the ladder around the entry."""

    label: str
    strike: float
    moneyness: Moneyness
    style_hint: str

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "strike": self.strike,
            "moneyness": self.moneyness,
            "style_hint": self.style_hint,
        }


@dataclass(frozen=True)
class OptionsPlan:
    """Contract guidance derived from a decision."""

    direction_text: str
    summary: str
    recommended: Optional[OptionCandidate] = None
    candidates: tuple[OptionCandidate, ...] = ()
    notes: tuple[str, ...] = ()
    bucket: Optional[str] = None
    chain: tuple[OptionCandidate, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "direction_text": self.direction_text,
            "summary": self.summary,
            "recommended": self.recommended.to_dict() if self.recommended else None,
            "candidates": [c.to_dict() for c in self.candidates],
            "notes": list(self.notes),
            "bucket": self.bucket,
            "chain": [c.to_dict() for c in self.chain],
        }
