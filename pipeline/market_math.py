"""Prediction market domain calculations.

Binary-market helpers shared by the classifier, ranker and normalizer:
- Implied probability from price
- Dollar-denominated contract prices to probability
- Competitiveness (distance from a 50/50 market)
"""

from __future__ import annotations

from typing import Optional

# Kalshi-style contracts settle at $1.00
CONTRACT_FACE_VALUE = 1.0


def implied_probability(price: Optional[float]) -> float:
    """Clamp a market price into a probability in [0, 1].

    In an efficient binary market the YES price is the implied probability:
    a YES price of $0.65 implies a 65% chance. Missing prices read as 0.
    """
    if price is None:
        return 0.0
    return max(0.0, min(1.0, price))


def dollar_price_to_probability(price_dollars: float,
                                face_value: float = CONTRACT_FACE_VALUE) -> float:
    """Convert a per-contract dollar price into a probability.

    Only needed where probability semantics are wanted; notional math keeps
    the raw dollar price.
    """
    if face_value <= 0:
        return 0.0
    return implied_probability(price_dollars / face_value)


def competitiveness(yes_price: Optional[float]) -> float:
    """Distance of the YES price from even odds, in percentage points.

    0 is a coin flip; 50 is a settled market. Smaller is more competitive.
    """
    return abs(implied_probability(yes_price) * 100 - 50)


def to_percent(fraction: Optional[float], digits: int = 1) -> float:
    """Presentation helper: 0.653 -> 65.3."""
    if fraction is None:
        return 0.0
    return round(fraction * 100, digits)
