"""
Numeric helpers shared by the aggregator and the simulation engine.

Bad numeric input never raises here. Coercions report whether the value was
defaulted so callers and tests can tell the fallback path from real data.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Coerced:
    value: int
    defaulted: bool = False


def coerce_quantity(raw: Any) -> Coerced:
    """Interpret a stored quantity as a non-negative integer; anything else is 0."""
    if raw is None or isinstance(raw, bool):
        return Coerced(0, defaulted=True)
    if isinstance(raw, (int, float)):
        number = float(raw)
    else:
        text = str(raw).strip().replace(",", "")
        if not text:
            return Coerced(0, defaulted=True)
        try:
            number = float(text)
        except ValueError:
            return Coerced(0, defaulted=True)
    if not math.isfinite(number) or number < 0:
        return Coerced(0, defaulted=True)
    return Coerced(int(number))


def finite_or_zero(value: Number) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def safe_div(numerator: Number, denominator: Number) -> float:
    """Division that yields 0 for a zero, negative or non-finite denominator."""
    num = finite_or_zero(numerator)
    den = finite_or_zero(denominator)
    if den <= 0:
        return 0.0
    return finite_or_zero(num / den)


def clean(value: Number, ndigits: int = 2) -> float:
    """Clamp NaN/inf to zero and round for storage."""
    return round(finite_or_zero(value), ndigits)


__all__ = ["Coerced", "clean", "coerce_quantity", "finite_or_zero", "safe_div"]
