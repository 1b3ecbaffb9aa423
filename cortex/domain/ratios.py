# cortex/domain/ratios.py
"""Zero-safe ratio helpers. Every division in the reports goes through these."""
from __future__ import annotations

import math


def ratio(num: float, den: float) -> float:
    return num / den if den else 0.0


def pct(num: float, den: float) -> float:
    return ratio(num, den) * 100.0


def cpl(spend: float, leads: int) -> float:
    return ratio(spend, leads)


def roi(revenue: float, spend: float) -> float:
    return pct(revenue - spend, spend)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))
