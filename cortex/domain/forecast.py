# cortex/domain/forecast.py
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Sequence

from .ratios import round_half_up

JITTER_FRACTION = 0.15
LOWER_BAND = 0.7
UPPER_BAND = 1.3


@dataclass(frozen=True)
class ForecastPoint:
    date: date
    predicted: int
    lower: int
    upper: int


def mean_daily(counts: Sequence[int]) -> float:
    return sum(counts) / len(counts) if counts else 0.0


def project_forecast(
    counts: Sequence[int],
    start: date,
    horizon: int,
    rng: random.Random | None = None,
) -> tuple[float, list[ForecastPoint]]:
    """
    Naive projection: every future day is the historical mean.

    With an rng, each day wobbles uniformly in [-15%, +15%) of the mean.
    Without one the output is fully deterministic. The band is a fixed
    0.7x / 1.3x of the predicted value, not a statistical interval.
    """
    mean = mean_daily(counts)
    points: list[ForecastPoint] = []
    for i in range(1, horizon + 1):
        noise = 0.0
        if rng is not None:
            noise = (rng.random() - 0.5) * mean * (2 * JITTER_FRACTION)
        predicted = max(0, round_half_up(mean + noise))
        points.append(
            ForecastPoint(
                date=start + timedelta(days=i),
                predicted=predicted,
                lower=max(0, round_half_up(predicted * LOWER_BAND)),
                upper=round_half_up(predicted * UPPER_BAND),
            )
        )
    return mean, points
