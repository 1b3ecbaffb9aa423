# cortex/domain/scoring.py
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Any

BASE_SCORE = 50
MIN_SCORE = 20
MAX_SCORE = 100

PAID_CHANNELS = {"google", "facebook", "meta"}
ORGANIC_CHANNELS = {"organic", "direct"}


@dataclass(frozen=True)
class SubmissionSignals:
    company: str | None = None
    utm_source: str | None = None
    fbc: str | None = None
    fbp: str | None = None
    gclid: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SubmissionSignals":
        def _s(key: str) -> str | None:
            v = payload.get(key)
            return str(v) if v else None

        return cls(
            company=_s("company"),
            utm_source=_s("utm_source"),
            fbc=_s("fbc"),
            fbp=_s("fbp"),
            gclid=_s("gclid"),
        )


def base_score(signals: SubmissionSignals) -> int:
    """Deterministic part of the score (no noise, no clamp)."""
    score = BASE_SCORE

    if signals.company:
        score += 10

    if signals.utm_source:
        src = signals.utm_source.lower()
        if src in PAID_CHANNELS:
            score += 15
        elif src in ORGANIC_CHANNELS:
            score += 5

    # tracking pixels present
    if signals.fbc or signals.fbp:
        score += 10
    if signals.gclid:
        score += 10

    return score


def clamp_score(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, score))


def score_submission(signals: SubmissionSignals, rng: random.Random | None = None) -> int:
    """
    Propensity score in [20, 100].

    Adds an integer perturbation in [-10, +10) on top of the rule-based score.
    Pass a seeded ``random.Random`` to make it reproducible.
    """
    r = (rng or random).random()
    noise = math.floor(r * 20) - 10
    return clamp_score(base_score(signals) + noise)
