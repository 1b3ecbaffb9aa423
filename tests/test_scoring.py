import random

from cortex.domain.scoring import (
    MAX_SCORE,
    MIN_SCORE,
    SubmissionSignals,
    base_score,
    clamp_score,
    score_submission,
)


class _FixedRng:
    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


def test_base_score_rules():
    assert base_score(SubmissionSignals()) == 50
    assert base_score(SubmissionSignals(company="Acme")) == 60
    assert base_score(SubmissionSignals(utm_source="Google")) == 65
    assert base_score(SubmissionSignals(utm_source="FACEBOOK")) == 65
    assert base_score(SubmissionSignals(utm_source="organic")) == 55
    assert base_score(SubmissionSignals(utm_source="direct")) == 55
    assert base_score(SubmissionSignals(utm_source="linkedin")) == 50
    assert base_score(SubmissionSignals(fbp="fb.1.2")) == 60
    assert base_score(SubmissionSignals(fbc="x", fbp="y")) == 60
    assert base_score(SubmissionSignals(gclid="abc")) == 60


def test_noise_range_is_minus_ten_to_plus_nine():
    signals = SubmissionSignals(company="Acme", utm_source="google", gclid="g")  # 85
    assert score_submission(signals, rng=_FixedRng(0.0)) == 75
    assert score_submission(signals, rng=_FixedRng(0.5)) == 85
    assert score_submission(signals, rng=_FixedRng(0.9999)) == 94


def test_score_is_clamped_to_upper_bound():
    signals = SubmissionSignals(company="Acme", utm_source="meta", fbc="x", gclid="g")  # 95
    assert score_submission(signals, rng=_FixedRng(0.9999)) == MAX_SCORE


def test_clamp():
    assert clamp_score(-5) == MIN_SCORE
    assert clamp_score(150) == MAX_SCORE
    assert clamp_score(42) == 42


def test_scores_always_within_bounds_with_live_rng():
    rng = random.Random(1234)
    variants = [
        SubmissionSignals(),
        SubmissionSignals(company="Acme", utm_source="google", fbc="x", fbp="y", gclid="z"),
        SubmissionSignals(utm_source="unknown"),
    ]
    for _ in range(200):
        for s in variants:
            assert MIN_SCORE <= score_submission(s, rng=rng) <= MAX_SCORE


def test_seeded_rng_is_reproducible():
    s = SubmissionSignals(company="Acme")
    a = [score_submission(s, rng=random.Random(7)) for _ in range(3)]
    b = [score_submission(s, rng=random.Random(7)) for _ in range(3)]
    assert a == b


def test_from_payload_ignores_empty_values():
    s = SubmissionSignals.from_payload({"company": "", "utm_source": "google", "gclid": None})
    assert s.company is None
    assert s.utm_source == "google"
    assert s.gclid is None
