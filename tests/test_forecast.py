from datetime import date, timedelta

from cortex.domain.forecast import mean_daily, project_forecast
from cortex.domain.ratios import round_half_up


class _FixedRng:
    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


def test_round_half_up_matches_js_math_round():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.4) == 2
    assert round_half_up(0.0) == 0


def test_deterministic_without_rng():
    start = date(2025, 3, 15)
    mean, points = project_forecast([2, 4, 6], start, 3)

    assert mean == 4.0
    assert [p.date for p in points] == [start + timedelta(days=i) for i in (1, 2, 3)]
    for p in points:
        assert p.predicted == 4
        assert p.lower == 3  # round(2.8)
        assert p.upper == 5  # round(5.2)


def test_no_history_gives_zero_forecast():
    mean, points = project_forecast([], date(2025, 1, 1), 7)
    assert mean == 0.0
    assert len(points) == 7
    assert all(p.predicted == 0 and p.lower == 0 and p.upper == 0 for p in points)


def test_jitter_stays_inside_fifteen_percent():
    _, low = project_forecast([10], date(2025, 1, 1), 1, rng=_FixedRng(0.0))
    _, high = project_forecast([10], date(2025, 1, 1), 1, rng=_FixedRng(0.999))
    assert low[0].predicted == 9  # 10 - 1.5 -> 8.5 -> 9
    assert high[0].predicted == 11  # 10 + ~1.5 -> 11


def test_band_brackets_prediction():
    _, points = project_forecast([7, 13], date(2025, 1, 1), 5)
    for p in points:
        assert 0 <= p.lower <= p.predicted <= p.upper


def test_mean_daily():
    assert mean_daily([1, 2, 3, 6]) == 3.0
    assert mean_daily([]) == 0.0
