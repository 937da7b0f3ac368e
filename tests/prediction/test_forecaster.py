from datetime import date, timedelta

import numpy as np
import pytest

from fx_forecaster.prediction.forecaster import (
    build_forecast_points,
    forecast,
    forecast_dates,
    iterative_forecast,
)
from fx_forecaster.prediction.models import NormalizationParams
from fx_forecaster.utils.errors import ValidationError


def test_each_prediction_feeds_the_next_window():
    seen = []

    def predict(window):
        seen.append(window.copy())
        return float(window[-1] + 1)

    predictions = iterative_forecast(predict, [0.0, 1.0, 2.0], steps=4)

    assert predictions == [3.0, 4.0, 5.0, 6.0]
    np.testing.assert_array_equal(seen[0], [0.0, 1.0, 2.0])
    np.testing.assert_array_equal(seen[1], [1.0, 2.0, 3.0])
    np.testing.assert_array_equal(seen[3], [3.0, 4.0, 5.0])
    assert all(len(w) == 3 for w in seen)


def test_forecast_does_not_mutate_seed_window():
    seed = np.array([0.1, 0.2, 0.3])
    iterative_forecast(lambda w: 0.9, seed, steps=3)
    np.testing.assert_array_equal(seed, [0.1, 0.2, 0.3])


def test_steps_must_be_positive():
    with pytest.raises(ValidationError):
        iterative_forecast(lambda w: 0.0, [0.1], steps=0)


def test_forecast_dates_are_consecutive_days():
    last = date(2024, 2, 27)
    days = forecast_dates(last, 7)

    assert days[0] == date(2024, 2, 28)
    assert days[2] == date(2024, 3, 1)  # leap year, no weekend skipping
    assert all(b - a == timedelta(days=1) for a, b in zip(days, days[1:]))


def test_build_forecast_points_denormalizes():
    params = NormalizationParams(min=1.0, max=1.2)
    points = build_forecast_points([0.0, 0.5, 1.0], params, date(2024, 1, 10))

    assert [p.step for p in points] == [1, 2, 3]
    assert [p.date for p in points] == [date(2024, 1, 11), date(2024, 1, 12), date(2024, 1, 13)]
    assert [p.rate for p in points] == pytest.approx([1.0, 1.1, 1.2])


def test_forecast_yields_seven_points_after_last_date():
    params = NormalizationParams(min=0.8, max=1.0)
    normalized = np.linspace(0, 1, 40)
    last = date(2024, 5, 31)

    points = forecast(lambda w: float(w.mean()), normalized, window=30, params=params, last_date=last)

    assert len(points) == 7
    assert points[0].date == last + timedelta(days=1)
    assert points[-1].date == last + timedelta(days=7)
    assert all(0.8 <= p.rate <= 1.0 for p in points)


def test_forecast_needs_a_full_window():
    with pytest.raises(ValidationError):
        forecast(lambda w: 0.0, [0.1, 0.2], window=3,
                 params=NormalizationParams(0.0, 1.0), last_date=date(2024, 1, 1))
