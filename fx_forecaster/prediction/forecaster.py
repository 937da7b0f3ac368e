"""
Iterative multi-step forecasting.

Each step predicts one value from the current window, then slides the window
forward by dropping its oldest value and appending the prediction. Errors
compound across steps; nothing corrects for that.
"""

from datetime import date, timedelta
from functools import reduce
from typing import Callable, List, Sequence, Tuple

import numpy as np

from fx_forecaster.prediction.models import ForecastPoint, NormalizationParams
from fx_forecaster.prediction.preprocessing import denormalize
from fx_forecaster.utils.errors import ValidationError

PredictFn = Callable[[np.ndarray], float]

# (current window, predictions so far)
_Accumulator = Tuple[np.ndarray, Tuple[float, ...]]


def _step(predict_fn: PredictFn) -> Callable[[_Accumulator, int], _Accumulator]:
    def advance(acc: _Accumulator, _: int) -> _Accumulator:
        window, predictions = acc
        value = float(predict_fn(window))
        next_window = np.append(window[1:], value)
        return next_window, predictions + (value,)

    return advance


def iterative_forecast(predict_fn: PredictFn, last_window: Sequence[float], steps: int) -> List[float]:
    """
    Roll ``predict_fn`` forward ``steps`` times starting from ``last_window``.

    Returns the normalized predictions in step order.
    """
    if steps < 1:
        raise ValidationError(f"steps must be >= 1, got {steps}")
    window = np.asarray(last_window, dtype=np.float64)
    if window.ndim != 1 or window.size == 0:
        raise ValidationError(f"last_window must be a non-empty 1-D sequence, got shape {window.shape}")

    _, predictions = reduce(_step(predict_fn), range(steps), (window.copy(), ()))
    return list(predictions)


def forecast_dates(last_date: date, steps: int) -> List[date]:
    """Consecutive calendar days after ``last_date`` (weekends included)."""
    return [last_date + timedelta(days=k) for k in range(1, steps + 1)]


def build_forecast_points(
    predictions: Sequence[float],
    params: NormalizationParams,
    last_date: date,
) -> List[ForecastPoint]:
    """Denormalize predictions and date them ``last_date + step`` days."""
    rates = denormalize(np.asarray(predictions, dtype=np.float64), params)
    return [
        ForecastPoint(date=day, rate=float(rate), step=step)
        for step, (day, rate) in enumerate(zip(forecast_dates(last_date, len(rates)), rates), start=1)
    ]


def forecast(
    predict_fn: PredictFn,
    normalized: Sequence[float],
    window: int,
    params: NormalizationParams,
    last_date: date,
    horizon: int = 7,
) -> List[ForecastPoint]:
    """Forecast ``horizon`` days past the last observation of ``normalized``."""
    series = np.asarray(normalized, dtype=np.float64)
    if series.size < window:
        raise ValidationError(f"Need {window} normalized values to seed the forecast, got {series.size}")
    predictions = iterative_forecast(predict_fn, series[-window:], horizon)
    return build_forecast_points(predictions, params, last_date)
