"""
Min-max normalization and sliding-window construction for the rate series
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np

from fx_forecaster.prediction.models import NormalizationParams, WindowedDataset
from fx_forecaster.utils.errors import (
    InsufficientDataError,
    NumericDegeneracyError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]


def _as_1d(values: ArrayLike) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim != 1:
        raise ValidationError(f"Expected a 1-D series, got shape {arr.shape}")
    return arr


def normalize(values: ArrayLike) -> Tuple[np.ndarray, NormalizationParams]:
    """
    Rescale values into [0, 1] using the observed min and max.

    Raises:
        InsufficientDataError: empty input
        NumericDegeneracyError: all values equal, so the span is zero
    """
    arr = _as_1d(values)
    if arr.size == 0:
        raise InsufficientDataError("Cannot normalize an empty series", available=0, required=1)
    if not np.all(np.isfinite(arr)):
        raise ValidationError("Series contains non-finite values")

    params = NormalizationParams(min=float(arr.min()), max=float(arr.max()))
    if params.span == 0:
        raise NumericDegeneracyError(
            f"Constant series (all values {params.min}); min-max normalization is undefined"
        )

    return (arr - params.min) / params.span, params


def denormalize(values: Union[float, ArrayLike], params: NormalizationParams):
    """Inverse of normalize: ``value * (max - min) + min``."""
    if np.isscalar(values):
        return float(values) * params.span + params.min
    return np.asarray(values, dtype=np.float64) * params.span + params.min


def create_windows(series: ArrayLike, window: int) -> WindowedDataset:
    """
    Slide a width-``window`` frame over the series with stride 1, pairing
    each frame with the value right after it.

    Produces ``max(0, len(series) - window)`` pairs.
    """
    if window < 1:
        raise ValidationError(f"Window must be >= 1, got {window}")
    arr = _as_1d(series)

    n_samples = max(0, arr.size - window)
    if n_samples == 0:
        return WindowedDataset(
            windows=np.empty((0, window), dtype=np.float64),
            targets=np.empty((0,), dtype=np.float64),
            window=window,
        )

    windows = np.lib.stride_tricks.sliding_window_view(arr, window)[:n_samples].copy()
    targets = arr[window:].copy()
    return WindowedDataset(windows=windows, targets=targets, window=window)


def require_trainable(n_points: int, window: int) -> None:
    """Raise InsufficientDataError unless the series yields at least one pair."""
    if n_points <= window:
        raise InsufficientDataError(
            f"Need at least {window + 1} observations for window {window}, got {n_points}",
            available=n_points,
            required=window + 1,
        )


@dataclass
class PreparedSeries:
    """Output of the prepare stage."""

    normalized: np.ndarray
    params: NormalizationParams
    dataset: WindowedDataset

    @property
    def last_window(self) -> np.ndarray:
        return self.normalized[-self.dataset.window:]


class SeriesPreprocessor:
    """
    Prepare stage: normalize the raw rates and cut them into training windows
    """

    def __init__(self, window: int = 30):
        if window < 1:
            raise ValidationError(f"Window must be >= 1, got {window}")
        self.window = window

    def prepare(self, rates: ArrayLike) -> PreparedSeries:
        arr = _as_1d(rates)
        # length first: a short constant series is InsufficientDataError
        require_trainable(arr.size, self.window)

        normalized, params = normalize(arr)
        dataset = create_windows(normalized, self.window)

        logger.info(
            f"Prepared {len(dataset)} windows of width {self.window} "
            f"(min={params.min:.6f}, max={params.max:.6f})"
        )
        return PreparedSeries(normalized=normalized, params=params, dataset=dataset)
