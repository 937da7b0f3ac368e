"""Forecast pipeline public API."""

from .config import ForecastConfig
from .forecaster import build_forecast_points, forecast, iterative_forecast
from .models import (
    EpochMetrics,
    ForecastPoint,
    NormalizationParams,
    PipelineResult,
    PipelineState,
    TrainingHistory,
    WindowedDataset,
)
from .pipeline import ForecastPipeline, PipelineStateMachine
from .preprocessing import SeriesPreprocessor, create_windows, denormalize, normalize

__all__ = [
    "ForecastConfig",
    "ForecastPipeline",
    "PipelineStateMachine",
    "PipelineResult",
    "PipelineState",
    "EpochMetrics",
    "TrainingHistory",
    "ForecastPoint",
    "NormalizationParams",
    "WindowedDataset",
    "SeriesPreprocessor",
    "normalize",
    "denormalize",
    "create_windows",
    "iterative_forecast",
    "build_forecast_points",
    "forecast",
]
