"""Pytest configuration and fixtures."""
from datetime import date, timedelta
import logging
from pathlib import Path
import tempfile
from typing import List, Optional

import numpy as np
import pytest
import yaml

from fx_forecaster.config import reset_config
from fx_forecaster.data_collection.models import RatePoint
from fx_forecaster.data_collection.providers.base import BaseProvider
from fx_forecaster.prediction.models import EpochMetrics, TrainingHistory
from fx_forecaster.utils.errors import DataError


@pytest.fixture
def temp_config_file():
    """Create a temporary config file for testing."""
    config_data = {
        'app': {
            'name': 'Test App',
            'version': '0.1.0',
            'debug': True
        },
        'api': {
            'exchange_rate_host': {
                'base_url': 'https://rates.test',
                'timeout': 5
            }
        },
        'forecast': {
            'window': 5,
            'epochs': 2,
            'horizon': 7,
        },
        'logging': {
            'level': 'DEBUG',
            'format': 'text'
        }
    }

    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.dump(config_data, f)
        config_path = f.name

    yield config_path

    Path(config_path).unlink()


@pytest.fixture(autouse=True)
def clear_global_config(monkeypatch):
    """Isolate tests from the global config singleton and env overrides."""
    monkeypatch.delenv("FX_FORECASTER_CONFIG", raising=False)
    monkeypatch.delenv("EXCHANGE_RATE_HOST_API_KEY", raising=False)
    reset_config()
    yield
    reset_config()
    logging.disable(logging.NOTSET)


def make_series(n: int = 60, start: date = date(2024, 1, 1), seed: int = 7) -> List[RatePoint]:
    """Random-walk daily USD/EUR-like series."""
    rng = np.random.default_rng(seed)
    rates = 0.9 + np.cumsum(rng.normal(0, 0.002, size=n))
    return [RatePoint(date=start + timedelta(days=i), rate=float(r)) for i, r in enumerate(rates)]


class FakeProvider(BaseProvider):
    """In-memory provider; records the calls it receives."""

    NAME = "fake"

    def __init__(self, points: Optional[List[RatePoint]] = None, error: Optional[Exception] = None):
        self.points = points or []
        self.error = error
        self.calls = []

    async def fetch_timeseries(self, base, quote, start_date, end_date):
        self.calls.append((base, quote, start_date, end_date))
        if self.error is not None:
            raise self.error
        if not self.points:
            raise DataError("API response error: no usable rates in response")
        return list(self.points)

    async def health_check(self) -> bool:
        return self.error is None


class FakeForecaster:
    """Torch-free stand-in: 'predicts' the mean of its window."""

    def __init__(
        self,
        config,
        epochs: Optional[int] = None,
        fit_error: Optional[Exception] = None,
        predict_error: Optional[Exception] = None,
    ):
        self.config = config
        self.epochs = epochs or config.epochs
        self.fit_error = fit_error
        self.predict_error = predict_error
        self.fit_calls = 0
        self.released = False
        self.seen_windows = []

    async def fit(self, dataset, on_epoch_end=None):
        self.fit_calls += 1
        if self.fit_error is not None:
            raise self.fit_error
        history = TrainingHistory()
        for epoch in range(1, self.epochs + 1):
            metrics = EpochMetrics(epoch=epoch, loss=1.0 / epoch, val_loss=None)
            history.record(metrics)
            if on_epoch_end is not None:
                await on_epoch_end(metrics)
        return history

    def predict_next(self, window):
        self.seen_windows.append(np.array(window))
        if self.predict_error is not None:
            raise self.predict_error
        return float(np.mean(window))

    def get_model_info(self):
        return {"model_type": "FakeForecaster", "summary": "fake"}

    def release(self):
        self.released = True


@pytest.fixture
def series():
    return make_series()


@pytest.fixture
def series_factory():
    return make_series


@pytest.fixture
def fake_provider_cls():
    return FakeProvider


@pytest.fixture
def fake_forecaster_cls():
    return FakeForecaster
