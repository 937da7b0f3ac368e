"""
Fetch → prepare → train → forecast, run once per invocation.

Each run owns its state machine and its PipelineResult; nothing is shared
between runs.
"""
from __future__ import annotations

import inspect
import time
import uuid
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Protocol, Union

import numpy as np

from fx_forecaster.data_collection.providers import BaseProvider, get_provider
from fx_forecaster.prediction.config import ForecastConfig
from fx_forecaster.prediction.forecaster import forecast
from fx_forecaster.prediction.models import (
    EpochMetrics,
    PipelineResult,
    PipelineState,
    TrainingHistory,
    WindowedDataset,
)
from fx_forecaster.prediction.preprocessing import SeriesPreprocessor
from fx_forecaster.utils.errors import ForecasterError, PipelineStateError, TrainingError
from fx_forecaster.utils.logging import get_logger


logger = get_logger(__name__)

StatusCallback = Callable[[PipelineState, str], Union[None, Awaitable[None]]]
EpochCallback = Callable[[EpochMetrics], Union[None, Awaitable[None]]]


class Forecaster(Protocol):
    """What the pipeline needs from a trainable one-step model."""

    async def fit(self, dataset: WindowedDataset, on_epoch_end: Optional[EpochCallback] = None) -> TrainingHistory: ...

    def predict_next(self, window: np.ndarray) -> float: ...

    def get_model_info(self) -> Dict[str, Any]: ...

    def release(self) -> None: ...


ForecasterFactory = Callable[[ForecastConfig], Forecaster]


_TRANSITIONS: Dict[PipelineState, FrozenSet[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.FETCHING, PipelineState.ERROR}),
    PipelineState.FETCHING: frozenset({PipelineState.PREPARING, PipelineState.ERROR}),
    PipelineState.PREPARING: frozenset({PipelineState.TRAINING, PipelineState.ERROR}),
    PipelineState.TRAINING: frozenset({PipelineState.FORECASTING, PipelineState.ERROR}),
    PipelineState.FORECASTING: frozenset({PipelineState.DONE, PipelineState.ERROR}),
    PipelineState.DONE: frozenset(),
    PipelineState.ERROR: frozenset(),
}


class PipelineStateMachine:
    """Forward-only lifecycle; ERROR is reachable from any non-terminal state."""

    def __init__(self) -> None:
        self.state = PipelineState.IDLE
        self.trail = [PipelineState.IDLE]

    def advance(self, new_state: PipelineState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise PipelineStateError(
                f"Illegal pipeline transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
        self.trail.append(new_state)

    def fail(self) -> None:
        if not self.state.is_terminal:
            self.advance(PipelineState.ERROR)


async def _notify(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    if callback is None:
        return
    outcome = callback(*args)
    if inspect.isawaitable(outcome):
        await outcome


def _default_forecaster_factory(config: ForecastConfig) -> Forecaster:
    # torch is only imported once a run reaches training
    from fx_forecaster.prediction.lstm_model import LSTMForecaster

    return LSTMForecaster(config)


class ForecastPipeline:
    """Fetch a rate history, train an LSTM on it and forecast the next days."""

    def __init__(
        self,
        config: Optional[ForecastConfig] = None,
        provider: Optional[BaseProvider] = None,
        forecaster_factory: Optional[ForecasterFactory] = None,
    ) -> None:
        self.config = config or ForecastConfig.from_yaml()
        self.provider = provider or get_provider()
        self.forecaster_factory = forecaster_factory or _default_forecaster_factory

    def resolve_range(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> tuple[date, date]:
        """Default range: ``history_days`` back from today, inclusive."""
        end = end_date or date.today()
        start = start_date or (end - timedelta(days=self.config.history_days))
        return start, end

    async def run(
        self,
        base: Optional[str] = None,
        quote: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        on_status: Optional[StatusCallback] = None,
        on_epoch_end: Optional[EpochCallback] = None,
    ) -> PipelineResult:
        """
        Run all four stages once.

        Args:
            base: Base currency (defaults to config.base_currency)
            quote: Quote currency (defaults to config.quote_currency)
            start_date: First day of history (inclusive)
            end_date: Last day of history (inclusive)
            on_status: Called with (state, message) on every status change
            on_epoch_end: Called with EpochMetrics after each training pass

        Returns:
            PipelineResult in state DONE, or ERROR with the failure described
            in ``status`` / ``error_kind``. RuntimeErrors from building or
            querying the model surface as TrainingError; other errors outside
            the forecaster's own hierarchy propagate.
        """
        cfg = self.config
        base = (base or cfg.base_currency).upper()
        quote = (quote or cfg.quote_currency).upper()
        start, end = self.resolve_range(start_date, end_date)

        correlation_id = uuid.uuid4().hex
        log = get_logger(__name__, correlation_id)
        machine = PipelineStateMachine()
        result = PipelineResult(
            state=machine.state,
            status="",
            currency_pair=f"{base}/{quote}",
            start_date=start,
            end_date=end,
            correlation_id=correlation_id,
        )
        started = time.perf_counter()
        model: Optional[Forecaster] = None

        async def report(message: str) -> None:
            result.status = message
            log.info(message)
            await _notify(on_status, machine.state, message)

        async def epoch_done(metrics: EpochMetrics) -> None:
            await report(metrics.describe())
            await _notify(on_epoch_end, metrics)

        try:
            machine.advance(PipelineState.FETCHING)
            await report("Fetching data...")
            history = await self.provider.fetch_timeseries(base, quote, start, end)
            result.history = list(history)

            machine.advance(PipelineState.PREPARING)
            await report("Preprocessing...")
            prepared = SeriesPreprocessor(cfg.window).prepare([p.rate for p in result.history])
            result.normalization = prepared.params

            machine.advance(PipelineState.TRAINING)
            await report("Building model...")
            try:
                model = self.forecaster_factory(cfg)
            except RuntimeError as e:
                raise TrainingError(f"Could not build model: {e}") from e
            await report("Training - this may take a bit...")
            training_history = await model.fit(prepared.dataset, on_epoch_end=epoch_done)

            machine.advance(PipelineState.FORECASTING)
            await report(f"Forecasting next {cfg.horizon} days...")
            try:
                points = forecast(
                    model.predict_next,
                    prepared.normalized,
                    cfg.window,
                    prepared.params,
                    result.history[-1].date,
                    horizon=cfg.horizon,
                )
            except RuntimeError as e:
                raise TrainingError(f"Prediction failed: {e}") from e

            result.training_history = training_history
            result.model_info = model.get_model_info()
            result.forecast = points
            machine.advance(PipelineState.DONE)
            await report("Done.")
        except ForecasterError as e:
            machine.fail()
            result.forecast = []
            result.error_kind = type(e).__name__
            result.error_message = str(e)
            result.status = f"Error: {e}"
            log.error(f"Forecast run failed ({result.error_kind}): {e}")
            await _notify(on_status, machine.state, result.status)
        finally:
            if model is not None:
                model.release()
            result.state = machine.state
            result.processing_time_ms = round((time.perf_counter() - started) * 1000, 2)

        return result
