from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from fx_forecaster.data_collection.models import RatePoint


@dataclass(frozen=True)
class NormalizationParams:
    """Min-max bounds observed on the training series."""

    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min


@dataclass
class WindowedDataset:
    """Sliding windows over a normalized series and the value after each."""

    windows: np.ndarray  # (n_samples, window)
    targets: np.ndarray  # (n_samples,)
    window: int

    def __len__(self) -> int:
        return int(self.targets.shape[0])

    @property
    def is_empty(self) -> bool:
        return len(self) == 0


@dataclass(frozen=True)
class ForecastPoint:
    """Predicted rate ``step`` days after the last observation."""

    date: date
    rate: float
    step: int

    def __str__(self) -> str:
        return f"{self.date.isoformat()}: {self.rate:.6f}"


@dataclass(frozen=True)
class EpochMetrics:
    """Losses recorded after one pass over the training data."""

    epoch: int  # 1-based
    loss: float
    val_loss: Optional[float] = None

    def describe(self) -> str:
        val = f"{self.val_loss:.6f}" if self.val_loss is not None else "n/a"
        return f"Epoch {self.epoch} - loss: {self.loss:.6f} val_loss: {val}"


@dataclass
class TrainingHistory:
    """Per-epoch training and validation losses."""

    epochs: List[EpochMetrics] = field(default_factory=list)

    def record(self, metrics: EpochMetrics) -> None:
        self.epochs.append(metrics)

    @property
    def final_loss(self) -> Optional[float]:
        return self.epochs[-1].loss if self.epochs else None

    @property
    def final_val_loss(self) -> Optional[float]:
        return self.epochs[-1].val_loss if self.epochs else None

    def as_dict(self) -> Dict[str, List[Optional[float]]]:
        """Keras-style ``{"loss": [...], "val_loss": [...]}`` mapping."""
        history: Dict[str, List[Optional[float]]] = {"loss": [m.loss for m in self.epochs]}
        if any(m.val_loss is not None for m in self.epochs):
            history["val_loss"] = [m.val_loss for m in self.epochs]
        return history

    def __len__(self) -> int:
        return len(self.epochs)


class PipelineState(str, Enum):
    """Lifecycle of a single forecast run."""

    IDLE = "idle"
    FETCHING = "fetching"
    PREPARING = "preparing"
    TRAINING = "training"
    FORECASTING = "forecasting"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.ERROR)


@dataclass
class PipelineResult:
    """Everything a presentation layer needs from one forecast run."""

    state: PipelineState
    status: str
    currency_pair: str
    start_date: date
    end_date: date
    correlation_id: str
    history: List[RatePoint] = field(default_factory=list)
    forecast: List[ForecastPoint] = field(default_factory=list)
    training_history: TrainingHistory = field(default_factory=TrainingHistory)
    normalization: Optional[NormalizationParams] = None
    model_info: Optional[Dict[str, Any]] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    processing_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.DONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "status": self.status,
            "currency_pair": self.currency_pair,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "correlation_id": self.correlation_id,
            "history": [{"date": p.date.isoformat(), "rate": p.rate} for p in self.history],
            "forecast": [{"date": p.date.isoformat(), "rate": p.rate} for p in self.forecast],
            "training_history": self.training_history.as_dict(),
            "normalization": (
                {"min": self.normalization.min, "max": self.normalization.max}
                if self.normalization else None
            ),
            "model_info": self.model_info,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp.isoformat(),
        }
