"""
LSTM regressor mapping a window of normalized rates to the next value
"""

import asyncio
import inspect
import logging
import math
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import numpy as np
import torch
import torch.nn as nn
import torch.optim as optim

from fx_forecaster.prediction.config import ForecastConfig
from fx_forecaster.prediction.models import EpochMetrics, TrainingHistory, WindowedDataset
from fx_forecaster.utils.errors import InsufficientDataError, TrainingError, ValidationError

logger = logging.getLogger(__name__)

EpochCallback = Callable[[EpochMetrics], Union[None, Awaitable[None]]]


class RateLSTM(nn.Module):
    """
    One LSTM layer followed by a ReLU dense layer and a linear output.
    """

    def __init__(self, hidden_units: int = 64, dense_units: int = 32):
        super(RateLSTM, self).__init__()
        self.hidden_units = hidden_units
        self.dense_units = dense_units

        # one feature per time step
        self.lstm = nn.LSTM(input_size=1, hidden_size=hidden_units, batch_first=True)
        self.fc_layers = nn.Sequential(
            nn.Linear(hidden_units, dense_units),
            nn.ReLU(),
            nn.Linear(dense_units, 1),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: Input tensor of shape (batch_size, window, 1)

        Returns:
            Tensor of shape (batch_size,)
        """
        lstm_out, _ = self.lstm(x)
        last_output = lstm_out[:, -1, :]
        return self.fc_layers(last_output).squeeze(-1)


def split_validation(n_samples: int, validation_split: float) -> int:
    """Index where the held-out tail starts (samples[idx:] are validation).

    Returns ``n_samples`` when nothing is held out. If the split would leave
    no training samples, everything is used for training.
    """
    if validation_split <= 0:
        return n_samples
    split_at = int(math.floor(n_samples * (1 - validation_split)))
    if split_at <= 0:
        return n_samples
    return split_at


class LSTMForecaster:
    """
    Trains a RateLSTM on windowed data and predicts one step ahead.
    """

    def __init__(self, config: Optional[ForecastConfig] = None):
        self.config = config or ForecastConfig()
        self.window = self.config.window
        self.device = self.config.get_device()

        try:
            self.model: Optional[RateLSTM] = self._build_model()
            self.optimizer: Optional[optim.Optimizer] = optim.Adam(
                self.model.parameters(), lr=self.config.learning_rate
            )
        except RuntimeError as e:
            raise TrainingError(f"Could not build model on {self.device}: {e}") from e
        self.criterion = nn.MSELoss()
        self.history = TrainingHistory()
        self.is_trained = False

        logger.info(f"Initialized LSTM forecaster: {self.get_model_info()['architecture']}")

    def _build_model(self) -> RateLSTM:
        def build() -> RateLSTM:
            return RateLSTM(hidden_units=self.config.hidden_units, dense_units=self.config.dense_units)

        if self.config.random_seed is None:
            return build().to(self.device)
        # seeded weight init leaves the process-global RNG untouched
        with torch.random.fork_rng(devices=[]):
            torch.manual_seed(self.config.random_seed)
            model = build()
        return model.to(self.device)

    def _to_tensor(self, windows: np.ndarray) -> torch.Tensor:
        return torch.as_tensor(windows, dtype=torch.float32, device=self.device).unsqueeze(-1)

    def _require_model(self) -> RateLSTM:
        if self.model is None:
            raise TrainingError("Model has been released")
        return self.model

    async def fit(
        self,
        dataset: WindowedDataset,
        on_epoch_end: Optional[EpochCallback] = None,
    ) -> TrainingHistory:
        """
        Train for ``config.epochs`` passes, reporting losses after each pass.

        The trailing ``validation_split`` fraction of samples is held out
        before shuffling. ``val_loss`` is None when nothing is held out.
        Control returns to the event loop after every epoch.
        """
        model = self._require_model()
        if dataset.is_empty:
            raise InsufficientDataError("No training windows to fit on", available=0, required=1)
        if dataset.window != self.window:
            raise TrainingError(
                f"Dataset window {dataset.window} does not match model window {self.window}"
            )

        epochs = self.config.epochs
        batch_size = self.config.batch_size
        n_samples = len(dataset)
        split_at = split_validation(n_samples, self.config.validation_split)

        try:
            X_all = self._to_tensor(dataset.windows)
            y_all = torch.as_tensor(dataset.targets, dtype=torch.float32, device=self.device)
        except (RuntimeError, TypeError, ValueError) as e:
            raise TrainingError(f"Could not build training tensors: {e}") from e

        X_train, y_train = X_all[:split_at], y_all[:split_at]
        X_val, y_val = X_all[split_at:], y_all[split_at:]
        has_validation = len(X_val) > 0

        generator = torch.Generator()
        if self.config.random_seed is not None:
            generator.manual_seed(self.config.random_seed)

        logger.info(
            f"Starting training: {epochs} epochs, batch_size {batch_size}, "
            f"{len(X_train)} train / {len(X_val)} validation samples"
        )

        try:
            for epoch in range(1, epochs + 1):
                try:
                    epoch_loss = self._train_epoch(model, X_train, y_train, batch_size, generator)
                    val_loss = self._validate(model, X_val, y_val) if has_validation else None
                except RuntimeError as e:
                    raise TrainingError(f"Model fit failed at epoch {epoch}: {e}") from e

                if not math.isfinite(epoch_loss):
                    raise TrainingError(f"Training diverged at epoch {epoch} (loss={epoch_loss})")

                metrics = EpochMetrics(epoch=epoch, loss=epoch_loss, val_loss=val_loss)
                self.history.record(metrics)
                logger.debug(metrics.describe())

                # callback errors propagate unchanged
                if on_epoch_end is not None:
                    outcome = on_epoch_end(metrics)
                    if inspect.isawaitable(outcome):
                        await outcome
                await asyncio.sleep(0)
        finally:
            del X_all, y_all, X_train, y_train, X_val, y_val

        self.is_trained = True
        logger.info(
            f"Training completed: loss={self.history.final_loss:.6f}"
            + (f", val_loss={self.history.final_val_loss:.6f}" if has_validation else "")
        )
        return self.history

    def _train_epoch(
        self,
        model: RateLSTM,
        X_train: torch.Tensor,
        y_train: torch.Tensor,
        batch_size: int,
        generator: torch.Generator,
    ) -> float:
        model.train()
        order = torch.randperm(len(X_train), generator=generator).to(self.device)

        total_loss = 0.0
        for i in range(0, len(order), batch_size):
            idx = order[i:i + batch_size]
            batch_X, batch_y = X_train[idx], y_train[idx]

            self.optimizer.zero_grad()
            loss = self.criterion(model(batch_X), batch_y)
            loss.backward()
            self.optimizer.step()

            total_loss += loss.item() * len(idx)

        # sample-weighted mean, as Keras reports it
        return total_loss / len(X_train)

    def _validate(self, model: RateLSTM, X_val: torch.Tensor, y_val: torch.Tensor) -> float:
        model.eval()
        with torch.no_grad():
            return self.criterion(model(X_val), y_val).item()

    def predict_next(self, window: np.ndarray) -> float:
        """Predict the normalized value following a single length-W window."""
        model = self._require_model()
        if not self.is_trained:
            raise TrainingError("Model must be trained before making predictions")

        arr = np.asarray(window, dtype=np.float32)
        if arr.shape != (self.window,):
            raise ValidationError(f"Expected a window of shape ({self.window},), got {arr.shape}")

        model.eval()
        try:
            with torch.no_grad():
                output = model(self._to_tensor(arr.reshape(1, -1)))
                value = float(output.item())
        except RuntimeError as e:
            raise TrainingError(f"Prediction failed: {e}") from e
        del output
        return value

    def get_model_info(self) -> Dict[str, Any]:
        """Architecture, parameter counts and a printable summary"""
        model = self.model
        info: Dict[str, Any] = {
            "model_type": "RateLSTM",
            "is_trained": self.is_trained,
            "architecture": {
                "window": self.window,
                "hidden_units": self.config.hidden_units,
                "dense_units": self.config.dense_units,
                "output_size": 1,
            },
            "training": {
                "epochs": self.config.epochs,
                "batch_size": self.config.batch_size,
                "learning_rate": self.config.learning_rate,
                "validation_split": self.config.validation_split,
                "loss": "mse",
                "optimizer": "adam",
            },
            "device": str(self.device),
            "epochs_completed": len(self.history),
        }
        if model is not None:
            info["parameter_count"] = sum(p.numel() for p in model.parameters())
            info["trainable_parameters"] = sum(p.numel() for p in model.parameters() if p.requires_grad)
            info["summary"] = str(model)
        return info

    def release(self) -> None:
        """Drop the model and optimizer state and free cached device memory."""
        self.model = None
        self.optimizer = None
        if str(self.device).startswith("cuda") and torch.cuda.is_available():
            torch.cuda.empty_cache()
        logger.debug("Released LSTM forecaster resources")
