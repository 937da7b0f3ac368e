from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Optional

import yaml

from fx_forecaster.utils.errors import ConfigurationError
from fx_forecaster.utils.paths import locate_config_file


@dataclass
class ForecastConfig:
    """Forecast pipeline configuration.

    Hyperparameters are fixed configuration values, not tuned per run.
    """

    # Data
    base_currency: str = "USD"
    quote_currency: str = "EUR"
    history_days: int = 365

    # Model architecture
    window: int = 30  # lookback in days
    hidden_units: int = 64  # LSTM hidden size
    dense_units: int = 32  # hidden dense layer before the linear output

    # Training
    epochs: int = 30
    batch_size: int = 32
    learning_rate: float = 0.001
    validation_split: float = 0.1  # trailing fraction held out
    random_seed: Optional[int] = 42

    # Forecast
    horizon: int = 7  # days beyond the last observation

    # Runtime
    device: str = "auto"  # auto | cpu | cuda

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        checks = (
            (self.history_days >= 1, "history_days must be >= 1"),
            (self.window >= 1, "window must be >= 1"),
            (self.hidden_units >= 1, "hidden_units must be >= 1"),
            (self.dense_units >= 1, "dense_units must be >= 1"),
            (self.epochs >= 1, "epochs must be >= 1"),
            (self.batch_size >= 1, "batch_size must be >= 1"),
            (self.learning_rate > 0, "learning_rate must be > 0"),
            (0.0 <= self.validation_split < 1.0, "validation_split must be in [0, 1)"),
            (self.horizon >= 1, "horizon must be >= 1"),
            (self.device in ("auto", "cpu", "cuda"), "device must be one of auto, cpu, cuda"),
        )
        for ok, message in checks:
            if not ok:
                raise ConfigurationError(message)

    def get_device(self) -> str:
        """Get the device to use for computation"""
        if self.device == "auto":
            import torch
            return "cuda" if torch.cuda.is_available() else "cpu"
        return self.device

    def with_overrides(self, **overrides: Any) -> "ForecastConfig":
        """Copy with the non-None overrides applied (CLI flags)."""
        values = asdict(self)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ForecastConfig(**values)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForecastConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown forecast settings: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, config_path: Optional[str] = None) -> "ForecastConfig":
        """Load from the ``forecast:`` section of a YAML config file.

        ``config_path`` wins over $FX_FORECASTER_CONFIG, which wins over
        config.yaml. Falls back to defaults when the file does not exist.
        """
        cfg_path = locate_config_file(config_path, "FX_FORECASTER_CONFIG")
        if not cfg_path.exists():
            return cls()
        with open(cfg_path, "r") as f:
            full_config = yaml.safe_load(f) or {}
        section = full_config.get("forecast") or {}
        if not isinstance(section, dict):
            raise ConfigurationError("Config section 'forecast' must be a mapping")
        return cls.from_dict(section)
