"""Matplotlib chart of the observed series and the forecast."""
from pathlib import Path
from typing import Union

import matplotlib

matplotlib.use("Agg")

import matplotlib.dates as mdates
import matplotlib.pyplot as plt

from fx_forecaster.prediction.models import PipelineResult
from fx_forecaster.utils.errors import ValidationError
from fx_forecaster.utils.logging import get_logger

logger = get_logger(__name__)


def render_forecast_chart(result: PipelineResult, output_path: Union[str, Path], dpi: int = 120) -> Path:
    """
    Plot history and forecast as two labeled series and save to ``output_path``.

    The forecast line is anchored on the last observation so the two series join.
    """
    if not result.history:
        raise ValidationError("Nothing to plot: the run has no rate history")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    hist_dates = [p.date for p in result.history]
    hist_rates = [p.rate for p in result.history]

    fig, ax = plt.subplots(figsize=(11, 4.5))
    try:
        ax.plot(hist_dates, hist_rates, label=f"Historical rate ({result.currency_pair})", linewidth=1.4)
        if result.forecast:
            anchor = result.history[-1]
            fc_dates = [anchor.date] + [p.date for p in result.forecast]
            fc_rates = [anchor.rate] + [p.rate for p in result.forecast]
            ax.plot(fc_dates, fc_rates, label="Model forecast", linewidth=1.8, linestyle="--", marker="o", markersize=3)

        ax.set_title(f"{result.currency_pair} exchange rate and {len(result.forecast)}-day forecast")
        ax.set_xlabel("Date")
        ax.set_ylabel("Rate")
        ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
        ax.grid(True, alpha=0.3)
        ax.legend(loc="best")
        fig.autofmt_xdate()
        fig.tight_layout()
        fig.savefig(output_path, dpi=dpi)
    finally:
        plt.close(fig)

    logger.info(f"Saved forecast chart to {output_path}")
    return output_path
