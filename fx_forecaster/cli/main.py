from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from fx_forecaster.cli.charts import render_forecast_chart
from fx_forecaster.cli.display import DisplayManager
from fx_forecaster.config import CONFIG_ENV_VAR, load_config, reset_config
from fx_forecaster.data_collection.models import RateHistory
from fx_forecaster.data_collection.providers import get_provider
from fx_forecaster.prediction.config import ForecastConfig
from fx_forecaster.prediction.models import PipelineState
from fx_forecaster.prediction.pipeline import ForecastPipeline
from fx_forecaster.utils.errors import ForecasterError
from fx_forecaster.utils.logging import setup_logging
from fx_forecaster.utils.paths import locate_config_file
from fx_forecaster.utils.validation import validate_currency_pair


app = typer.Typer(add_completion=False, help="FX Forecaster CLI")

DATE_FORMATS = ["%Y-%m-%d"]


def _bootstrap(config_path: Optional[Path]) -> ForecastConfig:
    """Load --config, $FX_FORECASTER_CONFIG or config.yaml and return the
    forecast settings.

    Only an absent default config.yaml falls back to built-in defaults; an
    explicit path must exist and any file that exists must be valid.
    """
    reset_config()
    explicit = str(config_path) if config_path is not None else None
    if explicit is None and not os.getenv(CONFIG_ENV_VAR):
        if not locate_config_file(None, CONFIG_ENV_VAR).exists():
            setup_logging(level="WARNING", format_type="text")
            return ForecastConfig()
    cfg = load_config(explicit)
    return ForecastConfig.from_dict(cfg.section("forecast"))


def _resolve_pair(pair: Optional[str], cfg: ForecastConfig) -> tuple[str, str]:
    if not pair:
        return cfg.base_currency, cfg.quote_currency
    return validate_currency_pair(pair)


@app.command("forecast")
def forecast_command(
    pair: Optional[str] = typer.Option(None, "--pair", "-p", help="Currency pair, e.g., USD/EUR"),
    start: Optional[datetime] = typer.Option(None, "--start", formats=DATE_FORMATS, help="First day of history"),
    end: Optional[datetime] = typer.Option(None, "--end", formats=DATE_FORMATS, help="Last day of history (default today)"),
    days: Optional[int] = typer.Option(None, "--days", "-d", min=1, help="History in days when --start is omitted"),
    epochs: Optional[int] = typer.Option(None, "--epochs", min=1, help="Training passes"),
    window: Optional[int] = typer.Option(None, "--window", "-w", min=1, help="Lookback window in days"),
    horizon: Optional[int] = typer.Option(None, "--horizon", min=1, help="Days to forecast"),
    chart: Optional[Path] = typer.Option(None, "--chart", help="Write a PNG chart of history and forecast"),
    history_json: Optional[Path] = typer.Option(None, "--history-json", help="Write the training loss history as JSON"),
    output_json: Optional[Path] = typer.Option(None, "--output-json", help="Write the whole run result as JSON"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
):
    """Fetch rates, train the LSTM and forecast the next days."""

    display = DisplayManager()
    try:
        cfg = _bootstrap(config_path).with_overrides(
            history_days=days, epochs=epochs, window=window, horizon=horizon
        )
        base, quote = _resolve_pair(pair, cfg)
    except ForecasterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    pipeline = ForecastPipeline(config=cfg)

    with display.console.status("Starting...") as status:
        def on_status(state: PipelineState, message: str) -> None:
            status.update(display.status_line(state, message))

        result = asyncio.run(
            pipeline.run(
                base,
                quote,
                start_date=start.date() if start else None,
                end_date=end.date() if end else None,
                on_status=on_status,
            )
        )

    display.show_result(result)

    if history_json is not None and len(result.training_history):
        history_json.parent.mkdir(parents=True, exist_ok=True)
        history_json.write_text(json.dumps(result.training_history.as_dict(), indent=2))
        typer.echo(f"Training history written to {history_json}")
    if output_json is not None:
        output_json.parent.mkdir(parents=True, exist_ok=True)
        output_json.write_text(json.dumps(result.to_dict(), indent=2))
        typer.echo(f"Run result written to {output_json}")
    if chart is not None and result.history:
        render_forecast_chart(result, chart)
        typer.echo(f"Chart written to {chart}")

    if not result.ok:
        raise typer.Exit(code=1)


@app.command("fetch")
def fetch_command(
    pair: Optional[str] = typer.Option(None, "--pair", "-p", help="Currency pair, e.g., USD/EUR"),
    start: Optional[datetime] = typer.Option(None, "--start", formats=DATE_FORMATS, help="First day of history"),
    end: Optional[datetime] = typer.Option(None, "--end", formats=DATE_FORMATS, help="Last day of history (default today)"),
    days: Optional[int] = typer.Option(None, "--days", "-d", min=1, help="History in days when --start is omitted"),
    tail: int = typer.Option(10, "--tail", "-n", min=0, help="Rows to display"),
    csv_path: Optional[Path] = typer.Option(None, "--csv", help="Write the full series as CSV"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
):
    """Fetch and show a rate history without training."""

    display = DisplayManager()
    try:
        cfg = _bootstrap(config_path).with_overrides(history_days=days)
        base, quote = _resolve_pair(pair, cfg)
        pipeline = ForecastPipeline(config=cfg, provider=get_provider())
        start_date, end_date = pipeline.resolve_range(
            start.date() if start else None, end.date() if end else None
        )
        points = asyncio.run(pipeline.provider.fetch_timeseries(base, quote, start_date, end_date))
    except ForecasterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    history = RateHistory(
        base_currency=base,
        quote_currency=quote,
        start_date=start_date,
        end_date=end_date,
        points=points,
    )
    display.show_history(history.tail(tail), title=f"{history.currency_pair} (last {min(tail, len(history))} of {len(history)})")

    if csv_path is not None:
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        history.to_frame().to_csv(csv_path)
        typer.echo(f"Series written to {csv_path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
