"""
Rich rendering of forecast runs for the CLI
"""

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fx_forecaster.data_collection.models import RatePoint
from fx_forecaster.prediction.models import (
    ForecastPoint,
    PipelineResult,
    PipelineState,
    TrainingHistory,
)


class DisplayManager:
    """Manages all CLI display operations using Rich"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(width=100)

    def show_result(self, result: PipelineResult, recent: int = 5) -> None:
        """
        Display a finished run: recent history, forecast, and training summary.

        Args:
            result: PipelineResult from ForecastPipeline.run
            recent: How many of the latest observations to list
        """
        if result.state is not PipelineState.DONE:
            self.show_error(result)
            return

        self.console.print(
            f"[bold]{result.currency_pair}[/bold] "
            f"{result.start_date.isoformat()} → {result.end_date.isoformat()} "
            f"[dim]({len(result.history)} observations, {result.processing_time_ms / 1000:.1f}s)[/dim]"
        )
        self.show_history(result.history[-recent:], title=f"Latest data (last {recent})")
        self.show_forecast(result.forecast)
        self.show_training(result.training_history)
        if result.model_info and result.model_info.get("summary"):
            self.console.print(
                Panel(result.model_info["summary"], title="Model", border_style="dim", expand=False)
            )

    def show_history(self, points: List[RatePoint], title: str = "Rate history") -> None:
        table = Table(title=title, box=box.SIMPLE, show_header=True)
        table.add_column("Date", style="cyan")
        table.add_column("Rate", justify="right")
        for point in points:
            table.add_row(point.date.isoformat(), f"{point.rate:.6f}")
        self.console.print(table)

    def show_forecast(self, points: List[ForecastPoint]) -> None:
        table = Table(title=f"Model forecast (next {len(points)} days)", box=box.SIMPLE)
        table.add_column("Day", justify="right", style="dim")
        table.add_column("Date", style="green")
        table.add_column("Rate", justify="right", style="bold green")
        for point in points:
            table.add_row(f"+{point.step}", point.date.isoformat(), f"{point.rate:.6f}")
        self.console.print(table)

    def show_training(self, history: TrainingHistory) -> None:
        if not len(history):
            return
        final_val = history.final_val_loss
        val_text = f"{final_val:.6f}" if final_val is not None else "n/a"
        self.console.print(
            f"[bold]Training:[/bold] {len(history)} epochs, "
            f"final loss {history.final_loss:.6f}, final val_loss {val_text}"
        )

    def show_error(self, result: PipelineResult) -> None:
        body = result.status or "Error: unknown failure"
        if result.error_kind:
            body += f"\n[dim]{result.error_kind} | run {result.correlation_id[:8]}[/dim]"
        self.console.print(Panel(body, title="Forecast failed", border_style="red"))

    def status_line(self, state: PipelineState, message: str) -> str:
        """One-line status text for the live spinner."""
        return f"[bold]{state.value}[/bold] {message}"
