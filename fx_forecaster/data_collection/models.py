"""
Data models for historical exchange rate series.
"""
import math
from dataclasses import dataclass, field
from datetime import date
from typing import List

import pandas as pd

from fx_forecaster.utils.errors import ValidationError


@dataclass(frozen=True)
class RatePoint:
    """
    A single daily observation: how much quote currency one unit of base buys.
    """
    date: date
    rate: float

    def validate(self) -> None:
        if self.rate is None or not math.isfinite(self.rate) or self.rate <= 0:
            raise ValidationError(f"Invalid rate for {self.date}: {self.rate}")

    def __str__(self) -> str:
        return f"{self.date.isoformat()}: {self.rate:.6f}"


@dataclass
class RateHistory:
    """
    Ordered daily series for one currency pair, as returned by a provider.
    """
    base_currency: str
    quote_currency: str
    start_date: date
    end_date: date
    points: List[RatePoint] = field(default_factory=list)
    source: str = "exchange_rate_host"

    @property
    def currency_pair(self) -> str:
        """Returns currency pair in standard format: BASE/QUOTE"""
        return f"{self.base_currency}/{self.quote_currency}"

    @property
    def rates(self) -> List[float]:
        return [p.rate for p in self.points]

    @property
    def dates(self) -> List[date]:
        return [p.date for p in self.points]

    def tail(self, n: int = 5) -> List[RatePoint]:
        return self.points[-n:] if n > 0 else []

    def to_frame(self) -> pd.DataFrame:
        """Series as a DataFrame indexed by date with a single ``rate`` column."""
        frame = pd.DataFrame(
            {"rate": self.rates},
            index=pd.DatetimeIndex(pd.to_datetime(self.dates), name="date"),
        )
        return frame

    def __len__(self) -> int:
        return len(self.points)
