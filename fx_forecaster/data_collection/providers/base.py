"""Provider base class for historical rate providers."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import List

from fx_forecaster.data_collection.models import RatePoint
from fx_forecaster.utils.validation import validate_currency_code, validate_date_range
from fx_forecaster.utils.errors import ValidationError


class BaseProvider(ABC):
    """Abstract base class for timeseries rate providers."""

    NAME: str = "base"

    @abstractmethod
    async def fetch_timeseries(
        self,
        base: str,
        quote: str,
        start_date: date,
        end_date: date,
    ) -> List[RatePoint]:
        """Fetch daily rates for ``base/quote`` over an inclusive date range,
        sorted ascending by date."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the upstream service looks reachable/healthy."""

    @classmethod
    def validate_request(cls, base: str, quote: str, start_date: date, end_date: date) -> None:
        """Validate pair codes and date range before hitting the network."""
        base_code = validate_currency_code(base)
        quote_code = validate_currency_code(quote)
        if base_code != base or quote_code != quote:
            raise ValidationError(
                f"Currency codes must be upper-case ISO codes, got {base}/{quote}"
            )
        if base == quote:
            raise ValidationError("Base and quote currencies cannot be the same")
        validate_date_range(start_date, end_date)
