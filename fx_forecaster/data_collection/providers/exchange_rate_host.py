"""ExchangeRate.host timeseries provider implementation."""
from __future__ import annotations

import os
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from fx_forecaster.config import get_config
from fx_forecaster.data_collection.models import RatePoint
from fx_forecaster.data_collection.providers.base import BaseProvider
from fx_forecaster.utils.decorators import retry, log_execution
from fx_forecaster.utils.errors import ConfigurationError, DataError, DataProviderError, ValidationError
from fx_forecaster.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.exchangerate.host"
DEFAULT_TIMEOUT = 10.0


def parse_timeseries_payload(payload: Any, quote: str) -> List[RatePoint]:
    """Turn a ``/timeseries`` response body into an ascending list of RatePoints.

    Expected shape: ``{"rates": {"2024-01-02": {"EUR": 0.91}, ...}}``.
    Days without a usable ``quote`` value are skipped.
    """
    if not isinstance(payload, dict):
        raise DataError("API response error: body is not a JSON object")

    if payload.get("success") is False:
        error_info = payload.get("error") or {}
        if isinstance(error_info, dict):
            detail = f"{error_info.get('type', 'unknown')} - {error_info.get('info', 'no details')}"
        else:
            detail = str(error_info)
        raise DataError(f"API error: {detail}")

    rates = payload.get("rates")
    if not isinstance(rates, dict):
        raise DataError("API response error: missing 'rates' table")

    points: Dict[date, RatePoint] = {}
    for day, quotes in rates.items():
        try:
            observed = date.fromisoformat(str(day))
        except ValueError:
            logger.warning(f"Skipping rate entry with unparseable date {day!r}")
            continue

        value = quotes.get(quote) if isinstance(quotes, dict) else None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning(f"No {quote} rate for {observed.isoformat()}, skipping")
            continue

        point = RatePoint(date=observed, rate=float(value))
        try:
            point.validate()
        except ValidationError as e:
            logger.warning(f"{e}, skipping")
            continue
        points[observed] = point

    if not points:
        raise DataError(f"API response error: no usable {quote} rates in response")

    return [points[d] for d in sorted(points)]


class ExchangeRateHostClient(BaseProvider):
    """
    Provider for the ExchangeRate.host ``/timeseries`` endpoint.

    API Documentation: https://exchangerate.host/documentation
    """

    NAME = "exchange_rate_host"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        try:
            cfg = get_config()
        except ConfigurationError:
            cfg = None

        if base_url is None:
            base_url = cfg.get("api.exchange_rate_host.base_url", DEFAULT_BASE_URL) if cfg else DEFAULT_BASE_URL
        if timeout is None:
            timeout = cfg.get("api.exchange_rate_host.timeout", DEFAULT_TIMEOUT) if cfg else DEFAULT_TIMEOUT

        self.base_url: str = base_url.rstrip("/")
        self.timeout: float = float(timeout)
        self.api_key: str = api_key if api_key is not None else os.getenv("EXCHANGE_RATE_HOST_API_KEY", "")
        self._transport = transport

    def _build_params(self, base: str, quote: str, start_date: date, end_date: date) -> Dict[str, str]:
        params = {
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "base": base,
            "symbols": quote,
        }
        if self.api_key:
            params["access_key"] = self.api_key
        return params

    @retry(max_attempts=3, delay=0.5, exceptions=(httpx.TransportError,))
    async def _get_json(self, url: str, params: Dict[str, str]) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()

    @log_execution(log_args=False, log_result=False)
    async def fetch_timeseries(
        self,
        base: str,
        quote: str,
        start_date: date,
        end_date: date,
    ) -> List[RatePoint]:
        """
        Fetch daily rates between ``start_date`` and ``end_date`` inclusive.

        API endpoint: GET /timeseries?start_date=...&end_date=...&base=USD&symbols=EUR
        """
        self.validate_request(base, quote, start_date, end_date)

        url = f"{self.base_url}/timeseries"
        params = self._build_params(base, quote, start_date, end_date)

        try:
            data = await self._get_json(url, params)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"ExchangeRate.host returned HTTP {status}")
            if status == 429:
                raise DataProviderError("Rate limit exceeded") from e
            if status == 401:
                raise DataProviderError("Invalid API key") from e
            raise DataProviderError(f"HTTP {status} from ExchangeRate.host") from e
        except httpx.HTTPError as e:
            logger.error(f"ExchangeRate.host request failed: {e}")
            raise DataProviderError(f"ExchangeRate.host request failed: {e}") from e
        except ValueError as e:
            raise DataError("API response error: body is not valid JSON") from e

        points = parse_timeseries_payload(data, quote)
        logger.info(
            f"Fetched {len(points)} daily {base}/{quote} rates "
            f"({start_date.isoformat()} to {end_date.isoformat()})"
        )
        return points

    async def health_check(self) -> bool:
        today = date.today()
        try:
            await self.fetch_timeseries("USD", "EUR", today, today)
            return True
        except DataProviderError:
            return False
