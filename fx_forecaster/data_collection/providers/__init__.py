"""Provider factory and exports."""

from .base import BaseProvider
from .exchange_rate_host import ExchangeRateHostClient, parse_timeseries_payload


def get_provider(provider_name: str = "exchange_rate_host", **kwargs) -> BaseProvider:
    """Get provider by canonical name.

    Canonical names:
    - "exchange_rate_host"
    """
    if provider_name == ExchangeRateHostClient.NAME:
        return ExchangeRateHostClient(**kwargs)
    raise ValueError(f"Unknown provider: {provider_name}")


__all__ = [
    "BaseProvider",
    "ExchangeRateHostClient",
    "parse_timeseries_payload",
    "get_provider",
]
