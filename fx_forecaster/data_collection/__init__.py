"""Historical exchange-rate collection."""

from .models import RatePoint, RateHistory

__all__ = ["RatePoint", "RateHistory"]
