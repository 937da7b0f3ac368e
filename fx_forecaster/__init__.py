"""
FX Forecaster

Fetches historical exchange rates, trains a small LSTM regressor locally and
forecasts the next week of rates by iterative one-step prediction.
"""

__version__ = "0.1.0"
