"""Command-line interface for FX Forecaster."""
