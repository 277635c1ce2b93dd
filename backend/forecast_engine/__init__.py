"""Forecasting engine for personal-finance daily series."""

__version__ = "0.7.0"
