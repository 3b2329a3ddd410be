"""Wealthcast: net-worth forecasting, financial health scoring and behavioral insights."""

__version__ = "0.1.0"
