"""Services that orchestrate the forecasting models."""

from .forecast_service import ForecastService, build_profile, profile_from_aggregate
from .result_cache import ResultCache

__all__ = [
    "ForecastService",
    "ResultCache",
    "build_profile",
    "profile_from_aggregate",
]
