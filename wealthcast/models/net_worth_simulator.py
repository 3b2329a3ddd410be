"""
Net-worth Monte Carlo simulator.

This module advances many independent stochastic net-worth paths forward in
daily steps and reduces them to p10/p50/p90 bands per day for fan charts.

Each day, on every path:
    S ~ N(surplus_mean, surplus_std)
    r ~ N(return_mean / 252, return_std / sqrt(252))
    nw = nw * (1 + r) + S

Paths are independent, so they are advanced together as one numpy vector.
Cost is O(P * T) normal draws plus O(T * P log P) for the per-day sorts.
"""

import logging
import math
from typing import Any, Dict, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from wealthcast.errors import from_validation_error

from .statistics import quantile, standard_normal_sample

logger = logging.getLogger(__name__)

PERCENTILE_LEVELS: Tuple[Tuple[str, float], ...] = (
    ("p10", 0.10),
    ("p50", 0.50),
    ("p90", 0.90),
)


class NetWorthSimulationConfig(BaseModel):
    """Parameters for a net-worth Monte Carlo run."""

    model_config = ConfigDict(frozen=True)

    starting_net_worth: float = Field(
        ..., description="Net worth on day zero; may be negative"
    )
    surplus_mean: float = Field(..., description="Mean daily surplus (income - spend)")
    surplus_std: float = Field(..., ge=0, description="Std dev of daily surplus")
    return_mean: float = Field(..., description="Expected annual return (decimal)")
    return_std: float = Field(..., ge=0, description="Annual return volatility")
    horizon_days: int = Field(..., ge=1, description="Number of simulated days")
    num_paths: int = Field(
        default=5000, ge=1, le=100000, description="Number of simulation paths"
    )
    trading_days_per_year: int = Field(
        default=252, ge=1, description="Days used to de-annualize returns"
    )
    seed: Optional[int] = Field(
        default=None, ge=0, description="Random seed for reproducibility"
    )

    @field_validator("starting_net_worth", "surplus_mean", "return_mean")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        """Reject NaN and infinite inputs."""
        if not math.isfinite(v):
            raise ValueError("Value must be finite")
        return v

    @property
    def daily_return_mean(self) -> float:
        return self.return_mean / self.trading_days_per_year

    @property
    def daily_return_std(self) -> float:
        return self.return_std / math.sqrt(self.trading_days_per_year)


class SimulationResult(BaseModel):
    """Percentile bands, one value per simulated day."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    config: NetWorthSimulationConfig
    p10: NDArray[np.float64] = Field(..., description="10th percentile by day")
    p50: NDArray[np.float64] = Field(..., description="Median by day")
    p90: NDArray[np.float64] = Field(..., description="90th percentile by day")

    @field_validator("p10", "p50", "p90")
    @classmethod
    def validate_one_dimensional(cls, v: NDArray) -> NDArray:
        """Bands must be 1-D arrays indexed by day."""
        if v.ndim != 1:
            raise ValueError(f"Percentile band must be 1-dimensional, got {v.ndim}D")
        return v

    @property
    def horizon_days(self) -> int:
        return int(self.p50.shape[0])

    def band_width(self) -> NDArray[np.float64]:
        """Spread between the 90th and 10th percentile for each day."""
        return self.p90 - self.p10

    def final_percentiles(self) -> Dict[str, float]:
        return {
            "p10": float(self.p10[-1]),
            "p50": float(self.p50[-1]),
            "p90": float(self.p90[-1]),
        }

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable view for presentation collaborators."""
        return {
            "horizon_days": self.horizon_days,
            "num_paths": self.config.num_paths,
            "p10": self.p10.tolist(),
            "p50": self.p50.tolist(),
            "p90": self.p90.tolist(),
        }


class NetWorthSimulator:
    """Runs the daily net-worth Monte Carlo for one configuration."""

    def __init__(
        self,
        config: NetWorthSimulationConfig,
        rng: Optional[np.random.Generator] = None,
    ):
        """Initialize the simulator.

        Args:
            config: Simulation parameters
            rng: Random source; defaults to a generator seeded from config.seed
        """
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)

    def simulate_paths(self) -> NDArray[np.float64]:
        """
        Simulate every path.

        Returns:
            Array of shape (horizon_days, num_paths) with net worth at the end
            of each day
        """
        config = self.config
        num_paths = config.num_paths
        daily_mu = config.daily_return_mean
        daily_sigma = config.daily_return_std

        net_worth = np.full(num_paths, float(config.starting_net_worth))
        history = np.empty((config.horizon_days, num_paths))

        for day in range(config.horizon_days):
            surplus = config.surplus_mean + config.surplus_std * standard_normal_sample(
                self.rng, num_paths
            )
            returns = daily_mu + daily_sigma * standard_normal_sample(
                self.rng, num_paths
            )
            net_worth = net_worth * (1.0 + returns) + surplus
            history[day] = net_worth

        return history

    def run(self) -> SimulationResult:
        """Simulate and reduce to percentile bands."""
        logger.debug(
            f"Simulating {self.config.num_paths} paths over "
            f"{self.config.horizon_days} days ({estimated_cost(self.config)} draws)"
        )
        history = self.simulate_paths()
        return reduce_to_percentiles(self.config, history)


def reduce_to_percentiles(
    config: NetWorthSimulationConfig, history: NDArray[np.float64]
) -> SimulationResult:
    """
    Reduce a (days, paths) history to p10/p50/p90 per day.

    Each day's sample is sorted before extraction, which guarantees
    p10 <= p50 <= p90. The bands are read-only so a cached result can be
    shared between callers.
    """
    ordered = np.sort(history, axis=1)
    bands: Dict[str, NDArray[np.float64]] = {
        name: np.empty(ordered.shape[0]) for name, _ in PERCENTILE_LEVELS
    }
    for day in range(ordered.shape[0]):
        day_sample = ordered[day]
        for name, level in PERCENTILE_LEVELS:
            bands[name][day] = quantile(day_sample, level)
    for band in bands.values():
        band.setflags(write=False)
    return SimulationResult(config=config, **bands)


def deterministic_path(config: NetWorthSimulationConfig) -> NDArray[np.float64]:
    """Net worth by day with both volatilities set to zero."""
    path = np.empty(config.horizon_days)
    net_worth = float(config.starting_net_worth)
    growth = 1.0 + config.daily_return_mean
    for day in range(config.horizon_days):
        net_worth = net_worth * growth + config.surplus_mean
        path[day] = net_worth
    return path


def estimated_cost(config: NetWorthSimulationConfig) -> int:
    """Number of normal draws a run will make (two per path per day)."""
    return 2 * config.num_paths * config.horizon_days


def simulate_net_worth(
    starting_net_worth: float,
    surplus_mean: float,
    surplus_std: float,
    return_mean: float,
    return_std: float,
    horizon_days: int,
    num_paths: int = 5000,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> SimulationResult:
    """
    Run a net-worth Monte Carlo from plain parameters.

    Raises:
        InvalidParameterError: If any parameter is invalid; raised before any
            simulation work starts
    """
    try:
        config = NetWorthSimulationConfig(
            starting_net_worth=starting_net_worth,
            surplus_mean=surplus_mean,
            surplus_std=surplus_std,
            return_mean=return_mean,
            return_std=return_std,
            horizon_days=horizon_days,
            num_paths=num_paths,
            seed=seed,
        )
    except ValidationError as e:
        raise from_validation_error(e)
    return NetWorthSimulator(config, rng=rng).run()
