"""
Financial health scoring.

This module turns income/expense/balance aggregates into savings rate,
momentum, liquidity runway, a composite 0-100 resilience score and a
closed-form goal-achievement probability. Every formula is pure and total:
degenerate divisors produce documented sentinels rather than exceptions.
"""

import math
from typing import TYPE_CHECKING, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .statistics import mean_and_std, standard_normal_cdf

if TYPE_CHECKING:
    from wealthcast.config import Settings

    from .aggregates import FinancialAggregate

SAVINGS_RATE_SENTINEL = -1.0
RUNWAY_SENTINEL_DAYS = 999.0


class ResilienceWeights(BaseModel):
    """Policy weights for the resilience composite."""

    model_config = ConfigDict(frozen=True)

    runway: float = Field(default=0.4, ge=0, le=1)
    savings_rate: float = Field(default=0.3, ge=0, le=1)
    volatility: float = Field(default=0.3, ge=0, le=1)
    runway_target_days: float = Field(
        default=90.0, gt=0, description="Runway that earns full credit"
    )

    @model_validator(mode="after")
    def validate_weights_sum(self) -> "ResilienceWeights":
        """Weights must sum to 1 so the score spans 0-100."""
        total = self.runway + self.savings_rate + self.volatility
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"Resilience weights must sum to 1.0, got {total}")
        return self


class ScoreAssumptions(BaseModel):
    """Market and benchmark assumptions used by the scorer."""

    model_config = ConfigDict(frozen=True)

    expected_market_return: float = Field(default=0.072)
    market_volatility: float = Field(default=0.15, ge=0)
    benchmark_volatility: float = Field(default=0.15, ge=0)
    savings_rate_benchmark_mean: float = Field(
        default=0.08, description="Typical household savings rate"
    )
    savings_rate_benchmark_std: float = Field(default=0.10, gt=0)
    weights: ResilienceWeights = Field(default_factory=ResilienceWeights)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ScoreAssumptions":
        return cls(
            expected_market_return=settings.expected_market_return,
            market_volatility=settings.market_volatility,
            benchmark_volatility=settings.benchmark_volatility,
        )


class GoalSpec(BaseModel):
    """Net-worth target and the time allowed to reach it."""

    model_config = ConfigDict(frozen=True)

    target_amount: float = Field(default=100000.0)
    horizon_years: float = Field(default=2.0, ge=0)


class ScoreBundle(BaseModel):
    """Composite health scores for one aggregate."""

    model_config = ConfigDict(frozen=True)

    savings_rate: float
    momentum: float
    liquidity_runway_days: float
    resilience_score: float = Field(..., ge=0, le=100)
    goal_probability: float = Field(..., ge=0, le=1)


def savings_rate(income: float, expense: float) -> float:
    """(income - expense) / income, or -1 when there is no income."""
    if income == 0:
        return SAVINGS_RATE_SENTINEL
    return (income - expense) / income


def momentum(short_window_rate: float, long_window_rate: float) -> float:
    """Positive when the recent savings rate beats the longer-run rate."""
    return short_window_rate - long_window_rate


def liquidity_runway_days(balance: float, avg_daily_burn: float) -> float:
    """Days the balance lasts at the current burn; 999 when nothing is spent."""
    if avg_daily_burn == 0:
        return RUNWAY_SENTINEL_DAYS
    return balance / avg_daily_burn


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def resilience_score(
    runway_days: float,
    savings_rate_percentile: float,
    net_worth_volatility: float,
    benchmark_volatility: float,
    weights: Optional[ResilienceWeights] = None,
) -> float:
    """
    Weighted composite of runway, savings strength and relative volatility.

    Each term is clamped to [0, 1] before weighting and the scaled result is
    clamped to [0, 100].

    Args:
        runway_days: Liquidity runway in days
        savings_rate_percentile: Savings-rate standing in [0, 1]
        net_worth_volatility: Volatility of the user's net worth
        benchmark_volatility: Reference volatility; non-positive disables the term
        weights: Policy weights (defaults 0.4 / 0.3 / 0.3)

    Returns:
        Score in [0, 100]
    """
    weights = weights or ResilienceWeights()

    runway_term = _clamp(runway_days / weights.runway_target_days)
    savings_term = _clamp(savings_rate_percentile)
    if benchmark_volatility > 0:
        volatility_term = _clamp(1.0 - net_worth_volatility / benchmark_volatility)
    else:
        volatility_term = 0.0

    score = (
        weights.runway * runway_term
        + weights.savings_rate * savings_term
        + weights.volatility * volatility_term
    )
    return _clamp(score * 100.0, 0.0, 100.0)


def goal_achievement_probability(
    current_amount: float,
    target_amount: float,
    time_horizon: float,
    expected_drift_rate: float,
    drift_volatility: float,
) -> float:
    """
    Probability that net worth is at or above the target at the horizon.

    Net worth follows geometric Brownian motion, so
    z = (ln(target / current) - (mu - sigma^2 / 2) T) / (sigma sqrt(T))
    and Phi(z) is the probability of finishing below the target. The goal is
    met with probability 1 - Phi(z).

    Args:
        current_amount: Net worth today
        target_amount: Goal amount
        time_horizon: Years until the goal date
        expected_drift_rate: Annual drift mu
        drift_volatility: Annual volatility sigma

    Returns:
        Probability in [0, 1]
    """
    if target_amount <= 0:
        return 1.0
    if current_amount <= 0:
        return 0.0
    if drift_volatility <= 0 or time_horizon <= 0:
        projected = current_amount * math.exp(expected_drift_rate * max(time_horizon, 0.0))
        return 1.0 if projected >= target_amount else 0.0

    numerator = math.log(target_amount / current_amount) - (
        expected_drift_rate - 0.5 * drift_volatility**2
    ) * time_horizon
    denominator = drift_volatility * math.sqrt(time_horizon)
    return _clamp(1.0 - standard_normal_cdf(numerator / denominator))


def net_worth_volatility(
    history: Optional[Sequence[float]], benchmark_volatility: float
) -> float:
    """
    Dispersion of a net-worth history relative to its magnitude, sigma / |mu|.

    Net worth may be negative, so the mean enters by absolute value. With
    fewer than two observations or a zero mean the benchmark is returned,
    which leaves the volatility term neutral.
    """
    if not history or len(history) < 2:
        return benchmark_volatility
    mean, std = mean_and_std(history)
    if mean == 0:
        return benchmark_volatility
    return std / abs(mean)


def savings_rate_percentile(
    rate: float, assumptions: Optional[ScoreAssumptions] = None
) -> float:
    """Standing of a savings rate against the benchmark distribution, in [0, 1]."""
    assumptions = assumptions or ScoreAssumptions()
    if rate == SAVINGS_RATE_SENTINEL:
        return 0.0
    z = (rate - assumptions.savings_rate_benchmark_mean) / (
        assumptions.savings_rate_benchmark_std
    )
    return standard_normal_cdf(z)


class FinancialHealthScorer:
    """Builds a ScoreBundle from a FinancialAggregate."""

    def __init__(self, assumptions: Optional[ScoreAssumptions] = None):
        """Initialize the scorer.

        Args:
            assumptions: Market and benchmark assumptions
        """
        self.assumptions = assumptions or ScoreAssumptions()

    def score(
        self,
        aggregate: "FinancialAggregate",
        goal: Optional[GoalSpec] = None,
        net_worth_history: Optional[Sequence[float]] = None,
        liquid_balance: Optional[float] = None,
    ) -> ScoreBundle:
        """
        Score an aggregate.

        Args:
            aggregate: Monthly figures for the user
            goal: Net-worth goal; defaults to GoalSpec()
            net_worth_history: Recent net-worth observations; see
                net_worth_volatility(). Without history the volatility is taken
                to equal the benchmark.
            liquid_balance: Cash available for runway; defaults to net worth

        Returns:
            ScoreBundle
        """
        goal = goal or GoalSpec()
        assumptions = self.assumptions

        short_rate = aggregate.short_window_savings_rate
        long_rate = aggregate.long_window_savings_rate
        if (
            short_rate is None
            or long_rate is None
            or SAVINGS_RATE_SENTINEL in (short_rate, long_rate)
        ):
            current_momentum = 0.0
        else:
            current_momentum = momentum(short_rate, long_rate)

        balance = (
            liquid_balance if liquid_balance is not None else aggregate.current_net_worth
        )
        runway = liquidity_runway_days(balance, aggregate.avg_daily_burn)

        volatility = net_worth_volatility(
            net_worth_history, assumptions.benchmark_volatility
        )

        resilience = resilience_score(
            runway,
            savings_rate_percentile(aggregate.savings_rate, assumptions),
            volatility,
            assumptions.benchmark_volatility,
            assumptions.weights,
        )
        probability = goal_achievement_probability(
            aggregate.current_net_worth,
            goal.target_amount,
            goal.horizon_years,
            assumptions.expected_market_return,
            assumptions.market_volatility,
        )

        return ScoreBundle(
            savings_rate=aggregate.savings_rate,
            momentum=current_momentum,
            liquidity_runway_days=runway,
            resilience_score=resilience,
            goal_probability=probability,
        )
