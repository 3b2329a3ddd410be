"""
Forecast service: the integration layer external callers invoke.

This service combines the health scorer, the net-worth simulator and the
pattern detector across the named scenarios (current, optimistic,
conservative, crisis), producing month-by-month projections, summaries and
human-readable insight strings.
"""

import datetime as dt
import logging
import math
from typing import Dict, List, Optional, Sequence

import numpy as np
from pydantic import ValidationError

from wealthcast.config import Settings, get_global_settings
from wealthcast.errors import InvalidParameterError, from_validation_error
from wealthcast.models.aggregates import FinancialAggregate
from wealthcast.models.flows import Transaction
from wealthcast.models.forecast import (
    SCENARIO_MODIFIERS,
    ForecastProfile,
    MonthlyProjection,
    Scenario,
    ScenarioAnalysis,
    ScenarioSummary,
    WhatIfResult,
)
from wealthcast.models.health_scorer import (
    FinancialHealthScorer,
    GoalSpec,
    ScoreAssumptions,
    ScoreBundle,
    savings_rate,
)
from wealthcast.models.net_worth_simulator import (
    NetWorthSimulationConfig,
    NetWorthSimulator,
    SimulationResult,
)
from wealthcast.models.pattern_detector import (
    BehavioralPatternDetector,
    PatternInsight,
    rank_insights,
)

from .result_cache import ResultCache

logger = logging.getLogger(__name__)

EMERGENCY_COVERAGE_MONTHS = 6
DAYS_PER_MONTH = 30.0


def _add_months(start: dt.date, months: int) -> dt.date:
    index = start.month - 1 + months
    return dt.date(start.year + index // 12, index % 12 + 1, 1)


class ForecastService:
    """Service for scenario projections, scores, simulations and insights."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[ResultCache] = None,
        scorer: Optional[FinancialHealthScorer] = None,
        detector: Optional[BehavioralPatternDetector] = None,
    ) -> None:
        """Initialize the forecast service.

        Args:
            settings: Engine settings; defaults to the global settings
            cache: Cache for simulation results; a fresh one is created from
                settings when omitted
            scorer: Health scorer; defaults to one built from settings
            detector: Pattern detector with the default policy
        """
        self.settings = settings or get_global_settings()
        self.cache = cache or ResultCache(
            max_entries=self.settings.cache_max_entries,
            ttl_seconds=self.settings.cache_ttl_seconds,
        )
        self.scorer = scorer or FinancialHealthScorer(
            ScoreAssumptions.from_settings(self.settings)
        )
        self.detector = detector or BehavioralPatternDetector()
        self.logger = logging.getLogger(__name__)

    # Scenario projections

    def project(
        self, profile: ForecastProfile, scenario: Scenario = Scenario.CURRENT
    ) -> List[MonthlyProjection]:
        """Project income, expenses, savings and balances month by month."""
        modifier = SCENARIO_MODIFIERS[scenario]
        start = profile.start_month or dt.date.today()
        start = start.replace(day=1)

        net_worth = profile.current_net_worth
        emergency_fund = max(0.0, profile.monthly_savings * profile.emergency_fund_months)
        projections: List[MonthlyProjection] = []

        for i in range(profile.months):
            growth = (1 + modifier.growth) ** (i / 12)
            income = profile.monthly_income * modifier.income * growth
            expenses = (
                profile.monthly_expenses
                * modifier.expenses
                * (1 + i * profile.expense_inflation_per_month)
            )
            savings = income - expenses

            net_worth += savings
            emergency_fund += max(0.0, savings * profile.emergency_fund_share)

            projections.append(
                MonthlyProjection(
                    month=_add_months(start, i),
                    income=income,
                    expenses=expenses,
                    savings=savings,
                    net_worth=net_worth,
                    emergency_fund=emergency_fund,
                    goal_progress=min(100.0, max(0.0, net_worth / profile.goal_target * 100)),
                )
            )

        return projections

    def analyze_scenario(
        self, profile: ForecastProfile, scenario: Scenario = Scenario.CURRENT
    ) -> ScenarioAnalysis:
        """Project a scenario and summarize the outcome."""
        projections = self.project(profile, scenario)
        final = projections[-1]

        goal_month = next(
            (i + 1 for i, p in enumerate(projections) if p.net_worth >= profile.goal_target),
            None,
        )

        coverage_base = final.expenses * EMERGENCY_COVERAGE_MONTHS
        coverage = final.emergency_fund / coverage_base if coverage_base > 0 else 0.0

        rates = [savings_rate(p.income, p.expenses) for p in projections]
        avg_rate = sum(rates) / len(rates)
        risk_score = max(0.0, min(100.0, 100 - avg_rate * 200))

        return ScenarioAnalysis(
            scenario=scenario,
            projections=projections,
            summary=ScenarioSummary(
                final_net_worth=final.net_worth,
                goal_achievement_months=goal_month or profile.months,
                goal_reached=goal_month is not None,
                emergency_fund_coverage=coverage,
                risk_score=risk_score,
            ),
        )

    def analyze_all(self, profile: ForecastProfile) -> Dict[Scenario, ScenarioAnalysis]:
        self.logger.info(
            f"Analyzing {len(Scenario)} scenarios over {profile.months} months"
        )
        return {scenario: self.analyze_scenario(profile, scenario) for scenario in Scenario}

    def forecast_insights(self, profile: ForecastProfile) -> List[str]:
        """Compare scenarios and describe the trajectory in a few sentences."""
        analyses = self.analyze_all(profile)
        current = analyses[Scenario.CURRENT].summary
        optimistic = analyses[Scenario.OPTIMISTIC].summary
        crisis = analyses[Scenario.CRISIS].summary

        insights: List[str] = []
        base_rate = savings_rate(profile.monthly_income, profile.monthly_expenses)
        if base_rate > 0.2:
            insights.append(
                "Excellent savings rate! You're on track for early financial independence."
            )
        elif base_rate > 0.1:
            insights.append(
                "Good savings rate. Consider increasing it by 5% to accelerate wealth building."
            )
        elif base_rate > 0:
            insights.append(
                "Low savings rate detected. Optimizing expenses could improve your "
                "financial trajectory."
            )
        else:
            insights.append("Negative savings rate. Immediate budget optimization recommended.")

        months_saved = current.goal_achievement_months - optimistic.goal_achievement_months
        if optimistic.goal_reached and months_saved > 6:
            insights.append(
                f"Optimizing your finances could help you reach your goal "
                f"{months_saved} months earlier."
            )

        if crisis.final_net_worth < 0:
            insights.append(
                "Building a larger emergency fund would improve your crisis resilience."
            )

        if profile.current_net_worth != 0:
            growth = (
                (current.final_net_worth - profile.current_net_worth)
                / abs(profile.current_net_worth)
                * 100
            )
            years = profile.months / 12
            insights.append(
                f"Current trajectory projects {growth:.1f}% net worth growth over "
                f"{years:g} years."
            )

        return insights

    def what_if(
        self,
        profile: ForecastProfile,
        income_change: float = 0.0,
        expense_change: float = 0.0,
        additional_savings: float = 0.0,
    ) -> WhatIfResult:
        """Twelve-month effect of adjusting monthly income, expenses or savings."""
        income = profile.monthly_income + income_change
        expenses = profile.monthly_expenses + expense_change
        if income < 0 or expenses < 0:
            raise InvalidParameterError("Adjusted income and expenses must be non-negative")

        monthly_savings = income - expenses + additional_savings
        gap = profile.goal_target - profile.current_net_worth
        if gap <= 0:
            months_to_goal: Optional[int] = 0
        elif monthly_savings > 0:
            months_to_goal = math.ceil(gap / monthly_savings)
        else:
            months_to_goal = None

        return WhatIfResult(
            new_monthly_savings=monthly_savings,
            new_savings_rate=monthly_savings / income if income > 0 else 0.0,
            future_net_worth=profile.current_net_worth + monthly_savings * 12,
            months_to_goal=months_to_goal,
            improvement_vs_current=monthly_savings - profile.monthly_savings,
        )

    # Monte Carlo

    def simulate_net_worth(
        self,
        config: NetWorthSimulationConfig,
        rng: Optional[np.random.Generator] = None,
    ) -> SimulationResult:
        """
        Run (or reuse) a net-worth simulation.

        Results are cached by configuration. An injected ``rng`` bypasses the
        cache because its state is part of the input.

        Raises:
            InvalidParameterError: If the path count exceeds MC_MAX_PATHS
        """
        if config.num_paths > self.settings.mc_max_paths:
            raise InvalidParameterError(
                f"num_paths {config.num_paths} exceeds the limit of "
                f"{self.settings.mc_max_paths}"
            )
        if rng is not None:
            return NetWorthSimulator(config, rng=rng).run()

        def compute() -> SimulationResult:
            self.logger.info(
                f"Running net worth simulation: {config.num_paths} paths, "
                f"{config.horizon_days} days"
            )
            return NetWorthSimulator(config).run()

        return self.cache.get_or_compute(("net_worth", config), compute)

    def scenario_fan_chart(
        self,
        profile: ForecastProfile,
        scenario: Scenario = Scenario.CURRENT,
        surplus_volatility_ratio: float = 0.8,
        horizon_days: Optional[int] = None,
        num_paths: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> SimulationResult:
        """
        Simulate net worth under a scenario's income and expense multipliers.

        Args:
            profile: Base monthly finances
            scenario: Scenario whose multipliers shape the daily surplus
            surplus_volatility_ratio: Daily surplus std as a multiple of |mean|
            horizon_days: Defaults to MC_DEFAULT_HORIZON_DAYS
            num_paths: Defaults to MC_DEFAULT_PATHS
            seed: Random seed for a reproducible fan

        Raises:
            InvalidParameterError: If the resulting parameters are invalid
        """
        modifier = SCENARIO_MODIFIERS[scenario]
        monthly_surplus = (
            profile.monthly_income * modifier.income
            - profile.monthly_expenses * modifier.expenses
        )
        surplus_mean = monthly_surplus / DAYS_PER_MONTH
        try:
            config = NetWorthSimulationConfig(
                starting_net_worth=profile.current_net_worth,
                surplus_mean=surplus_mean,
                surplus_std=abs(surplus_mean) * surplus_volatility_ratio,
                return_mean=self.settings.expected_market_return,
                return_std=self.settings.market_volatility,
                horizon_days=horizon_days or self.settings.mc_default_horizon_days,
                num_paths=num_paths or self.settings.mc_default_paths,
                seed=seed,
            )
        except ValidationError as e:
            self.logger.warning(f"Rejected fan chart parameters: {e}")
            raise from_validation_error(e)
        return self.simulate_net_worth(config)

    # Scores and patterns

    def score(
        self,
        aggregate: FinancialAggregate,
        goal: Optional[GoalSpec] = None,
        net_worth_history: Optional[Sequence[float]] = None,
        liquid_balance: Optional[float] = None,
    ) -> ScoreBundle:
        return self.scorer.score(
            aggregate,
            goal=goal,
            net_worth_history=net_worth_history,
            liquid_balance=liquid_balance,
        )

    def detect_patterns(
        self,
        transactions: Sequence[Transaction],
        monthly_income: Optional[float] = None,
        top_n: Optional[int] = 2,
    ) -> List[PatternInsight]:
        """Detect behavioral insights and return the most significant ones."""
        insights = self.detector.detect(transactions, monthly_income=monthly_income)
        self.logger.debug(f"Detected {len(insights)} behavioral insights")
        return rank_insights(insights, top_n=top_n)


def build_profile(
    monthly_income: float,
    monthly_expenses: float,
    current_net_worth: float = 0.0,
    **kwargs,
) -> ForecastProfile:
    """
    Build a ForecastProfile, rejecting negative income or expenses.

    Raises:
        InvalidParameterError: If any field is invalid
    """
    try:
        return ForecastProfile(
            monthly_income=monthly_income,
            monthly_expenses=monthly_expenses,
            current_net_worth=current_net_worth,
            **kwargs,
        )
    except ValidationError as e:
        logger.warning(f"Rejected forecast profile: {e}")
        raise from_validation_error(e)


def profile_from_aggregate(
    aggregate: FinancialAggregate, **kwargs
) -> ForecastProfile:
    """Seed a forecast profile from a derived aggregate."""
    return build_profile(
        aggregate.monthly_income,
        aggregate.monthly_expenses,
        aggregate.current_net_worth,
        **kwargs,
    )
