"""
Tests for the forecast service.
"""

import datetime as dt

import numpy as np
import pytest

from wealthcast.config import Settings
from wealthcast.errors import InvalidParameterError
from wealthcast.models.aggregates import FinancialAggregate
from wealthcast.models.forecast import SCENARIO_MODIFIERS, ForecastProfile, Scenario
from wealthcast.models.net_worth_simulator import NetWorthSimulationConfig
from wealthcast.models.pattern_detector import InsightType
from wealthcast.services.forecast_service import (
    ForecastService,
    build_profile,
    profile_from_aggregate,
)
from wealthcast.services.result_cache import ResultCache


@pytest.fixture
def service(settings):
    return ForecastService(settings=settings)


@pytest.fixture
def profile():
    return ForecastProfile(
        monthly_income=5000,
        monthly_expenses=3000,
        current_net_worth=90000,
        start_month=dt.date(2024, 3, 15),
    )


class TestScenarioModifiers:
    def test_all_scenarios_defined(self):
        assert set(SCENARIO_MODIFIERS) == set(Scenario)
        assert SCENARIO_MODIFIERS[Scenario.CRISIS].income == 0.7
        assert SCENARIO_MODIFIERS[Scenario.CRISIS].growth == -0.02


class TestProject:
    """Test month-by-month projections."""

    def test_first_month(self, service, profile):
        first = service.project(profile)[0]

        assert first.month == dt.date(2024, 3, 1)
        assert first.income == pytest.approx(5000)
        assert first.expenses == pytest.approx(3000)
        assert first.savings == pytest.approx(2000)
        assert first.net_worth == pytest.approx(92000)
        assert first.emergency_fund == pytest.approx(6000 + 600)
        assert first.goal_progress == pytest.approx(92.0)

    def test_growth_and_inflation(self, service, profile):
        projections = service.project(profile)

        assert len(projections) == 24
        assert projections[12].income == pytest.approx(5000 * 1.02)
        assert projections[10].expenses == pytest.approx(3000 * 1.02)
        assert projections[10].month == dt.date(2025, 1, 1)

    def test_scenario_multipliers(self, service, profile):
        first = service.project(profile, Scenario.CRISIS)[0]
        assert first.income == pytest.approx(3500)
        assert first.expenses == pytest.approx(3600)
        assert first.net_worth == pytest.approx(89900)

    def test_goal_progress_capped(self, service, profile):
        last = service.project(profile)[-1]
        assert last.goal_progress == 100.0

    def test_negative_savings_fund_not_seeded(self, service):
        deficit = ForecastProfile(monthly_income=1000, monthly_expenses=3000)
        projections = service.project(deficit)

        assert all(p.emergency_fund == 0 for p in projections)
        assert all(p.goal_progress == 0 for p in projections)


class TestAnalyzeScenario:
    """Test scenario summaries."""

    def test_goal_month(self, service, profile):
        summary = service.analyze_scenario(profile).summary

        assert summary.goal_achievement_months == 5
        assert summary.goal_reached is True

    def test_goal_never_reached(self, service):
        profile = ForecastProfile(monthly_income=3000, monthly_expenses=2900, months=12)
        summary = service.analyze_scenario(profile).summary

        assert summary.goal_reached is False
        assert summary.goal_achievement_months == 12

    def test_emergency_fund_coverage(self, service, profile):
        analysis = service.analyze_scenario(profile)
        final = analysis.projections[-1]
        assert analysis.summary.emergency_fund_coverage == pytest.approx(
            final.emergency_fund / (final.expenses * 6)
        )

    def test_risk_score_ordering(self, service, profile):
        analyses = service.analyze_all(profile)

        current = analyses[Scenario.CURRENT].summary.risk_score
        crisis = analyses[Scenario.CRISIS].summary.risk_score
        optimistic = analyses[Scenario.OPTIMISTIC].summary.risk_score
        assert optimistic < current < crisis
        assert crisis == 100.0

    def test_zero_income_profile(self, service):
        summary = service.analyze_scenario(
            ForecastProfile(monthly_income=0, monthly_expenses=0)
        ).summary
        assert summary.risk_score == 100.0
        assert summary.emergency_fund_coverage == 0.0

    def test_analyze_all_covers_scenarios(self, service, profile):
        assert set(service.analyze_all(profile)) == set(Scenario)


class TestForecastInsights:
    """Test the narrative insight strings."""

    def test_excellent_saver(self, service):
        profile = ForecastProfile(monthly_income=8000, monthly_expenses=6000, months=60)
        insights = service.forecast_insights(profile)

        assert insights[0].startswith("Excellent savings rate!")
        assert any("months earlier" in message for message in insights)
        assert (
            "Building a larger emergency fund would improve your crisis resilience."
            in insights
        )
        assert not any("net worth growth" in message for message in insights)

    def test_growth_message(self, service, profile):
        insights = service.forecast_insights(profile)
        assert insights[-1].startswith("Current trajectory projects")
        assert insights[-1].endswith("net worth growth over 2 years.")

    @pytest.mark.parametrize(
        "expenses,prefix",
        [
            (4400, "Good savings rate."),
            (4700, "Low savings rate detected."),
            (5000, "Negative savings rate."),
        ],
    )
    def test_savings_rate_bands(self, service, expenses, prefix):
        profile = ForecastProfile(monthly_income=5000, monthly_expenses=expenses)
        assert service.forecast_insights(profile)[0].startswith(prefix)


class TestWhatIf:
    """Test adjusted-budget what-if analysis."""

    def test_income_change(self, service, profile):
        result = service.what_if(profile, income_change=1000)

        assert result.new_monthly_savings == 3000
        assert result.new_savings_rate == pytest.approx(0.5)
        assert result.future_net_worth == 126000
        assert result.months_to_goal == 4
        assert result.improvement_vs_current == 1000

    def test_goal_already_met(self, service):
        profile = ForecastProfile(
            monthly_income=5000, monthly_expenses=3000, current_net_worth=150000
        )
        assert service.what_if(profile).months_to_goal == 0

    def test_goal_unreachable(self, service, profile):
        result = service.what_if(profile, expense_change=2500)
        assert result.months_to_goal is None
        assert result.new_monthly_savings == -500

    def test_additional_savings(self, service, profile):
        result = service.what_if(profile, additional_savings=500)
        assert result.new_monthly_savings == 2500
        assert result.improvement_vs_current == 500

    def test_negative_adjusted_values_rejected(self, service, profile):
        with pytest.raises(InvalidParameterError):
            service.what_if(profile, income_change=-6000)
        with pytest.raises(InvalidParameterError):
            service.what_if(profile, expense_change=-4000)

    def test_zero_income(self, service):
        profile = ForecastProfile(monthly_income=0, monthly_expenses=100)
        assert service.what_if(profile).new_savings_rate == 0.0


class TestSimulateNetWorth:
    """Test cached Monte Carlo runs."""

    @pytest.fixture
    def config(self):
        return NetWorthSimulationConfig(
            starting_net_worth=10000,
            surplus_mean=50,
            surplus_std=20,
            return_mean=0.07,
            return_std=0.15,
            horizon_days=30,
            num_paths=200,
            seed=3,
        )

    def test_results_are_cached(self, service, config):
        first = service.simulate_net_worth(config)
        second = service.simulate_net_worth(config)

        assert second is first
        assert service.cache.misses == 1
        assert service.cache.hits == 1

    def test_cached_result_cannot_be_mutated(self, service, config):
        first = service.simulate_net_worth(config)
        expected = first.p50.copy()

        with pytest.raises(ValueError):
            first.p50[0] = -1e9

        second = service.simulate_net_worth(config)
        np.testing.assert_array_equal(second.p50, expected)

    def test_injected_rng_bypasses_cache(self, service, config):
        result = service.simulate_net_worth(config, rng=np.random.default_rng(3))

        assert len(service.cache) == 0
        np.testing.assert_array_equal(result.p50, service.simulate_net_worth(config).p50)

    def test_path_limit(self, config):
        settings = Settings(_env_file=None, MC_MAX_PATHS=100, MC_DEFAULT_PATHS=50)
        service = ForecastService(settings=settings)
        with pytest.raises(InvalidParameterError, match="exceeds the limit"):
            service.simulate_net_worth(config)

    def test_shared_cache(self, settings, config):
        cache = ResultCache()
        ForecastService(settings=settings, cache=cache).simulate_net_worth(config)
        other = ForecastService(settings=settings, cache=cache)
        other.simulate_net_worth(config)
        assert cache.hits == 1


class TestScenarioFanChart:
    """Test scenario-driven simulations."""

    def test_fan_chart(self, service, profile):
        result = service.scenario_fan_chart(profile, horizon_days=60, num_paths=200, seed=1)

        assert result.horizon_days == 60
        assert result.config.surplus_mean == pytest.approx(2000 / 30)
        assert result.config.surplus_std == pytest.approx(0.8 * 2000 / 30)
        assert result.config.return_mean == pytest.approx(0.072)
        assert np.all(result.p10 <= result.p90)

    def test_crisis_fan_chart(self, service, profile):
        result = service.scenario_fan_chart(
            profile, Scenario.CRISIS, horizon_days=10, num_paths=50, seed=1
        )
        assert result.config.surplus_mean == pytest.approx(-100 / 30)

    def test_defaults_from_settings(self, profile):
        settings = Settings(
            _env_file=None, MC_DEFAULT_HORIZON_DAYS=20, MC_DEFAULT_PATHS=40
        )
        result = ForecastService(settings=settings).scenario_fan_chart(profile, seed=2)

        assert result.horizon_days == 20
        assert result.config.num_paths == 40

    def test_invalid_parameters(self, service, profile):
        with pytest.raises(InvalidParameterError):
            service.scenario_fan_chart(
                profile, surplus_volatility_ratio=-1.0, horizon_days=10, num_paths=10
            )


class TestScoresAndPatterns:
    """Test delegation to the scorer and detector."""

    def test_score(self, service):
        aggregate = FinancialAggregate.from_values(5000, 4000, 20000, 0.25, 0.2)
        bundle = service.score(aggregate)
        assert bundle.liquidity_runway_days == pytest.approx(150.0)
        assert bundle.momentum == pytest.approx(0.05)

    def test_score_uses_settings_assumptions(self):
        settings = Settings(_env_file=None, BENCHMARK_VOLATILITY=0.0)
        service = ForecastService(settings=settings)
        aggregate = FinancialAggregate.from_values(5000, 4000, 20000)
        stable = service.score(aggregate, net_worth_history=[1.0, 1.0])
        assert stable.resilience_score == pytest.approx(
            service.score(aggregate).resilience_score
        )

    def test_detect_patterns_ranked(self, service, make_transaction, daily_spend):
        transactions = daily_spend([1, 1, 1, 1, 100], category="Shopping")
        transactions.append(make_transaction(3000, dt.date(2024, 1, 1), "Salary", inflow=True))

        insights = service.detect_patterns(transactions)
        assert [i.type for i in insights] == [
            InsightType.BEHAVIORAL_MILESTONE,
            InsightType.VOLATILITY_FLAG,
        ]

        assert len(service.detect_patterns(transactions, top_n=1)) == 1


class TestBuildProfile:
    """Test profile construction helpers."""

    def test_build_profile(self):
        profile = build_profile(5000, 3000, 1000, months=12)
        assert profile.monthly_savings == 2000
        assert profile.months == 12

    @pytest.mark.parametrize(
        "income,expenses", [(-1, 100), (100, -1)]
    )
    def test_negative_values_rejected(self, income, expenses):
        with pytest.raises(InvalidParameterError):
            build_profile(income, expenses)

    def test_invalid_months_rejected(self):
        with pytest.raises(InvalidParameterError, match="months"):
            build_profile(5000, 3000, months=0)

    def test_profile_from_aggregate(self):
        aggregate = FinancialAggregate.from_values(4000, 2500, 7000)
        profile = profile_from_aggregate(aggregate, goal_target=50000)

        assert profile.monthly_income == 4000
        assert profile.monthly_expenses == 2500
        assert profile.current_net_worth == 7000
        assert profile.goal_target == 50000
