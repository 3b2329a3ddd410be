"""
Tests for deriving monthly aggregates from a transaction window.
"""

import datetime as dt

import pytest

from wealthcast.errors import InvalidParameterError
from wealthcast.models.aggregates import FinancialAggregate, build_aggregate


class TestFinancialAggregate:
    """Test direct construction from monthly figures."""

    def test_from_values(self):
        aggregate = FinancialAggregate.from_values(5000, 3000, 20000, 0.4, 0.35)

        assert aggregate.monthly_savings == 2000
        assert aggregate.savings_rate == pytest.approx(0.4)
        assert aggregate.avg_daily_burn == pytest.approx(100.0)
        assert aggregate.short_window_savings_rate == 0.4

    def test_zero_income_uses_sentinel(self):
        aggregate = FinancialAggregate.from_values(0, 1200, 5000)
        assert aggregate.savings_rate == -1.0
        assert aggregate.monthly_savings == -1200


class TestBuildAggregate:
    """Test window arithmetic over transactions."""

    @pytest.fixture
    def quarter(self, make_transaction):
        txs = []
        for month in (1, 2, 3):
            txs.append(make_transaction(3000, dt.date(2024, month, 15), "Salary", inflow=True))
            txs.append(make_transaction(1500, dt.date(2024, month, 20), "Rent"))
        txs.append(make_transaction(600, dt.date(2024, 3, 25), "Travel"))
        return txs

    def test_monthly_figures_from_long_window(self, quarter):
        aggregate = build_aggregate(quarter, 25000, as_of=dt.date(2024, 3, 31))

        assert aggregate.monthly_income == pytest.approx(3000)
        assert aggregate.monthly_expenses == pytest.approx(1700)
        assert aggregate.monthly_savings == pytest.approx(1300)
        assert aggregate.avg_daily_burn == pytest.approx(5100 / 90)
        assert aggregate.current_net_worth == 25000

    def test_window_savings_rates(self, quarter):
        aggregate = build_aggregate(quarter, 25000, as_of=dt.date(2024, 3, 31))

        assert aggregate.short_window_savings_rate == pytest.approx(0.3)
        assert aggregate.long_window_savings_rate == pytest.approx(3900 / 9000)

    def test_as_of_defaults_to_latest_transaction(self, quarter):
        explicit = build_aggregate(quarter, 0, as_of=dt.date(2024, 3, 25))
        implicit = build_aggregate(quarter, 0)
        assert implicit == explicit

    def test_transactions_outside_window_ignored(self, make_transaction):
        txs = [
            make_transaction(9999, dt.date(2023, 1, 1), "Travel"),
            make_transaction(300, dt.date(2024, 1, 10), "Groceries"),
        ]
        aggregate = build_aggregate(txs, 0, as_of=dt.date(2024, 1, 10), long_window_days=30)
        assert aggregate.monthly_expenses == pytest.approx(300)

    def test_empty_history(self):
        aggregate = build_aggregate([], 1234.0)

        assert aggregate.monthly_income == 0
        assert aggregate.monthly_expenses == 0
        assert aggregate.savings_rate == -1.0
        assert aggregate.avg_daily_burn == 0
        assert aggregate.current_net_worth == 1234.0

    def test_spend_only_window_has_sentinel_rate(self, daily_spend):
        aggregate = build_aggregate(daily_spend([10.0] * 5), 0)
        assert aggregate.savings_rate == -1.0
        assert aggregate.short_window_savings_rate == -1.0

    @pytest.mark.parametrize(
        "short_days,long_days",
        [(0, 90), (30, 0), (-5, 90), (60, 30)],
    )
    def test_invalid_windows(self, short_days, long_days):
        with pytest.raises(InvalidParameterError):
            build_aggregate([], 0, short_window_days=short_days, long_window_days=long_days)
