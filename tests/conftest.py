"""
Pytest configuration and shared fixtures for the wealthcast tests.
"""

import datetime as dt

import pytest

from wealthcast.config import Settings, reset_global_settings
from wealthcast.models.flows import Flow, Transaction


@pytest.fixture(autouse=True)
def reset_settings():
    """Keep the global settings instance from leaking between tests."""
    reset_global_settings()
    yield
    reset_global_settings()


@pytest.fixture
def settings():
    """Settings with defaults, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def make_transaction():
    """Factory for transactions; outflows unless inflow=True."""
    counter = {"n": 0}

    def _make(
        amount,
        date,
        category="Groceries",
        time=None,
        inflow=False,
        merchant=None,
    ):
        counter["n"] += 1
        flow = Flow.inflow(amount) if inflow else Flow.outflow(amount)
        return Transaction(
            id=f"tx_{counter['n']}",
            flow=flow,
            date=date,
            category=category,
            merchant=merchant,
            time=time,
        )

    return _make


@pytest.fixture
def daily_spend(make_transaction):
    """Build one outflow per day starting at ``start`` from a list of amounts."""

    def _build(amounts, start=dt.date(2024, 1, 1), category="Groceries"):
        return [
            make_transaction(amount, start + dt.timedelta(days=i), category=category)
            for i, amount in enumerate(amounts)
        ]

    return _build
