"""Monthly aggregates derived on demand from a transaction window."""

import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from wealthcast.errors import InvalidParameterError

from .flows import Transaction
from .health_scorer import savings_rate

DAYS_PER_MONTH = 30.0


class FinancialAggregate(BaseModel):
    """Monthly income/expense/balance figures derived from a history window."""

    model_config = ConfigDict(frozen=True)

    monthly_income: float = Field(..., ge=0)
    monthly_expenses: float = Field(..., ge=0)
    monthly_savings: float
    current_net_worth: float
    savings_rate: float = Field(..., description="Sentinel -1 when income is zero")
    short_window_savings_rate: Optional[float] = None
    long_window_savings_rate: Optional[float] = None
    avg_daily_burn: float = Field(default=0.0, ge=0)

    @classmethod
    def from_values(
        cls,
        monthly_income: float,
        monthly_expenses: float,
        current_net_worth: float,
        short_window_savings_rate: Optional[float] = None,
        long_window_savings_rate: Optional[float] = None,
    ) -> "FinancialAggregate":
        """Build an aggregate from already-known monthly figures."""
        return cls(
            monthly_income=monthly_income,
            monthly_expenses=monthly_expenses,
            monthly_savings=monthly_income - monthly_expenses,
            current_net_worth=current_net_worth,
            savings_rate=savings_rate(monthly_income, monthly_expenses),
            short_window_savings_rate=short_window_savings_rate,
            long_window_savings_rate=long_window_savings_rate,
            avg_daily_burn=monthly_expenses / DAYS_PER_MONTH,
        )


def _window_totals(
    transactions: List[Transaction], as_of: dt.date, days: int
) -> Dict[str, float]:
    start = as_of - dt.timedelta(days=days - 1)
    totals = {"income": 0.0, "expenses": 0.0}
    for tx in transactions:
        if start <= tx.date <= as_of:
            totals["income" if tx.is_inflow else "expenses"] += tx.amount
    return totals


def build_aggregate(
    transactions: List[Transaction],
    current_net_worth: float,
    as_of: Optional[dt.date] = None,
    short_window_days: int = 30,
    long_window_days: int = 90,
) -> FinancialAggregate:
    """
    Derive a FinancialAggregate from a transaction history.

    Monthly figures are scaled from the long window; momentum inputs come from
    the savings rates over the short and long windows.

    Args:
        transactions: Normalized transactions
        current_net_worth: Latest net worth from the balance collaborator
        as_of: End of the analysis window (defaults to the latest transaction)
        short_window_days: Lookback for the short savings rate
        long_window_days: Lookback for the long savings rate and monthly figures

    Returns:
        FinancialAggregate; zero flows when there is no history

    Raises:
        InvalidParameterError: If the windows are not positive or out of order
    """
    if short_window_days <= 0 or long_window_days <= 0:
        raise InvalidParameterError("Window lengths must be positive")
    if short_window_days > long_window_days:
        raise InvalidParameterError("Short window cannot exceed long window")

    if not transactions:
        return FinancialAggregate.from_values(0.0, 0.0, current_net_worth)

    as_of = as_of or max(tx.date for tx in transactions)
    short = _window_totals(transactions, as_of, short_window_days)
    long = _window_totals(transactions, as_of, long_window_days)

    months = long_window_days / DAYS_PER_MONTH
    monthly_income = long["income"] / months
    monthly_expenses = long["expenses"] / months

    return FinancialAggregate(
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        monthly_savings=monthly_income - monthly_expenses,
        current_net_worth=current_net_worth,
        savings_rate=savings_rate(monthly_income, monthly_expenses),
        short_window_savings_rate=savings_rate(short["income"], short["expenses"]),
        long_window_savings_rate=savings_rate(long["income"], long["expenses"]),
        avg_daily_burn=long["expenses"] / long_window_days,
    )
