"""Scenario definitions and projection records for the forecast service."""

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Scenario(str, Enum):
    CURRENT = "current"
    OPTIMISTIC = "optimistic"
    CONSERVATIVE = "conservative"
    CRISIS = "crisis"


class ScenarioModifier(BaseModel):
    """Multipliers applied to the base profile, plus annual income growth."""

    model_config = ConfigDict(frozen=True)

    income: float = Field(..., ge=0)
    expenses: float = Field(..., ge=0)
    growth: float = Field(..., description="Annual income growth drift")


SCENARIO_MODIFIERS: Dict[Scenario, ScenarioModifier] = {
    Scenario.CURRENT: ScenarioModifier(income=1.0, expenses=1.0, growth=0.02),
    Scenario.OPTIMISTIC: ScenarioModifier(income=1.1, expenses=0.95, growth=0.05),
    Scenario.CONSERVATIVE: ScenarioModifier(income=0.95, expenses=1.05, growth=0.01),
    Scenario.CRISIS: ScenarioModifier(income=0.7, expenses=1.2, growth=-0.02),
}


class ForecastProfile(BaseModel):
    """A user's declared or derived monthly finances."""

    model_config = ConfigDict(frozen=True)

    monthly_income: float = Field(..., ge=0, description="Monthly income")
    monthly_expenses: float = Field(..., ge=0, description="Monthly expenses")
    current_net_worth: float = Field(default=0.0)
    emergency_fund_months: float = Field(default=3.0, ge=0)
    goal_target: float = Field(default=100000.0, gt=0)
    months: int = Field(default=24, ge=1, le=600, description="Projection length")
    expense_inflation_per_month: float = Field(default=0.002, ge=0)
    emergency_fund_share: float = Field(
        default=0.3, ge=0, le=1, description="Share of positive savings set aside"
    )
    start_month: Optional[dt.date] = Field(
        default=None, description="First projected month; defaults to this month"
    )

    @property
    def monthly_savings(self) -> float:
        return self.monthly_income - self.monthly_expenses


class MonthlyProjection(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: dt.date
    income: float
    expenses: float
    savings: float
    net_worth: float
    emergency_fund: float
    goal_progress: float = Field(..., ge=0, le=100)


class ScenarioSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    final_net_worth: float
    goal_achievement_months: int = Field(
        ..., description="First month reaching the goal, or the horizon if never"
    )
    goal_reached: bool
    emergency_fund_coverage: float
    risk_score: float = Field(..., ge=0, le=100)


class ScenarioAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    scenario: Scenario
    projections: List[MonthlyProjection]
    summary: ScenarioSummary


class WhatIfResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    new_monthly_savings: float
    new_savings_rate: float
    future_net_worth: float
    months_to_goal: Optional[int] = Field(
        ..., description="None when the goal is never reached"
    )
    improvement_vs_current: float
