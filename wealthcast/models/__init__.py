"""Data models and calculators for forecasting, scoring and pattern detection."""

from .flows import (
    Flow,
    FlowKind,
    SignConvention,
    Transaction,
    normalize_transactions,
)
from .aggregates import FinancialAggregate, build_aggregate
from .forecast import (
    ForecastProfile,
    MonthlyProjection,
    Scenario,
    ScenarioAnalysis,
    ScenarioModifier,
    ScenarioSummary,
    WhatIfResult,
)
from .health_scorer import (
    FinancialHealthScorer,
    GoalSpec,
    ResilienceWeights,
    ScoreAssumptions,
    ScoreBundle,
    goal_achievement_probability,
    liquidity_runway_days,
    momentum,
    net_worth_volatility,
    resilience_score,
    savings_rate,
)
from .net_worth_simulator import (
    NetWorthSimulationConfig,
    NetWorthSimulator,
    SimulationResult,
    simulate_net_worth,
)
from .pattern_detector import (
    BehavioralMetrics,
    BehavioralPatternDetector,
    InsightType,
    PatternInsight,
    PatternPolicy,
    rank_insights,
)

__all__ = [
    "Flow",
    "FlowKind",
    "SignConvention",
    "Transaction",
    "normalize_transactions",
    "FinancialAggregate",
    "build_aggregate",
    "ForecastProfile",
    "MonthlyProjection",
    "Scenario",
    "ScenarioAnalysis",
    "ScenarioModifier",
    "ScenarioSummary",
    "WhatIfResult",
    "FinancialHealthScorer",
    "GoalSpec",
    "ResilienceWeights",
    "ScoreAssumptions",
    "ScoreBundle",
    "goal_achievement_probability",
    "liquidity_runway_days",
    "momentum",
    "net_worth_volatility",
    "resilience_score",
    "savings_rate",
    "NetWorthSimulationConfig",
    "NetWorthSimulator",
    "SimulationResult",
    "simulate_net_worth",
    "BehavioralMetrics",
    "BehavioralPatternDetector",
    "InsightType",
    "PatternInsight",
    "PatternPolicy",
    "rank_insights",
]
