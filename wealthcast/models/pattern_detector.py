"""
Behavioral pattern detection over a transaction window.

The detector measures per-category volatility, overall dispersion, temporal
clustering and savings streaks, and turns the unusual ones into
PatternInsight records. Every threshold, confidence and impact rate lives in
PatternPolicy so it can be tuned and tested apart from the detection logic.
"""

import datetime as dt
from collections import defaultdict
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .flows import Transaction
from .health_scorer import SAVINGS_RATE_SENTINEL, savings_rate
from .statistics import coefficient_of_variation, mean_and_std

DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)
WEEKEND_DAYS = frozenset({5, 6})


class InsightType(str, Enum):
    POSITIVE_STREAK = "positive_streak"
    VOLATILITY_FLAG = "volatility_flag"
    BEHAVIORAL_MILESTONE = "behavioral_milestone"
    TIME_PATTERN = "time_pattern"


class PatternPolicy(BaseModel):
    """Heuristic thresholds, confidences and impact rates for the detector."""

    model_config = ConfigDict(frozen=True)

    window_size: int = Field(default=200, ge=1, description="Most recent transactions analysed")

    # Volatility flags
    volatility_cv_threshold: float = Field(default=1.5, gt=0)
    volatility_impact_rate: float = Field(
        default=0.15, ge=0, description="Share of category spend at stake"
    )
    volatility_confidence: float = Field(default=88, ge=0, le=100)

    # Weekend time patterns
    time_pattern_categories: Tuple[str, ...] = Field(default=("Dining",))
    time_pattern_impact_rate: float = Field(
        default=0.14, ge=0, description="Impact per unit of weekend/weekday ratio"
    )
    weekend_ratio_cap: float = Field(default=3.0, gt=0)
    time_pattern_confidence: float = Field(default=87, ge=0, le=100)
    default_hour: int = Field(default=12, ge=0, le=23)

    # Savings streaks
    streak_spend_threshold: float = Field(
        default=0.8, gt=0, description="Fraction of mean daily spend"
    )
    streak_base_impact: float = Field(default=300.0)
    streak_weekly_impact: float = Field(default=50.0)
    streak_confidence: float = Field(default=94, ge=0, le=100)

    # Behavioral milestone
    milestone_savings_rate: float = Field(default=0.15)
    milestone_confidence: float = Field(default=96, ge=0, le=100)

    # Spending rhythm
    rhythm_window_days: int = Field(default=30, ge=2)
    rhythm_ratio: float = Field(default=1.3, gt=1)

    def tracks_time_pattern(self, category: str) -> bool:
        """Whether a category gets weekend time-pattern checks, ignoring case."""
        folded = category.casefold()
        return any(folded == c.casefold() for c in self.time_pattern_categories)


class PatternInsight(BaseModel):
    """A detected behavior worth surfacing to the user."""

    model_config = ConfigDict(frozen=True)

    type: InsightType
    category: str
    impact: float = Field(..., description="Signed monthly currency estimate")
    confidence: float = Field(..., ge=0, le=100)
    description: str
    formula: str
    timeframe: str

    @computed_field  # type: ignore[misc]
    @property
    def significance(self) -> float:
        """Impact weighted by confidence, used for ranking."""
        return abs(self.impact) * self.confidence / 100.0


class TimeCluster(BaseModel):
    model_config = ConfigDict(frozen=True)

    peak_day: int = Field(..., ge=0, le=6, description="0 = Monday")
    peak_hour: int = Field(..., ge=0, le=23)
    description: str

    @property
    def peak_day_name(self) -> str:
        return DAY_NAMES[self.peak_day]

    @property
    def is_weekend(self) -> bool:
        return self.peak_day in WEEKEND_DAYS


class BehavioralMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    entropy: float = Field(..., ge=0, le=1)
    volatility: float = Field(..., ge=0, le=1)
    consistency: float = Field(..., ge=0, le=1)
    time_cluster: str


_TYPE_ORDER = {
    InsightType.VOLATILITY_FLAG: 0,
    InsightType.TIME_PATTERN: 1,
    InsightType.POSITIVE_STREAK: 2,
    InsightType.BEHAVIORAL_MILESTONE: 3,
}


def rank_insights(
    insights: Sequence[PatternInsight], top_n: Optional[int] = 2
) -> List[PatternInsight]:
    """Order insights by significance (ties by type) and keep the top ``top_n``."""
    ranked = sorted(insights, key=lambda i: (-i.significance, _TYPE_ORDER[i.type]))
    return ranked if top_n is None else ranked[:top_n]


class BehavioralPatternDetector:
    """Detects spending patterns and produces insights."""

    def __init__(self, policy: Optional[PatternPolicy] = None):
        """Initialize the detector.

        Args:
            policy: Thresholds and heuristics; defaults to PatternPolicy()
        """
        self.policy = policy or PatternPolicy()

    def window(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        """The most recent ``window_size`` transactions in date order."""
        ordered = sorted(transactions, key=lambda tx: tx.date)
        return ordered[-self.policy.window_size :]

    @staticmethod
    def _spend(transactions: Sequence[Transaction]) -> List[Transaction]:
        return [tx for tx in transactions if tx.is_outflow]

    @staticmethod
    def _by_category(transactions: Sequence[Transaction]) -> Dict[str, List[Transaction]]:
        grouped: Dict[str, List[Transaction]] = defaultdict(list)
        for tx in transactions:
            grouped[tx.category].append(tx)
        return dict(grouped)

    def category_volatility(self, transactions: Sequence[Transaction]) -> Dict[str, float]:
        """Coefficient of variation of spend amounts for each category."""
        grouped = self._by_category(self._spend(transactions))
        return {
            category: coefficient_of_variation([tx.amount for tx in txs])
            for category, txs in grouped.items()
        }

    def entropy(self, transactions: Sequence[Transaction]) -> float:
        """Dispersion of all spend amounts (sigma / mu), capped at 1."""
        amounts = [tx.amount for tx in self._spend(transactions)]
        mean, std = mean_and_std(amounts)
        if mean <= 0:
            return 0.0
        return min(1.0, std / mean)

    def temporal_cluster(
        self, transactions: Sequence[Transaction], category: str
    ) -> Optional[TimeCluster]:
        """Peak day-of-week and hour for a category; None when it has no spend."""
        category_txns = [
            tx for tx in self._spend(transactions) if tx.category == category
        ]
        if not category_txns:
            return None

        day_counts = [0] * 7
        hour_counts = [0] * 24
        for tx in category_txns:
            day_counts[tx.date.weekday()] += 1
            hour = tx.hour if tx.hour is not None else self.policy.default_hour
            hour_counts[hour] += 1

        peak_day = day_counts.index(max(day_counts))
        peak_hour = hour_counts.index(max(hour_counts))
        return TimeCluster(
            peak_day=peak_day,
            peak_hour=peak_hour,
            description=f"Peak: {DAY_NAMES[peak_day]} around {peak_hour}:00",
        )

    def weekend_ratio(self, transactions: Sequence[Transaction], category: str) -> float:
        """Total weekend spend over total weekday spend for a category, capped."""
        weekend = weekday = 0.0
        for tx in self._spend(transactions):
            if tx.category != category:
                continue
            if tx.date.weekday() in WEEKEND_DAYS:
                weekend += tx.amount
            else:
                weekday += tx.amount
        if weekday == 0:
            return self.policy.weekend_ratio_cap if weekend > 0 else 0.0
        return min(weekend / weekday, self.policy.weekend_ratio_cap)

    def _daily_spend(self, transactions: Sequence[Transaction]) -> Dict[dt.date, float]:
        daily: Dict[dt.date, float] = defaultdict(float)
        for tx in self._spend(transactions):
            daily[tx.date] += tx.amount
        return dict(daily)

    def savings_streak_weeks(self, transactions: Sequence[Transaction]) -> int:
        """
        Longest run of low-spend days, in whole weeks.

        A day counts when its total spend is strictly below
        ``streak_spend_threshold`` times the mean daily spend.
        """
        daily = self._daily_spend(transactions)
        if not daily:
            return 0
        threshold = (sum(daily.values()) / len(daily)) * self.policy.streak_spend_threshold

        current = longest = 0
        for day in sorted(daily):
            if daily[day] < threshold:
                current += 1
                longest = max(longest, current)
            else:
                current = 0
        return longest // 7

    def spending_rhythm(self, transactions: Sequence[Transaction]) -> str:
        """Classify whether spend concentrates early or late in the recent window."""
        daily = self._daily_spend(transactions)
        window_days = self.policy.rhythm_window_days
        if not daily:
            return "Insufficient data"
        last_day = max(daily)
        if (last_day - min(daily)).days + 1 < window_days:
            return "Insufficient data"

        series = [
            daily.get(last_day - dt.timedelta(days=offset), 0.0)
            for offset in reversed(range(window_days))
        ]
        half = window_days // 2
        first_avg = sum(series[:half]) / half
        second_avg = sum(series[half:]) / (window_days - half)

        if second_avg > first_avg * self.policy.rhythm_ratio:
            return "Back-Half Spender"
        if first_avg > second_avg * self.policy.rhythm_ratio:
            return "Front-Loaded Spender"
        return "Consistent Spender"

    def detect(
        self,
        transactions: Sequence[Transaction],
        monthly_income: Optional[float] = None,
    ) -> List[PatternInsight]:
        """
        Generate insights for the most recent transaction window.

        Args:
            transactions: Normalized transactions (inflows and outflows)
            monthly_income: Declared income, used when the window has no inflows

        Returns:
            Unordered list of insights; use rank_insights() before display
        """
        policy = self.policy
        window = self.window(transactions)
        spend = self._spend(window)
        if not spend:
            return []

        span_days = (window[-1].date - window[0].date).days + 1
        insights: List[PatternInsight] = []
        grouped = self._by_category(spend)
        volatility = self.category_volatility(spend)

        for category in sorted(grouped):
            total = sum(tx.amount for tx in grouped[category])
            cv = volatility[category]

            if cv > policy.volatility_cv_threshold:
                above = round((cv / policy.volatility_cv_threshold - 1) * 100)
                insights.append(
                    PatternInsight(
                        type=InsightType.VOLATILITY_FLAG,
                        category=category,
                        impact=-round(total * policy.volatility_impact_rate),
                        confidence=policy.volatility_confidence,
                        description=(
                            f"{category} spending volatility is {above}% above "
                            f"the alert threshold."
                        ),
                        formula=f"CV = σ/μ = {cv:.2f} (high volatility)",
                        timeframe=f"Last {span_days} days",
                    )
                )

            if policy.tracks_time_pattern(category):
                cluster = self.temporal_cluster(spend, category)
                if cluster is not None and cluster.is_weekend:
                    ratio = self.weekend_ratio(spend, category)
                    insights.append(
                        PatternInsight(
                            type=InsightType.TIME_PATTERN,
                            category=category,
                            impact=-round(total * policy.time_pattern_impact_rate * ratio),
                            confidence=policy.time_pattern_confidence,
                            description=(
                                f"Weekend {category.lower()} spikes detected - weekend "
                                f"spend is {ratio:.1f}x weekday spend."
                            ),
                            formula=(
                                "weekend_ratio = Σ(weekend_spend) / Σ(weekday_spend) "
                                f"= {ratio:.2f}"
                            ),
                            timeframe=cluster.description,
                        )
                    )

        streak = self.savings_streak_weeks(spend)
        if streak > 0:
            insights.append(
                PatternInsight(
                    type=InsightType.POSITIVE_STREAK,
                    category="Savings",
                    impact=round(policy.streak_base_impact + streak * policy.streak_weekly_impact),
                    confidence=policy.streak_confidence,
                    description=f"Consistent savings behavior detected for {streak} weeks.",
                    formula=(
                        f"streak_multiplier = 1 + (weeks * 0.05) = {1 + streak * 0.05:.2f}"
                    ),
                    timeframe=f"{streak} week streak",
                )
            )

        milestone = self._milestone(window, span_days, monthly_income)
        if milestone is not None:
            insights.append(milestone)

        return insights

    def _milestone(
        self,
        window: Sequence[Transaction],
        span_days: int,
        monthly_income: Optional[float],
    ) -> Optional[PatternInsight]:
        months = max(span_days, 1) / 30.0
        total_spend = sum(tx.amount for tx in window if tx.is_outflow)
        total_income = sum(tx.amount for tx in window if tx.is_inflow)

        if total_income > 0:
            income = total_income / months
        elif monthly_income:
            income = monthly_income
        else:
            return None

        rate = savings_rate(income, total_spend / months)
        if rate == SAVINGS_RATE_SENTINEL or rate <= self.policy.milestone_savings_rate:
            return None

        return PatternInsight(
            type=InsightType.BEHAVIORAL_MILESTONE,
            category="Savings",
            impact=round(rate * income),
            confidence=self.policy.milestone_confidence,
            description=(
                f"Strong savings discipline - {round(rate * 100)}% savings rate achieved."
            ),
            formula=(
                f"savings_rate = (income - expenses) / income = {rate * 100:.1f}%"
            ),
            timeframe="Sustained performance",
        )

    def analyze_metrics(self, transactions: Sequence[Transaction]) -> BehavioralMetrics:
        """Summarize entropy, volatility, consistency and peak timing."""
        window = self.window(transactions)
        spend = self._spend(window)

        grouped = self._by_category(spend)
        volatilities = [
            cv
            for category, cv in self.category_volatility(spend).items()
            if len(grouped[category]) >= 2
        ]
        volatility = min(1.0, sum(volatilities) / len(volatilities)) if volatilities else 0.0

        time_cluster = "No activity"
        if grouped:
            top_category = max(
                sorted(grouped), key=lambda c: sum(tx.amount for tx in grouped[c])
            )
            cluster = self.temporal_cluster(spend, top_category)
            if cluster is not None:
                time_cluster = f"{top_category} {cluster.description}"

        return BehavioralMetrics(
            entropy=self.entropy(spend),
            volatility=volatility,
            consistency=1.0 - volatility,
            time_cluster=time_cluster,
        )
