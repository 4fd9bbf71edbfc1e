"""Domain models - pure Python dataclasses representing business entities"""

import math
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from twin_analytics.domain.categories import Category
from twin_analytics.domain.exceptions import InvalidTransactionDataError, ValidationError

# Weights for the overall score, in SCORE_DIMENSIONS order
SCORE_WEIGHTS = {
    "income_stability": 0.25,
    "spending_discipline": 0.20,
    "debt_trajectory": 0.20,
    "financial_resilience": 0.20,
    "growth_momentum": 0.15,
}
SCORE_DIMENSIONS = tuple(SCORE_WEIGHTS)
NEUTRAL_SCORE = 50.0


@dataclass(frozen=True)
class Transaction:
    """Categorized transaction supplied by the storage layer"""

    amount: float
    date: date
    merchant: Optional[str]
    category: Category
    is_recurring: bool = False
    is_income_deposit: bool = False
    transaction_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.category, Category):
            try:
                object.__setattr__(self, "category", Category(self.category))
            except ValueError:
                raise InvalidTransactionDataError(f"Unknown category: {self.category!r}")
        if not math.isfinite(self.amount):
            raise InvalidTransactionDataError(f"Non-finite amount: {self.amount!r}")


@dataclass(frozen=True)
class MonthlySummary:
    """Aggregated cash flows for one calendar month"""

    month: str  # YYYY-MM
    total_deposits: float
    total_spending: float
    essential_spending: float
    discretionary_spending: float
    debt_payments: float
    savings_transfers: float
    end_balance: float
    income_source_count: int
    overdraft_count: int  # 0/1 flag: running balance negative after this month
    subscription_count: int
    has_payroll_deposit: bool

    @property
    def net_flow(self) -> float:
        return self.total_deposits - self.total_spending

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScoreSet:
    """Five bounded sub-scores; overall is always their weighted sum"""

    income_stability: float
    spending_discipline: float
    debt_trajectory: float
    financial_resilience: float
    growth_momentum: float

    @property
    def overall(self) -> float:
        return (
            0.25 * self.income_stability
            + 0.20 * self.spending_discipline
            + 0.20 * self.debt_trajectory
            + 0.20 * self.financial_resilience
            + 0.15 * self.growth_momentum
        )

    @classmethod
    def neutral(cls) -> "ScoreSet":
        return cls(*(NEUTRAL_SCORE for _ in SCORE_DIMENSIONS))

    def delta(self, baseline: "ScoreSet") -> Dict[str, float]:
        """Per-dimension change of self relative to baseline, plus overall"""
        mine, theirs = self.to_dict(), baseline.to_dict()
        return {key: round(mine[key] - theirs[key], 2) for key in mine}

    def to_dict(self) -> Dict[str, float]:
        data = {name: getattr(self, name) for name in SCORE_DIMENSIONS}
        data["overall"] = self.overall
        return data


@dataclass(frozen=True)
class ScenarioModifier:
    """
    User-supplied behavioral change for the time machine.

    Every field defaults to "no change":
    - income_change_percent: 0.0 (percent applied to projected income, >= -100)
    - extra_monthly_savings: 0.0 (moved into savings transfers each month)
    - extra_monthly_debt_payment: 0.0 (added to debt payments each month)
    - monthly_expense_change: 0.0 (signed change to discretionary spend)
    - subscriptions_cancelled: 0
    - one_time_expense: 0.0 (lands once, in start_month)
    - switch_to_salaried: False (projected income becomes perfectly steady)
    - lose_income_stream: False (smallest income source stops)
    - start_month: 1 (first projected month the modifier is active, 1-based)
    """

    label: str = ""
    description: str = ""
    income_change_percent: float = 0.0
    extra_monthly_savings: float = 0.0
    extra_monthly_debt_payment: float = 0.0
    monthly_expense_change: float = 0.0
    subscriptions_cancelled: int = 0
    one_time_expense: float = 0.0
    switch_to_salaried: bool = False
    lose_income_stream: bool = False
    start_month: int = 1

    def __post_init__(self) -> None:
        if self.income_change_percent < -100:
            raise ValidationError("income_change_percent cannot be below -100")
        for name in ("extra_monthly_savings", "extra_monthly_debt_payment", "one_time_expense"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must be non-negative")
        if self.subscriptions_cancelled < 0:
            raise ValidationError("subscriptions_cancelled must be non-negative")
        if self.start_month < 1:
            raise ValidationError("start_month must be >= 1")

    def is_active(self, month_index: int) -> bool:
        return month_index >= self.start_month


@dataclass(frozen=True)
class StressScenario:
    """Catalog entry for a built-in stress scenario"""

    id: str
    label: str
    description: str


@dataclass(frozen=True)
class StressTestInput:
    """Scenario-specific parameters (custom and emergency_expense scenarios)"""

    custom_label: Optional[str] = None
    income_reduction_percent: float = 0.0
    expense_increase_percent: float = 0.0
    emergency_expense: Optional[float] = None

    def __post_init__(self) -> None:
        if not 0 <= self.income_reduction_percent <= 100:
            raise ValidationError("income_reduction_percent must be between 0 and 100")
        if self.expense_increase_percent < 0:
            raise ValidationError("expense_increase_percent must be non-negative")
        if self.emergency_expense is not None and self.emergency_expense < 0:
            raise ValidationError("emergency_expense must be non-negative")


@dataclass(frozen=True)
class StressBreakdown:
    current_monthly_income: float
    simulated_monthly_income: float
    current_monthly_expenses: float
    simulated_monthly_expenses: float
    current_monthly_surplus: float
    simulated_monthly_surplus: float
    estimated_savings: float


@dataclass(frozen=True)
class StressTestResult:
    """Outcome of applying one stress scenario to a history"""

    scenario_id: str
    scenario_label: str
    baseline_scores: ScoreSet
    stressed_scores: ScoreSet
    deltas: Dict[str, float]
    stressed_months: List[MonthlySummary]
    months_of_runway: int
    impact_severity: str  # low | moderate | high | critical
    breakdown: StressBreakdown
    recommendations: List[str]
    narrative: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "scenario_label": self.scenario_label,
            "baseline_scores": self.baseline_scores.to_dict(),
            "stressed_scores": self.stressed_scores.to_dict(),
            "deltas": dict(self.deltas),
            "stressed_months": [m.to_dict() for m in self.stressed_months],
            "months_of_runway": self.months_of_runway,
            "impact_severity": self.impact_severity,
            "breakdown": asdict(self.breakdown),
            "recommendations": list(self.recommendations),
            "narrative": self.narrative,
        }


@dataclass(frozen=True)
class TimeMachineMetrics:
    current_net_worth: float
    projected_net_worth: float
    net_worth_change: float
    current_emergency_runway: int
    projected_emergency_runway: int
    loan_approval_probability: int  # percent
    overdraft_probability: int  # percent
    total_saved_or_lost: float
    projected_debt_remaining: float


@dataclass(frozen=True)
class TimeMachineResult:
    """Projected trajectory and scores at the end of the horizon"""

    current_scores: ScoreSet
    projected_scores: ScoreSet
    score_deltas: Dict[str, float]
    projected_months: List[MonthlySummary]
    metrics: TimeMachineMetrics
    active_modifiers: List[str]
    months_projected: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_scores": self.current_scores.to_dict(),
            "projected_scores": self.projected_scores.to_dict(),
            "score_deltas": dict(self.score_deltas),
            "projected_months": [m.to_dict() for m in self.projected_months],
            "metrics": asdict(self.metrics),
            "active_modifiers": list(self.active_modifiers),
            "months_projected": self.months_projected,
        }


@dataclass(frozen=True)
class Anomaly:
    """Single anomaly finding linked back to a month or transaction"""

    category: str
    severity: str  # info | warning | alert
    month: str
    reference: str  # transaction id, or month key when no id is available
    title: str
    rationale: str
    advice: str = ""


@dataclass(frozen=True)
class AnomalyReport:
    findings: List[Anomaly] = field(default_factory=list)
    health_score: int = 100
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "findings": [asdict(a) for a in self.findings],
            "health_score": self.health_score,
            "summary": self.summary,
        }
