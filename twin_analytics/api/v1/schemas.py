"""Pydantic schemas for API request/response validation"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from twin_analytics.config import settings
from twin_analytics.domain.categories import Category
from twin_analytics.domain.models import ScenarioModifier, StressTestInput, Transaction


class TransactionSchema(BaseModel):
    """Single categorized transaction"""

    amount: float = Field(..., allow_inf_nan=False, description="Signed amount; magnitude is used")
    date: date
    merchant: Optional[str] = None
    category: Category
    is_recurring: bool = False
    is_income_deposit: bool = False
    transaction_id: Optional[str] = None

    def to_domain(self) -> Transaction:
        return Transaction(**self.model_dump())


class TransactionsRequest(BaseModel):
    """Full transaction history for one user"""

    transactions: List[TransactionSchema] = Field(default_factory=list)

    def domain_transactions(self) -> List[Transaction]:
        return [t.to_domain() for t in self.transactions]


class MonthlySummarySchema(BaseModel):
    month: str
    total_deposits: float
    total_spending: float
    essential_spending: float
    discretionary_spending: float
    debt_payments: float
    savings_transfers: float
    end_balance: float
    income_source_count: int
    overdraft_count: int
    subscription_count: int
    has_payroll_deposit: bool


class ScoreSetSchema(BaseModel):
    income_stability: float
    spending_discipline: float
    debt_trajectory: float
    financial_resilience: float
    growth_momentum: float
    overall: float


class ScoresResponse(BaseModel):
    """Response for POST /v1/scores"""

    months: List[MonthlySummarySchema]
    scores: ScoreSetSchema


class ScenarioSchema(BaseModel):
    id: str
    label: str
    description: str


class StressTestRequest(TransactionsRequest):
    """Request body for POST /v1/stress/{scenario_id}"""

    custom_label: Optional[str] = None
    income_reduction_percent: float = 0.0
    expense_increase_percent: float = 0.0
    emergency_expense: Optional[float] = None

    def stress_input(self) -> StressTestInput:
        return StressTestInput(
            custom_label=self.custom_label,
            income_reduction_percent=self.income_reduction_percent,
            expense_increase_percent=self.expense_increase_percent,
            emergency_expense=self.emergency_expense,
        )


class StressBreakdownSchema(BaseModel):
    current_monthly_income: float
    simulated_monthly_income: float
    current_monthly_expenses: float
    simulated_monthly_expenses: float
    current_monthly_surplus: float
    simulated_monthly_surplus: float
    estimated_savings: float


class StressTestResponse(BaseModel):
    scenario_id: str
    scenario_label: str
    baseline_scores: ScoreSetSchema
    stressed_scores: ScoreSetSchema
    deltas: dict[str, float]
    stressed_months: List[MonthlySummarySchema]
    months_of_runway: int
    impact_severity: str
    breakdown: StressBreakdownSchema
    recommendations: List[str]
    narrative: str


class ModifierSchema(BaseModel):
    """User-supplied modifier; omitted fields mean no change"""

    id: Optional[str] = None
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

    def to_domain(self) -> ScenarioModifier:
        return ScenarioModifier(**self.model_dump(exclude={"id"}))


class TimeMachineRequest(TransactionsRequest):
    """Request body for POST /v1/time-machine"""

    modifiers: List[ModifierSchema] = Field(default_factory=list)
    months_forward: int = settings.default_horizon_months
    anchor_month: Optional[str] = Field(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$")


class TimeMachineMetricsSchema(BaseModel):
    current_net_worth: float
    projected_net_worth: float
    net_worth_change: float
    current_emergency_runway: int
    projected_emergency_runway: int
    loan_approval_probability: int
    overdraft_probability: int
    total_saved_or_lost: float
    projected_debt_remaining: float


class TimeMachineResponse(BaseModel):
    current_scores: ScoreSetSchema
    projected_scores: ScoreSetSchema
    score_deltas: dict[str, float]
    projected_months: List[MonthlySummarySchema]
    metrics: TimeMachineMetricsSchema
    active_modifiers: List[str]
    months_projected: int


class AnomalySchema(BaseModel):
    category: str
    severity: str
    month: str
    reference: str
    title: str
    rationale: str
    advice: str


class AnomalyReportResponse(BaseModel):
    findings: List[AnomalySchema]
    health_score: int
    summary: str
