"""Time machine - project a history forward under behavioral changes"""

import logging
import math
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from twin_analytics.domain.aggregation import carry_balances, income_by_source
from twin_analytics.domain.exceptions import InvalidHorizonError
from twin_analytics.domain.models import (
    MonthlySummary,
    ScenarioModifier,
    ScoreSet,
    TimeMachineMetrics,
    TimeMachineResult,
    Transaction,
)
from twin_analytics.domain.scoring import calculate_scores
from twin_analytics.utils.date_utils import add_months, month_key
from twin_analytics.utils.stats import mean, slope

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_MONTHS = 12
MAX_HORIZON_MONTHS = 120
TRAILING_WINDOW_MONTHS = 6
SCORING_LOOKBACK_MONTHS = 12
FALLBACK_SUBSCRIPTION_COST = 12.0
SUBSCRIPTION_SHARE_OF_DISCRETIONARY = 0.15
DEBT_PAYOFF_MONTHS = 36

# (minimum projected overall score, loan approval probability)
LOAN_APPROVAL_TIERS: List[Tuple[float, float]] = [
    (80, 0.92),
    (70, 0.78),
    (60, 0.55),
    (50, 0.35),
    (40, 0.18),
    (0, 0.05),
]

PRESETS: Dict[str, ScenarioModifier] = {
    "preset_0": ScenarioModifier(
        label="Keep Living Like This",
        description="Project your current habits forward with no changes.",
    ),
    "preset_1": ScenarioModifier(
        label="+$200/month to savings",
        description="Redirect $200 each month into savings instead of spending.",
        extra_monthly_savings=200,
        monthly_expense_change=-200,
    ),
    "preset_2": ScenarioModifier(
        label="Cancel two subscriptions",
        description="Drop streaming and delivery subscriptions you rarely use.",
        monthly_expense_change=-45,
        subscriptions_cancelled=2,
    ),
    "preset_3": ScenarioModifier(
        label="Pay extra $300 toward debt",
        description="Accelerate debt payoff with an extra $300/month.",
        extra_monthly_debt_payment=300,
    ),
    "preset_4": ScenarioModifier(
        label="Lose one income stream",
        description="Simulate losing your smallest income source.",
        lose_income_stream=True,
    ),
    "preset_5": ScenarioModifier(
        label="Switch to salaried job",
        description="Replace volatile gig income with a steady paycheck.",
        switch_to_salaried=True,
    ),
    "preset_6": ScenarioModifier(
        label="Raise income 15%",
        description="Get a raise, new client, or side hustle boost.",
        income_change_percent=15,
    ),
    "preset_7": ScenarioModifier(
        label="Emergency expense $2,000",
        description="Hit with an unexpected $2,000 bill (medical, car, etc.).",
        one_time_expense=2000,
    ),
}


def list_presets() -> Dict[str, ScenarioModifier]:
    """Preset modifier bundles keyed by id; no simulation is run"""
    return dict(PRESETS)


def validate_horizon(months_forward: int, max_horizon: int = MAX_HORIZON_MONTHS) -> None:
    if months_forward < 1 or months_forward > max_horizon:
        raise InvalidHorizonError(f"months_forward must be between 1 and {max_horizon}, got {months_forward}")


def _smallest_source(window: Sequence[MonthlySummary], transactions: Iterable[Transaction]) -> Tuple[Optional[str], float]:
    """Income source with the lowest average monthly contribution over the window"""
    window_months = {m.month for m in window}
    totals: Dict[str, float] = {}
    for month, sources in income_by_source(transactions).items():
        if month in window_months:
            for source, amount in sources.items():
                totals[source] = totals.get(source, 0.0) + amount
    if not totals:
        return None, 0.0
    source, total = min(totals.items(), key=lambda item: (item[1], item[0]))
    return source, total / len(window)


def _loan_approval_probability(overall: float) -> float:
    for threshold, probability in LOAN_APPROVAL_TIERS:
        if overall >= threshold:
            return probability
    return LOAN_APPROVAL_TIERS[-1][1]


def project_months(
    history: Sequence[MonthlySummary],
    transactions: Iterable[Transaction],
    modifiers: Sequence[ScenarioModifier],
    months_forward: int,
    anchor_month: Optional[str] = None,
) -> List[MonthlySummary]:
    """
    Build the projected trajectory, one MonthlySummary per projected month.

    Each month starts from the trailing-window averages, applies every
    active modifier additively, then balances carry forward from the last
    real end balance exactly as the aggregator does.
    """
    window = list(history[-TRAILING_WINDOW_MONTHS:])
    deposits = [m.total_deposits for m in window]

    avg_income = mean(deposits)
    avg_essential = mean([m.essential_spending for m in window])
    avg_savings = mean([m.savings_transfers for m in window])
    avg_other_discretionary = max(mean([m.discretionary_spending for m in window]) - avg_savings, 0.0)
    avg_debt = mean([m.debt_payments for m in window])
    avg_subs = mean([m.subscription_count for m in window])
    avg_sources = mean([m.income_source_count for m in window])
    has_payroll = any(m.has_payroll_deposit for m in window)
    income_slope = slope(deposits)
    deviations = [d - avg_income for d in deposits] or [0.0]

    if avg_subs > 0:
        subscription_cost = avg_other_discretionary * SUBSCRIPTION_SHARE_OF_DISCRETIONARY / avg_subs
    else:
        subscription_cost = FALLBACK_SUBSCRIPTION_COST

    salaried = any(m.switch_to_salaried for m in modifiers)
    lost_source, lost_amount = (None, 0.0)
    if any(m.lose_income_stream for m in modifiers):
        lost_source, lost_amount = _smallest_source(window, transactions)

    anchor = history[-1].month if history else (anchor_month or month_key(date.today()))
    opening_balance = history[-1].end_balance if history else 0.0

    projected = []
    for i in range(1, months_forward + 1):
        active = [m for m in modifiers if m.is_active(i)]
        losing_stream = lost_source is not None and any(m.lose_income_stream for m in active)

        if salaried:
            income = avg_income
        else:
            income = avg_income + income_slope * i + deviations[(i - 1) % len(deviations)]
        if losing_stream:
            income -= lost_amount
        income_change = sum(m.income_change_percent for m in active)
        income = max(0.0, income * (1 + income_change / 100))

        extra_debt = sum(m.extra_monthly_debt_payment for m in active)
        cancelled = sum(m.subscriptions_cancelled for m in active)
        one_time = sum(m.one_time_expense for m in modifiers if m.start_month == i)
        other_discretionary = max(
            0.0,
            avg_other_discretionary
            + sum(m.monthly_expense_change for m in active)
            - cancelled * subscription_cost,
        )
        savings = avg_savings + sum(m.extra_monthly_savings for m in active)

        essential = avg_essential + extra_debt + one_time
        discretionary = other_discretionary + savings

        projected.append(
            MonthlySummary(
                month=add_months(anchor, i),
                total_deposits=income,
                total_spending=essential + discretionary,
                essential_spending=essential,
                discretionary_spending=discretionary,
                debt_payments=avg_debt + extra_debt,
                savings_transfers=savings,
                end_balance=0.0,
                income_source_count=max(0, round(avg_sources) - (1 if losing_stream else 0)),
                overdraft_count=0,
                subscription_count=max(0, round(avg_subs) - cancelled),
                has_payroll_deposit=salaried or has_payroll,
            )
        )
    return carry_balances(projected, opening_balance=opening_balance)


def simulate(
    history: Sequence[MonthlySummary],
    transactions: Sequence[Transaction],
    modifiers: Sequence[ScenarioModifier],
    months_forward: int = DEFAULT_HORIZON_MONTHS,
    anchor_month: Optional[str] = None,
    max_horizon: int = MAX_HORIZON_MONTHS,
) -> TimeMachineResult:
    """
    Main entry point: project history forward and score the result.

    Neither history nor transactions are modified. Raises
    InvalidHorizonError when months_forward is outside [1, max_horizon].
    """
    validate_horizon(months_forward, max_horizon)

    current_scores = calculate_scores(history)
    projected = project_months(history, transactions, modifiers, months_forward, anchor_month)

    lookback = (list(history) + projected)[-SCORING_LOOKBACK_MONTHS:]
    projected_scores: ScoreSet = calculate_scores(lookback)

    window = history[-TRAILING_WINDOW_MONTHS:]
    latest_balance = history[-1].end_balance if history else 0.0
    final_balance = projected[-1].end_balance
    # Savings transfers leave the running balance but stay part of net worth
    saved_to_date = sum(m.savings_transfers for m in history)
    saved_projected = sum(m.savings_transfers for m in projected)
    current_net_worth = latest_balance + saved_to_date
    projected_net_worth = final_balance + saved_to_date + saved_projected
    avg_spending = mean([m.total_spending for m in window])
    avg_projected_spending = mean([m.total_spending for m in projected])
    avg_debt = mean([m.debt_payments for m in window])
    debt_paid = sum(m.debt_payments for m in projected)
    overdraft_months = sum(m.overdraft_count for m in projected)

    metrics = TimeMachineMetrics(
        current_net_worth=round(current_net_worth, 2),
        projected_net_worth=round(projected_net_worth, 2),
        net_worth_change=round(projected_net_worth - current_net_worth, 2),
        current_emergency_runway=math.floor(max(latest_balance, 0.0) / avg_spending) if avg_spending else 0,
        projected_emergency_runway=(
            math.floor(max(final_balance, 0.0) / avg_projected_spending) if avg_projected_spending else 0
        ),
        loan_approval_probability=round(_loan_approval_probability(projected_scores.overall) * 100),
        overdraft_probability=round(overdraft_months / months_forward * 100),
        total_saved_or_lost=round(sum(m.net_flow + m.savings_transfers for m in projected), 2),
        projected_debt_remaining=round(max(0.0, avg_debt * DEBT_PAYOFF_MONTHS - debt_paid), 2),
    )

    logger.debug(
        "Time machine projection completed",
        extra={"months_forward": months_forward, "modifiers": len(modifiers)},
    )
    return TimeMachineResult(
        current_scores=current_scores,
        projected_scores=projected_scores,
        score_deltas=projected_scores.delta(current_scores),
        projected_months=projected,
        metrics=metrics,
        active_modifiers=[m.label or f"Modifier {i}" for i, m in enumerate(modifiers, start=1)],
        months_projected=months_forward,
    )
