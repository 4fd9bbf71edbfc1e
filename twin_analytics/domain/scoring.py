"""Five-pillar financial health scoring over monthly summaries"""

import logging
import warnings
from typing import Iterable, Sequence

from twin_analytics.domain.aggregation import aggregate_monthly
from twin_analytics.domain.exceptions import DegenerateInputWarning
from twin_analytics.domain.models import MonthlySummary, ScoreSet, Transaction
from twin_analytics.utils.stats import clamp, coefficient_of_variation, mean, pstdev, slope

logger = logging.getLogger(__name__)

MIN_SCORED_MONTHS = 2
HIGH_DTI_THRESHOLD = 0.43
DTI_SLOPE_TOLERANCE = 0.001
SUBSCRIPTION_ALLOWANCE = 8
PAYROLL_REGULARITY = 0.75


def is_degenerate(history: Sequence[MonthlySummary]) -> bool:
    """Too little signal to score: under two months, or no money moved at all"""
    if len(history) < MIN_SCORED_MONTHS:
        return True
    return all(m.total_deposits == 0 and m.total_spending == 0 for m in history)


def calculate_income_stability(history: Sequence[MonthlySummary]) -> float:
    """
    Reward steady deposits, several income sources and regular payroll.

    - Base: 100 minus the coefficient of variation of deposits (as percent)
    - Up to +20 for average income source count (5 per source)
    - +15 when payroll shows up in at least 75% of months
    - -8 per month with no income at all
    """
    deposits = [m.total_deposits for m in history]
    base = 100 - coefficient_of_variation(deposits) * 100

    source_bonus = min(mean([m.income_source_count for m in history]) * 5, 20)

    payroll_fraction = sum(1 for m in history if m.has_payroll_deposit) / len(history)
    regularity_bonus = 15 if payroll_fraction >= PAYROLL_REGULARITY else 0

    zero_income_penalty = -8 * sum(1 for d in deposits if d == 0)

    return clamp(base + source_bonus + regularity_bonus + zero_income_penalty)


def _discretionary_share(months: Sequence[MonthlySummary]) -> float:
    spending = sum(m.total_spending for m in months)
    return sum(m.discretionary_spending for m in months) / spending if spending else 0.0


def calculate_spending_discipline(history: Sequence[MonthlySummary]) -> float:
    """
    Reward a low discretionary-to-income ratio; punish overdraft months.

    - Base: 60 * (1 - discretionary / deposits), ratio capped at 1
    - +20 if any savings transfer happened
    - -5 per overdraft month
    - -2 per average subscription above the allowance
    - +10 when the later half of the history is less discretionary
    """
    deposits = sum(m.total_deposits for m in history)
    discretionary = sum(m.discretionary_spending for m in history)
    if deposits > 0:
        ratio = min(discretionary / deposits, 1.0)
    else:
        ratio = 1.0 if discretionary > 0 else 0.0
    base = 60 * (1 - ratio)

    savings_bonus = 20 if any(m.savings_transfers > 0 for m in history) else 0
    overdraft_penalty = -5 * sum(m.overdraft_count for m in history)

    avg_subscriptions = mean([m.subscription_count for m in history])
    subscription_penalty = -2 * max(0.0, avg_subscriptions - SUBSCRIPTION_ALLOWANCE)

    trend_bonus = 0
    if len(history) >= 4:
        mid = len(history) // 2
        if _discretionary_share(history[mid:]) < _discretionary_share(history[:mid]):
            trend_bonus = 10

    return clamp(base + savings_bonus + overdraft_penalty + subscription_penalty + trend_bonus)


def calculate_debt_trajectory(history: Sequence[MonthlySummary]) -> float:
    """
    Reward a low and falling debt-to-income ratio.

    Months without income count as a DTI of 1.
    """
    dti = [m.debt_payments / m.total_deposits if m.total_deposits else 1.0 for m in history]
    avg_dti = mean(dti)
    base = 100 - avg_dti * 100

    dti_slope = slope(dti)
    if dti_slope < -DTI_SLOPE_TOLERANCE:
        trend_bonus = 20
    elif dti_slope > DTI_SLOPE_TOLERANCE:
        trend_bonus = -20
    else:
        trend_bonus = 0

    high_dti_penalty = -15 if avg_dti > HIGH_DTI_THRESHOLD else 0

    return clamp(base + trend_bonus + high_dti_penalty)


def calculate_financial_resilience(history: Sequence[MonthlySummary]) -> float:
    """
    Reward a cash buffer that never goes negative and keeps growing.

    - Up to 50 for months of spending covered by the lowest end balance
    - +15 if the end balance never dips below zero
    - +10 for an upward end-balance trend
    - Up to +10 for income sources beyond the first
    - +5 for recovering from a spending spike the following month
    - Up to +10 for balance consistency
    """
    avg_spending = mean([m.total_spending for m in history])
    balances = [m.end_balance for m in history]

    coverage = max(min(balances), 0.0) / avg_spending if avg_spending else 0.0
    coverage_score = min(coverage * 20, 50)

    buffer_bonus = 15 if all(b >= 0 for b in balances) else 0
    trend_bonus = 10 if slope(balances) > 0 else 0

    avg_sources = mean([m.income_source_count for m in history])
    source_bonus = clamp((avg_sources - 1) * 10, 0, 10)

    recovery_bonus = 0
    for current, following in zip(history, history[1:]):
        if current.total_spending > avg_spending * 1.2 and following.total_spending < avg_spending:
            recovery_bonus = 5
            break

    balance_mean = mean(balances)
    consistency = clamp(1 - pstdev(balances) / abs(balance_mean), 0, 1) if balance_mean else 0.0
    consistency_bonus = consistency * 10

    return clamp(coverage_score + buffer_bonus + trend_bonus + source_bonus + recovery_bonus + consistency_bonus)


def calculate_growth_momentum(history: Sequence[MonthlySummary]) -> float:
    """
    Reward saving more over time and a rising balance.

    Trends are normalized by average deposits so the score is scale-free.
    """
    avg_deposits = mean([m.total_deposits for m in history])
    if avg_deposits == 0:
        return 0.0

    savings_rate = mean([m.net_flow for m in history]) / avg_deposits
    savings_rate_score = min(max(savings_rate, 0.0) * 100, 40)

    transfers = [m.savings_transfers for m in history]
    transfer_trend = slope(transfers) / avg_deposits
    transfer_trend_bonus = clamp(transfer_trend * 400, 0, 20)
    transfer_share_bonus = clamp(mean(transfers) / avg_deposits * 100, 0, 15)

    balance_trend = slope([m.end_balance for m in history]) / avg_deposits
    balance_trend_bonus = clamp(balance_trend * 50, 0, 15)

    income_growth = slope([m.total_deposits for m in history]) / avg_deposits
    income_growth_bonus = clamp(income_growth * 100, 0, 10)

    return clamp(
        savings_rate_score
        + transfer_trend_bonus
        + transfer_share_bonus
        + balance_trend_bonus
        + income_growth_bonus
    )


def calculate_scores(history: Sequence[MonthlySummary]) -> ScoreSet:
    """
    Main entry point: score an ordered monthly history.

    Degenerate histories get the neutral ScoreSet (every pillar at 50).
    """
    if is_degenerate(history):
        warnings.warn(
            f"Cannot score a history of {len(history)} month(s); returning neutral scores",
            DegenerateInputWarning,
            stacklevel=2,
        )
        return ScoreSet.neutral()

    scores = ScoreSet(
        income_stability=round(calculate_income_stability(history), 2),
        spending_discipline=round(calculate_spending_discipline(history), 2),
        debt_trajectory=round(calculate_debt_trajectory(history), 2),
        financial_resilience=round(calculate_financial_resilience(history), 2),
        growth_momentum=round(calculate_growth_momentum(history), 2),
    )
    logger.debug("Scores calculated", extra={"months": len(history), "overall": scores.overall})
    return scores


def score_transactions(transactions: Iterable[Transaction]) -> ScoreSet:
    """Aggregate then score, for callers holding raw transactions"""
    return calculate_scores(aggregate_monthly(transactions))
