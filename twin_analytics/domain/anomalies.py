"""Anomaly detection over monthly summaries and raw transactions"""

import logging
from typing import Dict, Iterable, List, Sequence, Set

from twin_analytics.domain.aggregation import income_by_source, is_payroll, source_key
from twin_analytics.domain.models import Anomaly, AnomalyReport, MonthlySummary, Transaction
from twin_analytics.utils.date_utils import add_months, month_key
from twin_analytics.utils.stats import coefficient_of_variation, mean, slope

logger = logging.getLogger(__name__)

SPIKE_MULTIPLIER = 1.5
SPIKE_ALERT_MULTIPLIER = 2.0
SPIKE_TRAILING_MONTHS = 3
SPIKE_MIN_PRIOR_MONTHS = 2
OVERDRAFT_STREAK_MONTHS = 2
PRICE_INCREASE_THRESHOLD = 0.2

SEVERITY_RANK = {"alert": 3, "warning": 2, "info": 1}
SEVERITY_PENALTY = {"alert": 15, "warning": 8, "info": 3}


def _ordered(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Total ordering so results never depend on input order"""
    return sorted(
        transactions,
        key=lambda t: (
            t.date,
            t.transaction_id or "",
            source_key(t.merchant),
            t.amount,
            t.category.value,
            t.is_income_deposit,
            t.is_recurring,
        ),
    )


def _reference(txn: Transaction) -> str:
    return txn.transaction_id or month_key(txn.date)


def detect_spending_spikes(history: Sequence[MonthlySummary]) -> List[Anomaly]:
    """Months spending more than 1.5x the average of the preceding months"""
    findings = []
    for i, summary in enumerate(history):
        prior = history[max(0, i - SPIKE_TRAILING_MONTHS):i]
        if len(prior) < SPIKE_MIN_PRIOR_MONTHS:
            continue
        trailing = mean([m.total_spending for m in prior])
        if trailing <= 0:
            continue
        ratio = summary.total_spending / trailing
        if ratio > SPIKE_MULTIPLIER:
            findings.append(
                Anomaly(
                    category="spending_spike",
                    severity="alert" if ratio > SPIKE_ALERT_MULTIPLIER else "warning",
                    month=summary.month,
                    reference=summary.month,
                    title=f"Spending Spike in {summary.month}",
                    rationale=(
                        f"Spending of ${summary.total_spending:,.0f} was {(ratio - 1) * 100:.0f}% above "
                        f"the trailing average of ${trailing:,.0f}."
                    ),
                    advice="Separate one-time charges from recurring ones and plan a recovery for the next two months.",
                )
            )
    return findings


def detect_new_recurring_merchants(history: Sequence[MonthlySummary], ordered: Sequence[Transaction]) -> List[Anomaly]:
    """Recurring charges from a merchant not seen in any earlier month"""
    if not history:
        return []
    first_month = history[0].month
    seen: Set[str] = set()
    findings = []
    for txn in ordered:
        if txn.is_income_deposit or not txn.is_recurring:
            continue
        merchant = source_key(txn.merchant)
        if merchant in seen:
            continue
        seen.add(merchant)
        month = month_key(txn.date)
        if month > first_month:
            findings.append(
                Anomaly(
                    category="new_recurring_merchant",
                    severity="info",
                    month=month,
                    reference=_reference(txn),
                    title=f"New Recurring Charge: {merchant}",
                    rationale=f"{merchant} started charging ${abs(txn.amount):,.2f} on a recurring basis in {month}.",
                    advice="Confirm you signed up for this and that it is worth the monthly cost.",
                )
            )
    return findings


def detect_missing_deposits(history: Sequence[MonthlySummary], ordered: Sequence[Transaction]) -> List[Anomaly]:
    """Recurring or payroll deposits present the two prior months but absent now"""
    expected: Set[str] = set()
    payroll_sources: Set[str] = set()
    for txn in ordered:
        if not txn.is_income_deposit:
            continue
        if is_payroll(txn.merchant):
            payroll_sources.add(source_key(txn.merchant))
        if txn.is_recurring or is_payroll(txn.merchant):
            expected.add(source_key(txn.merchant))

    by_month = income_by_source(ordered)
    findings = []
    for summary in history:
        present = by_month.get(summary.month, {})
        before = by_month.get(add_months(summary.month, -1), {})
        earlier = by_month.get(add_months(summary.month, -2), {})
        for source in sorted(expected):
            if source in before and source in earlier and source not in present:
                payroll = source in payroll_sources
                findings.append(
                    Anomaly(
                        category="missing_deposit",
                        severity="alert" if payroll else "warning",
                        month=summary.month,
                        reference=summary.month,
                        title=f"Missing Deposit: {source}",
                        rationale=(
                            f"{'Payroll' if payroll else 'Recurring'} deposit from {source} arrived in each of the "
                            f"previous two months but not in {summary.month}."
                        ),
                        advice="Check with the payer whether the deposit was delayed, and hold off on large purchases.",
                    )
                )
    return findings


def detect_overdraft_after_streak(history: Sequence[MonthlySummary]) -> List[Anomaly]:
    """Overdraft month that breaks a run of healthy months"""
    findings = []
    streak = 0
    for summary in history:
        if summary.overdraft_count:
            if streak >= OVERDRAFT_STREAK_MONTHS:
                findings.append(
                    Anomaly(
                        category="overdraft_after_streak",
                        severity="alert",
                        month=summary.month,
                        reference=summary.month,
                        title=f"Overdraft in {summary.month}",
                        rationale=(
                            f"Running balance fell to ${summary.end_balance:,.0f} after {streak} consecutive "
                            "months without an overdraft."
                        ),
                        advice="Find what changed this month and rebuild a buffer before the next billing cycle.",
                    )
                )
            streak = 0
        else:
            streak += 1
    return findings


def detect_lifestyle_creep(history: Sequence[MonthlySummary]) -> List[Anomaly]:
    if len(history) < 4:
        return []
    discretionary = [m.discretionary_spending for m in history]
    avg = mean(discretionary)
    if avg == 0:
        return []
    growth = slope(discretionary) / avg
    if growth <= 0.03:
        return []

    mid = len(history) // 2
    first_half, second_half = mean(discretionary[:mid]), mean(discretionary[mid:])
    increase = (second_half - first_half) / first_half * 100 if first_half > 0 else 0.0
    latest = history[-1].month
    return [
        Anomaly(
            category="lifestyle_creep",
            severity="alert" if growth > 0.06 else "warning",
            month=latest,
            reference=latest,
            title="Lifestyle Creep Detected",
            rationale=(
                f"Discretionary spending has trended upward over {len(history)} months, "
                f"+{increase:.1f}% from the earlier period."
            ),
            advice="Set a monthly discretionary budget and wait a day before non-essential purchases over $50.",
        )
    ]


def detect_income_volatility(history: Sequence[MonthlySummary]) -> List[Anomaly]:
    incomes = [m.total_deposits for m in history]
    if len(history) < 3 or mean(incomes) == 0:
        return []
    cv = coefficient_of_variation(incomes)
    if cv <= 0.35:
        return []
    latest = history[-1].month
    return [
        Anomaly(
            category="income_volatility",
            severity="alert" if cv > 0.5 else "warning",
            month=latest,
            reference=latest,
            title="High Income Volatility",
            rationale=f"Monthly income varies by {cv * 100:.0f}% (coefficient of variation).",
            advice="Budget from your lowest income month, not your average.",
        )
    ]


def detect_savings_decline(history: Sequence[MonthlySummary]) -> List[Anomaly]:
    if len(history) < 3:
        return []
    surpluses = [m.net_flow for m in history]
    trend = slope(surpluses)
    avg_surplus = mean(surpluses)
    latest = history[-1].month

    if trend < -50 and avg_surplus > 0:
        return [
            Anomaly(
                category="savings_decline",
                severity="alert" if trend < -150 else "warning",
                month=latest,
                reference=latest,
                title="Savings Rate Declining",
                rationale=f"Monthly surplus is shrinking by about ${abs(trend):,.0f} per month.",
                advice="Automate a fixed savings transfer at the start of each month.",
            )
        ]
    if avg_surplus < 0:
        return [
            Anomaly(
                category="savings_decline",
                severity="alert",
                month=latest,
                reference=latest,
                title="Spending Exceeds Income",
                rationale=f"On average you spend ${abs(avg_surplus):,.0f} more than you earn each month.",
                advice="Cut or reduce your top three discretionary expenses; reaching break-even is the first goal.",
            )
        ]
    return []


def detect_balance_erosion(history: Sequence[MonthlySummary]) -> List[Anomaly]:
    if len(history) < 3:
        return []
    balances = [m.end_balance for m in history]
    trend = slope(balances)
    if trend < -100 and mean(balances) > 0:
        latest = history[-1].month
        return [
            Anomaly(
                category="balance_erosion",
                severity="alert" if trend < -300 else "warning",
                month=latest,
                reference=latest,
                title="Balance Erosion",
                rationale=f"End-of-month balance is falling by about ${abs(trend):,.0f} per month.",
                advice="Work out whether rising expenses or falling income is driving the decline.",
            )
        ]
    return []


def detect_discretionary_surge(history: Sequence[MonthlySummary]) -> List[Anomaly]:
    if len(history) < 4:
        return []
    ratios = [m.discretionary_spending / m.total_spending if m.total_spending > 0 else 0.0 for m in history]
    recent, earlier = mean(ratios[-3:]), mean(ratios[:-3])
    if recent > earlier + 0.1 and recent > 0.45:
        latest = history[-1].month
        return [
            Anomaly(
                category="discretionary_surge",
                severity="alert" if recent > 0.6 else "warning",
                month=latest,
                reference=latest,
                title="Discretionary Spending Surge",
                rationale=(
                    f"Discretionary spending is {recent * 100:.0f}% of total over the last three months, "
                    f"up from {earlier * 100:.0f}%."
                ),
                advice="Cut the discretionary purchases you value least first.",
            )
        ]
    return []


def detect_subscription_bloat(history: Sequence[MonthlySummary], ordered: Sequence[Transaction]) -> List[Anomaly]:
    totals: Dict[str, float] = {}
    for txn in ordered:
        if txn.is_recurring and not txn.is_income_deposit:
            merchant = source_key(txn.merchant)
            totals[merchant] = totals.get(merchant, 0.0) + abs(txn.amount)

    count = len(totals)
    if count < 5 or not history:
        return []

    monthly_cost = sum(totals.values()) / len(history)
    avg_income = mean([m.total_deposits for m in history])
    income_share = monthly_cost / avg_income if avg_income > 0 else 0.0
    latest = history[-1].month

    if count >= 8 or income_share > 0.1:
        severity = "alert" if count >= 12 or income_share > 0.15 else "warning"
        title = "Subscription Bloat"
    else:
        severity = "info"
        title = "Subscription Check-In"
    return [
        Anomaly(
            category="subscription_bloat",
            severity=severity,
            month=latest,
            reference=latest,
            title=title,
            rationale=(
                f"{count} recurring charges total about ${monthly_cost:,.0f}/month "
                f"({income_share * 100:.1f}% of income)."
            ),
            advice="Audit every subscription and cancel anything unused in the last 30 days.",
        )
    ]


def detect_recurring_increases(ordered: Sequence[Transaction]) -> List[Anomaly]:
    """Recurring charges whose latest amount is 20%+ above their first"""
    charges: Dict[str, List[Transaction]] = {}
    for txn in ordered:
        if txn.is_recurring and not txn.is_income_deposit:
            charges.setdefault(source_key(txn.merchant), []).append(txn)

    findings = []
    for merchant, txns in sorted(charges.items()):
        if len(txns) < 3:
            continue
        first, latest = abs(txns[0].amount), abs(txns[-1].amount)
        if first > 0 and (latest - first) / first > PRICE_INCREASE_THRESHOLD:
            findings.append(
                Anomaly(
                    category="recurring_increase",
                    severity="info",
                    month=month_key(txns[-1].date),
                    reference=_reference(txns[-1]),
                    title=f"Price Increase: {merchant}",
                    rationale=(
                        f"{merchant} charges rose from ${first:,.2f} to ${latest:,.2f}, "
                        f"a {(latest - first) / first * 100:.0f}% increase."
                    ),
                    advice="Check whether the service is still worth the higher price or negotiate a better rate.",
                )
            )
    return findings


def _health_score(findings: Sequence[Anomaly]) -> int:
    return max(0, 100 - sum(SEVERITY_PENALTY[a.severity] for a in findings))


def _summary(findings: Sequence[Anomaly], health_score: int) -> str:
    if not findings:
        return "No anomalies detected. Your financial patterns look healthy and consistent."

    counts = {severity: sum(1 for a in findings if a.severity == severity) for severity in SEVERITY_RANK}
    parts = []
    for severity, noun in (("alert", "alert"), ("warning", "warning"), ("info", "insight")):
        if counts[severity]:
            parts.append(f"{counts[severity]} {noun}{'s' if counts[severity] > 1 else ''}")
    follow_up = (
        "Address the alerts first; they have the biggest impact on your resilience."
        if counts["alert"]
        else "No critical issues, but the warnings are worth reviewing."
    )
    return f"Found {', '.join(parts)} across your financial patterns. Health score: {health_score}/100. {follow_up}"


def detect_anomalies(history: Sequence[MonthlySummary], transactions: Iterable[Transaction]) -> AnomalyReport:
    """
    Main entry point: scan a history for notable deviations.

    Findings are ordered chronologically (then by severity, category and
    reference), independent of the order transactions were supplied in.
    """
    ordered = _ordered(transactions)

    findings: List[Anomaly] = []
    findings += detect_spending_spikes(history)
    findings += detect_new_recurring_merchants(history, ordered)
    findings += detect_missing_deposits(history, ordered)
    findings += detect_overdraft_after_streak(history)
    findings += detect_lifestyle_creep(history)
    findings += detect_income_volatility(history)
    findings += detect_savings_decline(history)
    findings += detect_balance_erosion(history)
    findings += detect_discretionary_surge(history)
    findings += detect_subscription_bloat(history, ordered)
    findings += detect_recurring_increases(ordered)

    findings.sort(key=lambda a: (a.month, -SEVERITY_RANK[a.severity], a.category, a.reference))

    health_score = _health_score(findings)
    logger.debug("Anomaly scan completed", extra={"findings": len(findings), "health_score": health_score})
    return AnomalyReport(findings=findings, health_score=health_score, summary=_summary(findings, health_score))
