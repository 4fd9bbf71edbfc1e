"""Monthly aggregation - the one canonical view of a transaction history"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Set

from twin_analytics.domain.categories import Category, is_essential
from twin_analytics.domain.models import MonthlySummary, Transaction
from twin_analytics.utils.date_utils import month_key

logger = logging.getLogger(__name__)

PAYROLL_MARKERS = ("payroll", "direct dep", "salary")
UNKNOWN_SOURCE = "unknown"


def source_key(merchant: str | None) -> str:
    """Normalized merchant name used to tell income sources apart"""
    return (merchant or UNKNOWN_SOURCE).lower()


def is_payroll(merchant: str | None) -> bool:
    name = (merchant or "").lower()
    return any(marker in name for marker in PAYROLL_MARKERS)


@dataclass
class _MonthAccumulator:
    total_deposits: float = 0.0
    essential_spending: float = 0.0
    discretionary_spending: float = 0.0
    debt_payments: float = 0.0
    savings_transfers: float = 0.0
    income_sources: Set[str] = field(default_factory=set)
    subscription_merchants: Set[str] = field(default_factory=set)
    has_payroll_deposit: bool = False

    def add(self, txn: Transaction) -> None:
        amount = abs(txn.amount)
        if txn.is_income_deposit:
            self.total_deposits += amount
            self.income_sources.add(source_key(txn.merchant))
            if is_payroll(txn.merchant):
                self.has_payroll_deposit = True
            return

        if txn.category is Category.DEBT_PAYMENT:
            self.debt_payments += amount
        elif txn.category is Category.SAVINGS_TRANSFER:
            self.savings_transfers += amount
        elif txn.category is Category.SUBSCRIPTIONS:
            self.subscription_merchants.add(source_key(txn.merchant))

        if is_essential(txn.category):
            self.essential_spending += amount
        else:
            self.discretionary_spending += amount


def carry_balances(months: Iterable[MonthlySummary], opening_balance: float = 0.0) -> List[MonthlySummary]:
    """
    Recompute end_balance and overdraft_count for chronologically ordered months.

    The running balance starts at opening_balance, adds each month's
    deposits minus spending and is never reset. A month is flagged as an
    overdraft when the running balance after it is negative.
    """
    running_balance = opening_balance
    carried = []
    for summary in months:
        running_balance += summary.total_deposits - summary.total_spending
        carried.append(
            replace(
                summary,
                end_balance=running_balance,
                overdraft_count=1 if running_balance < 0 else 0,
            )
        )
    return carried


def aggregate_monthly(transactions: Iterable[Transaction]) -> List[MonthlySummary]:
    """
    Convert a flat collection of transactions into per-month summaries.

    Months are sorted ascending; months with no transactions are absent.
    An empty input yields an empty list.
    """
    by_month: Dict[str, _MonthAccumulator] = defaultdict(_MonthAccumulator)
    for txn in transactions:
        by_month[month_key(txn.date)].add(txn)

    flows = [
        MonthlySummary(
            month=month,
            total_deposits=acc.total_deposits,
            total_spending=acc.essential_spending + acc.discretionary_spending,
            essential_spending=acc.essential_spending,
            discretionary_spending=acc.discretionary_spending,
            debt_payments=acc.debt_payments,
            savings_transfers=acc.savings_transfers,
            end_balance=0.0,
            income_source_count=len(acc.income_sources),
            overdraft_count=0,
            subscription_count=len(acc.subscription_merchants),
            has_payroll_deposit=acc.has_payroll_deposit,
        )
        for month, acc in sorted(by_month.items())
    ]
    summaries = carry_balances(flows)
    logger.debug("Aggregated transactions", extra={"months": len(summaries)})
    return summaries


def income_by_source(transactions: Iterable[Transaction]) -> Dict[str, Dict[str, float]]:
    """Income per month per source key: {month: {source: amount}}"""
    result: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for txn in transactions:
        if txn.is_income_deposit:
            result[month_key(txn.date)][source_key(txn.merchant)] += abs(txn.amount)
    return {month: dict(sources) for month, sources in result.items()}
