"""Unit tests for monthly aggregation"""

import math
import pytest
from datetime import date
from twin_analytics.domain.aggregation import aggregate_monthly, carry_balances, income_by_source
from twin_analytics.domain.categories import Category
from twin_analytics.domain.exceptions import InvalidTransactionDataError, ValidationError
from twin_analytics.domain.models import Transaction


def test_aggregate_empty_transactions():
    """Empty input yields an empty history, not an error"""
    assert aggregate_monthly([]) == []


def test_aggregate_single_payroll_month(income, spend):
    """$5,000 payroll and $2,000 essential spend in one month"""
    summaries = aggregate_monthly(
        [
            income(date(2024, 3, 1), 5000, "ACME Payroll"),
            spend(date(2024, 3, 3), 1500, Category.RENT, "Landlord"),
            spend(date(2024, 3, 9), 500, Category.GROCERIES, "Fresh Market"),
        ]
    )

    assert len(summaries) == 1
    march = summaries[0]
    assert march.month == "2024-03"
    assert march.total_deposits == 5000
    assert march.essential_spending == 2000
    assert march.discretionary_spending == 0
    assert march.overdraft_count == 0
    assert march.end_balance == 3000
    assert march.income_source_count == 1
    assert march.has_payroll_deposit is True


def test_aggregate_overdraft_month(income, spend):
    """$1,000 income against $1,500 spend from a zero balance"""
    summaries = aggregate_monthly(
        [
            income(date(2024, 5, 1), 1000, "Cafe Co"),
            spend(date(2024, 5, 2), 800, Category.RENT, "Landlord"),
            spend(date(2024, 5, 20), 700, Category.SHOPPING, "Mall"),
        ]
    )

    may = summaries[0]
    assert may.total_spending == 1500
    assert may.essential_spending == 800
    assert may.discretionary_spending == 700
    assert may.end_balance == -500
    assert may.overdraft_count == 1
    assert may.has_payroll_deposit is False


def test_partition_invariant(steady_history):
    """Essential plus discretionary always equals total spending"""
    for summary in steady_history:
        assert summary.essential_spending + summary.discretionary_spending == summary.total_spending


def test_balance_continuity(steady_history):
    """Running balance carries across months and is never reset"""
    first = steady_history[0]
    assert first.end_balance == pytest.approx(first.total_deposits - first.total_spending)

    for previous, current in zip(steady_history, steady_history[1:]):
        assert current.end_balance == pytest.approx(
            previous.end_balance + current.total_deposits - current.total_spending
        )


def test_months_sorted_without_gap_filling(income, spend):
    """Months come out ascending and empty months are not synthesized"""
    summaries = aggregate_monthly(
        [
            spend(date(2024, 3, 4), 100, Category.DINING, "Bistro"),
            income(date(2024, 1, 1), 1000, "Employer Payroll"),
        ]
    )

    assert [s.month for s in summaries] == ["2024-01", "2024-03"]
    assert summaries[1].end_balance == 900


def test_overdraft_flag_is_month_local(income, spend):
    """A later positive month does not clear an earlier overdraft flag"""
    summaries = aggregate_monthly(
        [
            spend(date(2024, 1, 5), 500, Category.RENT, "Landlord"),
            income(date(2024, 2, 1), 1000, "Employer Payroll"),
        ]
    )

    assert [s.overdraft_count for s in summaries] == [1, 0]
    assert [s.end_balance for s in summaries] == [-500, 500]


def test_spending_routing(spend):
    """Debt, savings and subscription merchants are tracked separately"""
    day = date(2024, 4, 10)
    summary = aggregate_monthly(
        [
            spend(day, 250, Category.DEBT_PAYMENT, "Card Services"),
            spend(day, 300, Category.SAVINGS_TRANSFER, "Savings"),
            spend(day, 15.99, Category.SUBSCRIPTIONS, "Netflix"),
            spend(day, 15.99, Category.SUBSCRIPTIONS, "NETFLIX"),
            spend(day, 9.99, Category.SUBSCRIPTIONS, "Spotify"),
        ]
    )[0]

    assert summary.debt_payments == 250
    assert summary.savings_transfers == 300
    assert summary.subscription_count == 2
    # Debt payment is essential; savings and subscriptions are discretionary
    assert summary.essential_spending == 250
    assert summary.discretionary_spending == pytest.approx(300 + 15.99 * 2 + 9.99)


def test_income_sources_are_case_insensitive(income):
    """Distinct income sources are counted by lower-cased merchant"""
    day = date(2024, 6, 1)
    summary = aggregate_monthly(
        [
            income(day, 100, "Upwork"),
            income(day, 100, "UPWORK"),
            income(day, 100, None),
            income(day, 100, "Direct Dep Employer"),
        ]
    )[0]

    assert summary.income_source_count == 3
    assert summary.has_payroll_deposit is True
    assert summary.total_deposits == 400


def test_amount_sign_is_ignored():
    """Direction comes from is_income_deposit, not the sign"""
    summary = aggregate_monthly(
        [
            Transaction(amount=-1200, date=date(2024, 2, 1), merchant="Salary Inc", category=Category.INCOME, is_income_deposit=True),
            Transaction(amount=300, date=date(2024, 2, 2), merchant="Grocer", category=Category.GROCERIES),
        ]
    )[0]

    assert summary.total_deposits == 1200
    assert summary.total_spending == 300
    assert summary.end_balance == 900


def test_carry_balances_with_opening_balance(steady_history):
    """Re-carrying from an opening balance shifts every month by that amount"""
    shifted = carry_balances(steady_history, opening_balance=1000)

    for original, moved in zip(steady_history, shifted):
        assert moved.end_balance == pytest.approx(original.end_balance + 1000)
        assert moved.total_spending == original.total_spending


def test_income_by_source(two_source_transactions):
    """Income is split per month per source key"""
    by_month = income_by_source(two_source_transactions)

    assert by_month["2024-01"] == {"acme corp payroll": 4000, "upwork": 1000}
    assert len(by_month) == 6


def test_transaction_category_coercion():
    """Category strings are coerced to the enum"""
    txn = Transaction(amount=10, date=date(2024, 1, 1), merchant="Shop", category="shopping")
    assert txn.category is Category.SHOPPING


def test_transaction_rejects_unknown_category():
    """Unknown categories are a validation error"""
    with pytest.raises(InvalidTransactionDataError):
        Transaction(amount=10, date=date(2024, 1, 1), merchant="Shop", category="crypto")


def test_transaction_rejects_non_finite_amount():
    """NaN amounts never reach the aggregator"""
    with pytest.raises(ValidationError):
        Transaction(amount=math.nan, date=date(2024, 1, 1), merchant="Shop", category=Category.OTHER)
