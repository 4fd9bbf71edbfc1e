"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Any, Callable, Dict, List
from fastapi.testclient import TestClient
from twin_analytics.api.main import create_app
from twin_analytics.domain.aggregation import aggregate_monthly
from twin_analytics.domain.categories import Category
from twin_analytics.domain.models import MonthlySummary, Transaction

MONTHS = [date(2024, month, 1) for month in range(1, 7)]


def _spend(day: date, amount: float, category: Category, merchant: str, recurring: bool = False, txn_id: str | None = None):
    return Transaction(
        amount=-amount,
        date=day,
        merchant=merchant,
        category=category,
        is_recurring=recurring,
        transaction_id=txn_id,
    )


def _income(day: date, amount: float, merchant: str, recurring: bool = True, txn_id: str | None = None):
    return Transaction(
        amount=amount,
        date=day,
        merchant=merchant,
        category=Category.INCOME,
        is_recurring=recurring,
        is_income_deposit=True,
        transaction_id=txn_id,
    )


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client"""
    return TestClient(create_app())


@pytest.fixture
def spend() -> Callable[..., Transaction]:
    """Factory for spending transactions"""
    return _spend


@pytest.fixture
def income() -> Callable[..., Transaction]:
    """Factory for income deposits"""
    return _income


@pytest.fixture
def steady_transactions() -> List[Transaction]:
    """Six months of a salaried user with stable bills and a savings habit"""
    transactions = []
    for i, first in enumerate(MONTHS):
        transactions += [
            _income(first, 5000, "ACME Corp Payroll", txn_id=f"pay_{i}"),
            _spend(first.replace(day=2), 1500, Category.RENT, "Oak Street Apartments", recurring=True),
            _spend(first.replace(day=5), 400, Category.GROCERIES, "Fresh Market"),
            _spend(first.replace(day=8), 150, Category.UTILITIES, "City Power", recurring=True),
            _spend(first.replace(day=10), 250, Category.DEBT_PAYMENT, "Card Services", recurring=True),
            _spend(first.replace(day=12), 300, Category.DINING, "Bistro"),
            _spend(first.replace(day=15), 15.99, Category.SUBSCRIPTIONS, "Netflix", recurring=True),
            _spend(first.replace(day=20), 200, Category.SAVINGS_TRANSFER, "High Yield Savings", recurring=True),
        ]
    return transactions


@pytest.fixture
def two_source_transactions() -> List[Transaction]:
    """Six steady months with a payroll and a smaller freelance income"""
    transactions = []
    for first in MONTHS:
        transactions += [
            _income(first, 4000, "ACME Corp Payroll"),
            _income(first.replace(day=15), 1000, "Upwork"),
            _spend(first.replace(day=2), 1500, Category.RENT, "Oak Street Apartments", recurring=True),
            _spend(first.replace(day=5), 500, Category.GROCERIES, "Fresh Market"),
            _spend(first.replace(day=12), 400, Category.DINING, "Bistro"),
        ]
    return transactions


@pytest.fixture
def gig_transactions() -> List[Transaction]:
    """Volatile gig income from two platforms, no payroll"""
    payouts = [(1500, 500), (4000, 2000), (2000, 1000), (5000, 2000), (1500, 1000), (3500, 2000)]
    transactions = []
    for first, (rides, deliveries) in zip(MONTHS, payouts):
        transactions += [
            _income(first.replace(day=3), rides, "Uber", recurring=False),
            _income(first.replace(day=17), deliveries, "DoorDash", recurring=False),
            _spend(first.replace(day=2), 1200, Category.RENT, "Maple Court", recurring=True),
            _spend(first.replace(day=6), 450, Category.GROCERIES, "Fresh Market"),
            _spend(first.replace(day=9), 350, Category.TRANSPORTATION, "Shell"),
            _spend(first.replace(day=14), 500, Category.SHOPPING, "Online Store"),
        ]
    return transactions


@pytest.fixture
def overdraft_transactions() -> List[Transaction]:
    """Spends more than it earns every month"""
    transactions = []
    for first in MONTHS:
        transactions += [
            _income(first, 2000, "Diner Payroll"),
            _spend(first.replace(day=2), 1300, Category.RENT, "Oak Street Apartments", recurring=True),
            _spend(first.replace(day=5), 200, Category.GROCERIES, "Fresh Market"),
            _spend(first.replace(day=12), 500, Category.SHOPPING, "Mall"),
            _spend(first.replace(day=18), 300, Category.ENTERTAINMENT, "Concert Hall"),
        ]
    return transactions


@pytest.fixture
def steady_history(steady_transactions: List[Transaction]) -> List[MonthlySummary]:
    return aggregate_monthly(steady_transactions)


@pytest.fixture
def to_payload() -> Callable[[List[Transaction]], List[Dict[str, Any]]]:
    """Serialize domain transactions into API request JSON"""

    def _convert(transactions: List[Transaction]) -> List[Dict[str, Any]]:
        return [
            {
                "amount": t.amount,
                "date": t.date.isoformat(),
                "merchant": t.merchant,
                "category": t.category.value,
                "is_recurring": t.is_recurring,
                "is_income_deposit": t.is_income_deposit,
                "transaction_id": t.transaction_id,
            }
            for t in transactions
        ]

    return _convert
