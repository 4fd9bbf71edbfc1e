"""Spending categories and their essential/discretionary bucket"""

from enum import Enum
from typing import Dict


class Category(str, Enum):
    """Canonical transaction categories"""

    RENT = "rent"
    GROCERIES = "groceries"
    UTILITIES = "utilities"
    INSURANCE = "insurance"
    MEDICAL = "medical"
    TRANSPORTATION = "transportation"
    DEBT_PAYMENT = "debt_payment"
    DINING = "dining"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    SUBSCRIPTIONS = "subscriptions"
    INCOME = "income"
    SAVINGS_TRANSFER = "savings_transfer"
    INVESTMENT = "investment"
    OTHER = "other"


class SpendingBucket(str, Enum):
    ESSENTIAL = "essential"
    DISCRETIONARY = "discretionary"


# Every Category appears exactly once; tests assert the mapping is exhaustive.
CATEGORY_BUCKETS: Dict[Category, SpendingBucket] = {
    Category.RENT: SpendingBucket.ESSENTIAL,
    Category.GROCERIES: SpendingBucket.ESSENTIAL,
    Category.UTILITIES: SpendingBucket.ESSENTIAL,
    Category.INSURANCE: SpendingBucket.ESSENTIAL,
    Category.MEDICAL: SpendingBucket.ESSENTIAL,
    Category.TRANSPORTATION: SpendingBucket.ESSENTIAL,
    Category.DEBT_PAYMENT: SpendingBucket.ESSENTIAL,
    Category.DINING: SpendingBucket.DISCRETIONARY,
    Category.ENTERTAINMENT: SpendingBucket.DISCRETIONARY,
    Category.SHOPPING: SpendingBucket.DISCRETIONARY,
    Category.SUBSCRIPTIONS: SpendingBucket.DISCRETIONARY,
    Category.INCOME: SpendingBucket.DISCRETIONARY,
    Category.SAVINGS_TRANSFER: SpendingBucket.DISCRETIONARY,
    Category.INVESTMENT: SpendingBucket.DISCRETIONARY,
    Category.OTHER: SpendingBucket.DISCRETIONARY,
}


def bucket_for(category: Category) -> SpendingBucket:
    """Look up the spending bucket for a category"""
    return CATEGORY_BUCKETS[category]


def is_essential(category: Category) -> bool:
    return CATEGORY_BUCKETS[category] is SpendingBucket.ESSENTIAL
