"""
Values -- closed enumerations shared by ledger entries and recurrence templates.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by models, services, and
    the recurring engine.
"""

from __future__ import annotations

from enum import Enum


class TransactionKind(str, Enum):
    """Direction of a ledger entry."""

    INCOME = "income"
    EXPENSE = "expense"


class Category(str, Enum):
    """Spending / income categories accepted on entries and templates."""

    FOOD_AND_DINING = "Food & Dining"
    TRANSPORTATION = "Transportation"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    UTILITIES = "Utilities"
    EDUCATION = "Education"
    TRAVEL = "Travel"
    SALARY = "Salary"
    BUSINESS = "Business"
    INVESTMENT = "Investment"
    RENT_MORTGAGE = "Rent/Mortgage"
    SUBSCRIPTIONS = "Subscriptions"
    OTHERS = "Others"

    @classmethod
    def parse(cls, value: str | Category) -> Category:
        """Accept either the member or its display value ("Rent/Mortgage").

        Raises:
            ValueError: If the value is not a known category.
        """
        if isinstance(value, Category):
            return value
        return cls(str(value).strip())
