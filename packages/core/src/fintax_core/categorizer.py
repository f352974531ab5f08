"""Keyword categorization of expense descriptions.

Rules are evaluated in a fixed order and the first match wins, so an
expense always lands in exactly one category. The default rule set uses
the Russian word stems found in bank statement and book descriptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class ExpenseCategory(str, Enum):
    """Expense categories used by the income/expense and P&L reports."""

    SALARY = "salary"
    TAXES = "taxes"
    RENT = "rent"
    BANK_FEES = "bank_fees"
    PURCHASES = "purchases"
    MARKETING = "marketing"
    COMMUNICATIONS = "communications"
    TRANSPORT = "transport"
    OTHER = "other"


@dataclass(frozen=True)
class CategoryRule:
    """Assigns ``category`` when any keyword occurs in the description."""

    category: ExpenseCategory
    keywords: tuple[str, ...]

    def matches(self, description: str) -> bool:
        text = description.lower()
        return any(keyword in text for keyword in self.keywords)


DEFAULT_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(ExpenseCategory.SALARY, ("зарплат", "оплата труда")),
    CategoryRule(ExpenseCategory.TAXES, ("налог", "ндфл", "усн")),
    CategoryRule(ExpenseCategory.RENT, ("аренд",)),
    CategoryRule(ExpenseCategory.BANK_FEES, ("комиссия", "банк")),
    CategoryRule(ExpenseCategory.PURCHASES, ("закупк", "товар", "материал")),
    CategoryRule(ExpenseCategory.MARKETING, ("реклам", "маркетинг")),
    CategoryRule(ExpenseCategory.COMMUNICATIONS, ("связь", "интернет", "телефон")),
    CategoryRule(ExpenseCategory.TRANSPORT, ("транспорт", "доставк")),
)


def categorize_expense(
    description: str,
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
) -> ExpenseCategory:
    """Return the category of the first rule matching the description."""
    for rule in rules:
        if rule.matches(description):
            return rule.category
    return ExpenseCategory.OTHER


__all__ = [
    "ExpenseCategory",
    "CategoryRule",
    "DEFAULT_RULES",
    "categorize_expense",
]
