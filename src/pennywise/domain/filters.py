from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel

from pennywise.domain.aggregation import is_excluded
from pennywise.domain.dates import inclusive_days
from pennywise.models import Bank, Category, DateRange, Transaction, TransactionType

ALL = "all"


class TransactionFilters(BaseModel):
    type: Literal["all", "INCOME", "EXPENSE"] = ALL
    bank: str = ALL
    category_id: str = ALL
    subcategory: str = ALL
    query: str = ""

    @property
    def is_active(self) -> bool:
        return (
            self.type != ALL
            or self.bank != ALL
            or self.category_id != ALL
            or self.subcategory != ALL
            or bool(self.query.strip())
        )


@dataclass(frozen=True)
class DailyAverage:
    total: float
    daily_average: float
    days_in_range: int
    transaction_count: int
    is_income: bool

    @property
    def average_transaction(self) -> float:
        return self.total / self.transaction_count if self.transaction_count else 0.0


def _matches_query(transaction: Transaction, query: str) -> bool:
    haystacks = (
        transaction.description,
        str(transaction.amount),
        transaction.date,
        transaction.category_name,
        transaction.notes or "",
        transaction.subcategory_name,
        transaction.bank_name or "",
    )
    return any(query in value.lower() for value in haystacks)


def filter_transactions(
    transactions: Iterable[Transaction], filters: TransactionFilters
) -> list[Transaction]:
    """Transaction-log view; excluded rows stay visible. Newest first."""
    query = filters.query.strip().lower()
    matches = []
    for t in transactions:
        if filters.type != ALL and t.type.value != filters.type:
            continue
        if filters.bank != ALL and t.bank_name != filters.bank:
            continue
        if query and not _matches_query(t, query):
            continue
        if filters.category_id != ALL and t.category_id != filters.category_id:
            continue
        if filters.subcategory != ALL and t.subcategory_name != filters.subcategory:
            continue
        matches.append(t)
    matches.sort(key=lambda t: t.id)
    matches.sort(key=lambda t: t.date, reverse=True)
    return matches


def filtered_total(transactions: Iterable[Transaction], filters: TransactionFilters) -> float:
    """Signed net of the active matches; 0 while no filter is applied."""
    if not filters.is_active:
        return 0.0
    total = 0.0
    for t in transactions:
        if is_excluded(t):
            continue
        total += t.amount if t.type == TransactionType.INCOME else -t.amount
    return total


def daily_average(
    transactions: Iterable[Transaction],
    date_range: DateRange,
    filters: TransactionFilters | None = None,
) -> DailyAverage:
    target = (
        TransactionType.INCOME
        if filters is not None and filters.type == TransactionType.INCOME.value
        else TransactionType.EXPENSE
    )
    selected = [t for t in transactions if t.type == target and not is_excluded(t)]
    total = sum(t.amount for t in selected)
    days = inclusive_days(date_range)
    return DailyAverage(
        total=total,
        daily_average=total / days,
        days_in_range=days,
        transaction_count=len(selected),
        is_income=target == TransactionType.INCOME,
    )


def available_banks(transactions: Iterable[Transaction], banks: Iterable[Bank]) -> list[str]:
    names = {bank.name for bank in banks}
    names.update(t.bank_name for t in transactions if t.bank_name)
    return sorted(names)


def available_subcategories(categories: Sequence[Category], category_id: str = ALL) -> list[str]:
    if category_id != ALL:
        for category in categories:
            if category.id == category_id:
                return list(category.subcategories)
        return []
    subs = {
        sub
        for category in categories
        if category.type == TransactionType.EXPENSE
        for sub in category.subcategories
    }
    return sorted(subs)
