from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from pennywise.domain.aggregation import is_excluded
from pennywise.models import Category, Transaction, TransactionType

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass
class MonthTotals:
    name: str
    income: float = 0.0
    expense: float = 0.0


@dataclass
class YearlyRow:
    id: str
    name: str
    color: str | None
    monthly_totals: list[float]
    year_total: float
    children: list["YearlyRow"] = field(default_factory=list)


@dataclass
class YearlySummary:
    year: int
    months: list[MonthTotals]
    income: list[YearlyRow]
    expense: list[YearlyRow]


def available_years(transactions: Iterable[Transaction], today: date | None = None) -> list[int]:
    years = sorted({int(t.date[:4]) for t in transactions if t.date[:4].isdigit()}, reverse=True)
    return years or [(today or date.today()).year]


def _month_index(transaction: Transaction) -> int:
    return int(transaction.date[5:7]) - 1


def _hierarchy(
    transactions: list[Transaction],
    categories: Sequence[Category],
    kind: TransactionType,
) -> list[YearlyRow]:
    relevant = [t for t in transactions if t.type == kind]
    rows = []
    for category in categories:
        if category.type != kind:
            continue
        # Older rows may only carry the cached name
        members = [
            t for t in relevant
            if t.category_id == category.id or t.category_name == category.name
        ]
        monthly = [0.0] * 12
        for t in members:
            monthly[_month_index(t)] += t.amount

        children = []
        # Subcategories present in the data, even if the category list dropped them
        for sub_name in dict.fromkeys(t.subcategory_name for t in members if t.subcategory_name):
            sub_monthly = [0.0] * 12
            for t in members:
                if t.subcategory_name == sub_name:
                    sub_monthly[_month_index(t)] += t.amount
            children.append(
                YearlyRow(
                    id=f"{category.id}-{sub_name}",
                    name=sub_name,
                    color=None,
                    monthly_totals=sub_monthly,
                    year_total=sum(sub_monthly),
                )
            )
        children.sort(key=lambda row: row.year_total, reverse=True)

        rows.append(
            YearlyRow(
                id=category.id,
                name=category.name,
                color=category.color,
                monthly_totals=monthly,
                year_total=sum(monthly),
                children=children,
            )
        )
    return sorted(
        (row for row in rows if row.year_total > 0),
        key=lambda row: row.year_total,
        reverse=True,
    )


def yearly_summary(
    transactions: Iterable[Transaction], categories: Sequence[Category], year: int
) -> YearlySummary:
    prefix = f"{year:04d}-"
    in_year = [t for t in transactions if t.date.startswith(prefix) and not is_excluded(t)]

    months = [MonthTotals(name=name) for name in MONTHS]
    for t in in_year:
        bucket = months[_month_index(t)]
        if t.type == TransactionType.INCOME:
            bucket.income += t.amount
        else:
            bucket.expense += t.amount

    return YearlySummary(
        year=year,
        months=months,
        income=_hierarchy(in_year, categories, TransactionType.INCOME),
        expense=_hierarchy(in_year, categories, TransactionType.EXPENSE),
    )
