"""Pure aggregation over explicit inputs.

Nothing here reads ambient state: callers pass the transactions, the date
range and the category list, and re-invoke when any of them change.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from pennywise.domain.currency import CurrencyNormalizer
from pennywise.domain.dates import last_day_of_month, shift_month
from pennywise.models import (
    EXCLUDED_CATEGORY_ID,
    PLACEHOLDER_COLOR,
    UNCATEGORIZED_NAME,
    Category,
    DateRange,
    FinancialSummary,
    Transaction,
    TransactionType,
)

UNCATEGORIZED_ID = "uncategorized"


@dataclass(frozen=True)
class Partition:
    active: list[Transaction]
    excluded: list[Transaction]


@dataclass(frozen=True)
class CategoryTotal:
    category_id: str
    name: str
    color: str
    type: TransactionType | None
    total: float
    count: int


@dataclass(frozen=True)
class SubcategoryTotal:
    name: str
    total: float
    color: str
    parent_id: str


@dataclass
class MerchantGroup:
    description: str
    amount: float
    count: int
    id: str
    date: str
    subcategory_name: str
    transaction_ids: list[str] = field(default_factory=list)


def is_excluded(transaction: Transaction) -> bool:
    return transaction.excluded or transaction.category_id == EXCLUDED_CATEGORY_ID


def filter_by_date_range(
    transactions: Iterable[Transaction], date_range: DateRange
) -> list[Transaction]:
    # ISO dates order lexicographically, so string comparison is enough
    return [t for t in transactions if date_range.start <= t.date <= date_range.end]


def partition_active(transactions: Iterable[Transaction]) -> Partition:
    active: list[Transaction] = []
    excluded: list[Transaction] = []
    for transaction in transactions:
        (excluded if is_excluded(transaction) else active).append(transaction)
    return Partition(active=active, excluded=excluded)


def compute_summary(active: Iterable[Transaction]) -> FinancialSummary:
    total_income = 0.0
    total_expense = 0.0
    for transaction in active:
        if is_excluded(transaction):
            continue
        if transaction.type == TransactionType.INCOME:
            total_income += transaction.amount
        else:
            total_expense += transaction.amount
    return FinancialSummary(
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
    )


def is_category_missing(transaction: Transaction, categories: Iterable[Category]) -> bool:
    """A transaction that points at a category the registry no longer has."""
    if not transaction.category_id or transaction.category_id == EXCLUDED_CATEGORY_ID:
        return False
    return all(category.id != transaction.category_id for category in categories)


def category_breakdown(
    active: Iterable[Transaction], categories: Sequence[Category]
) -> list[CategoryTotal]:
    known = {category.id: category for category in categories}
    totals: dict[str, float] = {category.id: 0.0 for category in categories}
    counts: dict[str, int] = {category.id: 0 for category in categories}
    orphan_total = 0.0
    orphan_count = 0

    for transaction in active:
        if is_excluded(transaction):
            continue
        if transaction.category_id in known:
            totals[transaction.category_id] += transaction.amount
            counts[transaction.category_id] += 1
        else:
            orphan_total += transaction.amount
            orphan_count += 1

    rows = [
        CategoryTotal(
            category_id=category.id,
            name=category.name,
            color=category.color,
            type=category.type,
            total=totals[category.id],
            count=counts[category.id],
        )
        for category in categories
    ]
    rows.append(
        CategoryTotal(
            category_id=UNCATEGORIZED_ID,
            name=UNCATEGORIZED_NAME,
            color=PLACEHOLDER_COLOR,
            type=None,
            total=orphan_total,
            count=orphan_count,
        )
    )
    return sorted((row for row in rows if row.total > 0), key=lambda row: row.total, reverse=True)


def subcategory_breakdown(
    active: Iterable[Transaction],
    category_id: str,
    categories: Sequence[Category] = (),
) -> list[SubcategoryTotal]:
    color = next((c.color for c in categories if c.id == category_id), PLACEHOLDER_COLOR)
    groups: dict[str, float] = {}
    for transaction in active:
        if (
            is_excluded(transaction)
            or transaction.type != TransactionType.EXPENSE
            or transaction.category_id != category_id
        ):
            continue
        groups[transaction.subcategory_name] = (
            groups.get(transaction.subcategory_name, 0.0) + transaction.amount
        )
    rows = [
        SubcategoryTotal(name=name, total=total, color=color, parent_id=category_id)
        for name, total in groups.items()
    ]
    return sorted(rows, key=lambda row: row.total, reverse=True)


def all_subcategory_breakdown(
    active: Iterable[Transaction], categories: Sequence[Category]
) -> list[SubcategoryTotal]:
    """Expense subcategories across every category; the first parent seen wins."""
    colors = {category.id: category.color for category in categories}
    groups: dict[str, tuple[float, str]] = {}
    for transaction in active:
        if is_excluded(transaction) or transaction.type != TransactionType.EXPENSE:
            continue
        total, parent_id = groups.get(
            transaction.subcategory_name, (0.0, transaction.category_id)
        )
        groups[transaction.subcategory_name] = (total + transaction.amount, parent_id)
    rows = [
        SubcategoryTotal(
            name=name,
            total=total,
            color=colors.get(parent_id, PLACEHOLDER_COLOR),
            parent_id=parent_id,
        )
        for name, (total, parent_id) in groups.items()
    ]
    return sorted(rows, key=lambda row: row.total, reverse=True)


def secondary_amount(
    transaction: Transaction, normalizer: CurrencyNormalizer | None = None
) -> float:
    if transaction.amount_original is not None:
        return transaction.amount_original
    return (normalizer or CurrencyNormalizer()).to_secondary(transaction.amount)


def group_by_merchant(
    transactions: Iterable[Transaction],
    *,
    signed: bool = False,
    use_secondary: bool = False,
    normalizer: CurrencyNormalizer | None = None,
) -> list[MerchantGroup]:
    """Group by exact description.

    With `signed=True` income counts positive and expenses negative, and groups
    are ordered by absolute value; this is the view used for excluded totals.
    """
    groups: dict[str, MerchantGroup] = {}
    for transaction in transactions:
        value = (
            secondary_amount(transaction, normalizer) if use_secondary else transaction.amount
        )
        if signed and transaction.type == TransactionType.EXPENSE:
            value = -value

        group = groups.get(transaction.description)
        if group is None:
            groups[transaction.description] = MerchantGroup(
                description=transaction.description,
                amount=value,
                count=1,
                id=transaction.id,
                date=transaction.date,
                subcategory_name=transaction.subcategory_name,
                transaction_ids=[transaction.id],
            )
            continue

        group.amount += value
        group.count += 1
        group.transaction_ids.append(transaction.id)
        if transaction.date > group.date:
            group.date = transaction.date
            group.subcategory_name = transaction.subcategory_name
            group.id = transaction.id

    key = (lambda g: abs(g.amount)) if signed else (lambda g: g.amount)
    return sorted(groups.values(), key=key, reverse=True)


def completed_months_count(date_range: DateRange, today: date | None = None) -> int:
    """Calendar months the range touches up to the end of last month. Minimum 1.

    The month in progress is never counted. A range starting mid-month still
    counts its first month, so a This Year range averages over every month
    that has finished.
    """
    today = today or date.today()
    prev_year, prev_month = shift_month(today.year, today.month, -1)
    cutoff = min(date.fromisoformat(date_range.end), last_day_of_month(prev_year, prev_month))
    start = date.fromisoformat(date_range.start)
    if cutoff < start:
        return 1
    months = (cutoff.year - start.year) * 12 + (cutoff.month - start.month) + 1
    return max(1, months)


def average_per_month(total: float, date_range: DateRange, today: date | None = None) -> float:
    return total / completed_months_count(date_range, today)
