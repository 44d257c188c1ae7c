from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from pennywise.domain.aggregation import filter_by_date_range, secondary_amount
from pennywise.domain.currency import CurrencyNormalizer
from pennywise.domain.dates import last_day_of_month
from pennywise.models import DateRange, Transaction, TransactionType


class Granularity(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class TrendBucket:
    key: str  # sort key: the day, the week's Sunday, or YYYY-MM
    start: str
    end: str
    amount: float
    amount_secondary: float
    count: int


def _daily_windows(start: date, end: date) -> list[tuple[str, date, date]]:
    windows = []
    day = start
    while day <= end:
        windows.append((day.isoformat(), day, day))
        day += timedelta(days=1)
    return windows


def _weekly_windows(start: date, end: date) -> list[tuple[str, date, date]]:
    windows = []
    monday = start - timedelta(days=start.weekday())
    while monday <= end:
        sunday = monday + timedelta(days=6)
        windows.append((sunday.isoformat(), monday, sunday))
        monday += timedelta(days=7)
    return windows


def _monthly_windows(transactions: Iterable[Transaction]) -> list[tuple[str, date, date]]:
    months = sorted({t.date[:7] for t in transactions})
    windows = []
    for month_key in months:
        year, month = int(month_key[:4]), int(month_key[5:7])
        windows.append((month_key, date(year, month, 1), last_day_of_month(year, month)))
    return windows


def trend_series(
    transactions: Iterable[Transaction],
    granularity: Granularity | str,
    date_range: DateRange,
    normalizer: CurrencyNormalizer | None = None,
) -> list[TrendBucket]:
    """Expense totals per bucket.

    Daily and weekly series cover every bucket in the range, empty ones at 0.
    Monthly series have one bucket per month that holds expense data.
    """
    granularity = Granularity(granularity)
    expenses = [
        t
        for t in filter_by_date_range(transactions, date_range)
        if t.type == TransactionType.EXPENSE
    ]

    start = date.fromisoformat(date_range.start)
    end = date.fromisoformat(date_range.end)
    if granularity == Granularity.DAILY:
        windows = _daily_windows(start, end)
    elif granularity == Granularity.WEEKLY:
        windows = _weekly_windows(start, end)
    else:
        windows = _monthly_windows(expenses)

    buckets = []
    for key, window_start, window_end in windows:
        lo, hi = window_start.isoformat(), window_end.isoformat()
        members = [t for t in expenses if lo <= t.date <= hi]
        buckets.append(
            TrendBucket(
                key=key,
                start=lo,
                end=hi,
                amount=round(sum(t.amount for t in members), 2),
                amount_secondary=round(
                    sum(secondary_amount(t, normalizer) for t in members), 2
                ),
                count=len(members),
            )
        )
    return buckets
