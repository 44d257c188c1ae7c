from collections.abc import Callable

import pytest

from pennywise.domain.trends import Granularity, trend_series
from pennywise.models import DateRange, Transaction, TransactionType


def test_daily_series_fills_gaps(make_tx: Callable[..., Transaction]) -> None:
    week = DateRange(start="2024-03-01", end="2024-03-07")
    transactions = [
        make_tx(date="2024-03-02", amount=5),
        make_tx(date="2024-03-05", amount=10),
        make_tx(date="2024-03-03", amount=900, type=TransactionType.INCOME),
        make_tx(date="2024-03-09", amount=50),
    ]
    buckets = trend_series(transactions, "daily", week)

    assert len(buckets) == 7
    assert buckets[0].key == "2024-03-01"
    assert buckets[-1].key == "2024-03-07"
    assert [b.amount for b in buckets] == [0, 5, 0, 0, 10, 0, 0]
    assert sum(b.count for b in buckets) == 2


def test_weekly_buckets_are_keyed_by_sunday(make_tx: Callable[..., Transaction]) -> None:
    fortnight = DateRange(start="2024-03-01", end="2024-03-14")
    transactions = [
        make_tx(date="2024-03-01", amount=4),
        make_tx(date="2024-03-04", amount=6),
        make_tx(date="2024-03-10", amount=1),
    ]
    buckets = trend_series(transactions, Granularity.WEEKLY, fortnight)

    assert [b.key for b in buckets] == ["2024-03-03", "2024-03-10", "2024-03-17"]
    assert buckets[1].start == "2024-03-04"
    assert [b.amount for b in buckets] == [4, 7, 0]


def test_monthly_series_only_has_months_with_data(make_tx: Callable[..., Transaction]) -> None:
    quarter = DateRange(start="2024-01-01", end="2024-03-31")
    transactions = [
        make_tx(date="2024-03-20", amount=30, amount_original=150),
        make_tx(date="2024-01-02", amount=21),
    ]
    buckets = trend_series(transactions, "monthly", quarter)

    assert [b.key for b in buckets] == ["2024-01", "2024-03"]
    assert buckets[0].end == "2024-01-31"
    assert buckets[0].amount_secondary == pytest.approx(100.0)
    assert buckets[1].amount_secondary == 150


def test_unknown_granularity() -> None:
    with pytest.raises(ValueError):
        trend_series([], "hourly", DateRange(start="2024-01-01", end="2024-01-02"))
