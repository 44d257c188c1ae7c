from collections.abc import Callable
from datetime import date

import pytest

from pennywise.constants import INITIAL_CATEGORIES
from pennywise.domain.aggregation import (
    UNCATEGORIZED_ID,
    all_subcategory_breakdown,
    average_per_month,
    category_breakdown,
    completed_months_count,
    compute_summary,
    filter_by_date_range,
    group_by_merchant,
    is_category_missing,
    partition_active,
    subcategory_breakdown,
)
from pennywise.models import DateRange, Transaction, TransactionType

MARCH = DateRange(start="2024-03-01", end="2024-03-31")


def test_filter_by_date_range_is_inclusive(make_tx: Callable[..., Transaction]) -> None:
    feb, mid, apr = (
        make_tx(date="2024-02-28"),
        make_tx(date="2024-03-15"),
        make_tx(date="2024-04-01"),
    )
    assert filter_by_date_range([feb, mid, apr], MARCH) == [mid]

    edges = [make_tx(date="2024-03-01"), make_tx(date="2024-03-31")]
    assert filter_by_date_range(edges, MARCH) == edges


def test_missing_category_keeps_cached_name(make_tx: Callable[..., Transaction]) -> None:
    transaction = make_tx(category_id="food", category_name="Food")
    without_food = [c for c in INITIAL_CATEGORIES if c.id != "food"]

    assert is_category_missing(transaction, without_food)
    assert not is_category_missing(transaction, INITIAL_CATEGORIES)
    assert transaction.category_name == "Food"


def test_excluded_transactions_never_count(make_tx: Callable[..., Transaction]) -> None:
    transactions = [
        make_tx(amount=100, type=TransactionType.INCOME, category_id="income_salary"),
        make_tx(amount=30),
        make_tx(amount=500, category_id="excluded", category_name="Excluded"),
        make_tx(amount=70, excluded=True),
    ]
    partition = partition_active(transactions)
    assert len(partition.active) == 2
    assert len(partition.excluded) == 2

    summary = compute_summary(transactions)
    assert summary.total_income == 100
    assert summary.total_expense == 30
    assert summary.balance == summary.total_income - summary.total_expense
    assert compute_summary(transactions) == summary

    breakdown = category_breakdown(transactions, INITIAL_CATEGORIES)
    assert "excluded" not in {row.category_id for row in breakdown}
    assert sum(row.total for row in breakdown) == 130


def test_category_breakdown_collects_orphans(make_tx: Callable[..., Transaction]) -> None:
    transactions = [
        make_tx(amount=40, category_id="food"),
        make_tx(amount=15, category_id="", category_name=""),
        make_tx(amount=5, category_id="pets", category_name="Pets"),
    ]
    breakdown = category_breakdown(transactions, INITIAL_CATEGORIES)

    assert [row.category_id for row in breakdown] == ["food", UNCATEGORIZED_ID]
    assert breakdown[1].total == 20
    assert breakdown[1].count == 2
    assert breakdown[1].type is None


def test_subcategory_breakdowns(make_tx: Callable[..., Transaction]) -> None:
    transactions = [
        make_tx(amount=10, subcategory_name="Meals Out"),
        make_tx(amount=25, subcategory_name="Snacks"),
        make_tx(amount=5, subcategory_name="Meals Out"),
        make_tx(amount=99, category_id="travel", subcategory_name="Flights"),
        make_tx(amount=1000, type=TransactionType.INCOME, subcategory_name="Snacks"),
    ]
    food = subcategory_breakdown(transactions, "food", INITIAL_CATEGORIES)
    assert [(row.name, row.total) for row in food] == [("Snacks", 25), ("Meals Out", 15)]
    assert food[0].color == "#f97316"

    everything = all_subcategory_breakdown(transactions, INITIAL_CATEGORIES)
    assert [row.name for row in everything] == ["Flights", "Snacks", "Meals Out"]
    assert everything[0].parent_id == "travel"


def test_group_by_merchant(make_tx: Callable[..., Transaction]) -> None:
    transactions = [
        make_tx(id="1", description="Uber", amount=12, date="2024-03-01", subcategory_name="A"),
        make_tx(id="2", description="Uber", amount=8, date="2024-03-05", subcategory_name="B"),
        make_tx(id="3", description="Tesco", amount=15),
    ]
    uber, tesco = group_by_merchant(transactions)

    assert uber.amount == 20
    assert uber.count == 2
    assert uber.id == "2"
    assert uber.subcategory_name == "B"
    assert uber.transaction_ids == ["1", "2"]
    assert tesco.amount == 15


def test_group_by_merchant_signed(make_tx: Callable[..., Transaction]) -> None:
    transactions = [
        make_tx(description="Transfer", amount=300, type=TransactionType.INCOME),
        make_tx(description="Transfer", amount=100),
        make_tx(description="Card Payment", amount=500),
    ]
    card, transfer = group_by_merchant(transactions, signed=True)
    assert card.amount == -500
    assert transfer.amount == 200


def test_group_by_merchant_secondary(make_tx: Callable[..., Transaction]) -> None:
    transactions = [
        make_tx(description="Noon", amount=21, amount_original=100, original_currency="AED"),
        make_tx(description="Noon", amount=21),
    ]
    (group,) = group_by_merchant(transactions, use_secondary=True)
    assert group.amount == pytest.approx(200)


@pytest.mark.parametrize(
    ("date_range", "today", "expected"),
    [
        (DateRange(start="2024-01-01", end="2024-12-31"), date(2024, 5, 20), 4),
        (DateRange(start="2024-01-01", end="2024-03-31"), date(2024, 5, 20), 3),
        (DateRange(start="2024-05-01", end="2024-05-31"), date(2024, 5, 20), 1),
        (DateRange(start="2023-11-15", end="2024-02-10"), date(2024, 6, 1), 4),
        (DateRange(start="2024-01-15", end="2024-03-31"), date(2024, 5, 20), 3),
        (DateRange(start="2024-01-31", end="2024-02-01"), date(2024, 5, 20), 2),
    ],
)
def test_completed_months_count(date_range: DateRange, today: date, expected: int) -> None:
    assert completed_months_count(date_range, today) == expected


def test_average_per_month() -> None:
    year = DateRange(start="2024-01-01", end="2024-12-31")
    assert average_per_month(1200, year, date(2024, 5, 20)) == 300
