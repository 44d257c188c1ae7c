from collections.abc import Callable
from datetime import date

import pytest

from pennywise.constants import INITIAL_CATEGORIES
from pennywise.domain.storage import (
    COL_CATEGORY,
    COL_MONEY_IN_AED,
    COL_MONEY_IN_GBP,
    COL_MONEY_OUT_AED,
    COL_MONEY_OUT_GBP,
    COL_NOTE,
    from_storage_row,
    to_storage_row,
    to_storage_update,
)
from pennywise.models import Transaction, TransactionDraft, TransactionType


@pytest.mark.parametrize("kind", [TransactionType.INCOME, TransactionType.EXPENSE])
def test_round_trip_preserves_amount_and_type(kind: TransactionType) -> None:
    draft = TransactionDraft(
        date="2024-05-01",
        amount=42.5,
        amount_original=202.38,
        original_currency="AED",
        type=kind,
        description="Salary" if kind == TransactionType.INCOME else "Carrefour",
        category_name="Salary" if kind == TransactionType.INCOME else "Groceries",
        bank_name="Wio Bank",
    )
    row = {"id": 7, **to_storage_row(draft)}
    restored = from_storage_row(row, INITIAL_CATEGORIES)

    assert restored.id == "7"
    assert restored.amount == 42.5
    assert restored.type == kind
    assert restored.amount_original == 202.38
    assert restored.original_currency == "AED"
    assert restored.bank_name == "Wio Bank"


def test_expense_row_leaves_money_in_columns_null() -> None:
    draft = TransactionDraft(date="2024-05-01", amount=12.0, type=TransactionType.EXPENSE)
    row = to_storage_row(draft)

    assert row[COL_MONEY_OUT_GBP] == 12.0
    assert row[COL_MONEY_IN_GBP] is None
    assert row[COL_MONEY_IN_AED] is None
    assert row[COL_MONEY_OUT_AED] is None
    assert row[COL_NOTE] is None


def test_zero_amount_income_keeps_direction() -> None:
    draft = TransactionDraft(date="2024-05-01", amount=0.0, type=TransactionType.INCOME)
    restored = from_storage_row({"id": 1, **to_storage_row(draft)})
    assert restored.type == TransactionType.INCOME


def test_category_id_resolved_case_insensitively() -> None:
    row = {
        "id": 3,
        "Transaction Date": "2024-01-02",
        COL_CATEGORY: "groceries",
        COL_MONEY_OUT_GBP: 5,
    }
    restored = from_storage_row(row, INITIAL_CATEGORIES)
    assert restored.category_id == "groceries"
    assert restored.category_name == "groceries"


def test_excluded_is_derived_from_category() -> None:
    row = {"id": 4, "Transaction Date": "2024-01-02", COL_CATEGORY: "Excluded", COL_MONEY_OUT_GBP: 5}
    restored = from_storage_row(row, INITIAL_CATEGORIES)
    assert restored.category_id == "excluded"
    assert restored.excluded is True


def test_unknown_category_name_keeps_empty_id() -> None:
    row = {"id": 5, "Transaction Date": "2024-01-02", COL_CATEGORY: "Pets", COL_MONEY_OUT_GBP: 5}
    restored = from_storage_row(row, INITIAL_CATEGORIES)
    assert restored.category_id == ""
    assert restored.category_name == "Pets"


def test_sparse_update_only_sends_explicit_fields(make_tx: Callable[..., Transaction]) -> None:
    transaction = make_tx(notes="")
    assert to_storage_update(transaction, ["notes"]) == {COL_NOTE: ""}
    assert to_storage_update(transaction, ["category_id", "excluded"]) == {COL_CATEGORY: "Food"}
    assert to_storage_update(transaction, ["auto_categorized"]) == {}


def test_type_update_sends_every_money_column(make_tx: Callable[..., Transaction]) -> None:
    income = make_tx(amount=12.5, type=TransactionType.INCOME)
    assert to_storage_update(income, ["type"]) == {
        COL_MONEY_IN_GBP: 12.5,
        COL_MONEY_OUT_GBP: None,
        COL_MONEY_IN_AED: None,
        COL_MONEY_OUT_AED: None,
    }


def test_unparseable_stored_date_falls_back_to_today() -> None:
    row = {"id": 3, "Transaction Date": "05/01/2024", COL_MONEY_OUT_GBP: 5}
    assert from_storage_row(row).date == "2024-01-05"

    row["Transaction Date"] = "soon"
    assert from_storage_row(row).date == date.today().isoformat()
