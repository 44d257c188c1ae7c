"""Translation between canonical transactions and the store's row layout.

The store keeps money in four directional columns instead of amount + type.
An income row has its money-in columns populated and money-out columns null;
an expense row is the reverse.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pennywise.domain.currency import SECONDARY_CURRENCY
from pennywise.domain.dates import normalize_date
from pennywise.models import (
    EXCLUDED_CATEGORY_ID,
    Category,
    MerchantMapping,
    Transaction,
    TransactionDraft,
    TransactionType,
)

COL_DATE = "Transaction Date"
COL_DESCRIPTION = "Description"
COL_CATEGORY = "Catagory"  # column name as it exists in the store
COL_SUBCATEGORY = "Sub-Category"
COL_MONEY_IN_GBP = "Money In - GBP"
COL_MONEY_OUT_GBP = "Money Out - GBP"
COL_MONEY_IN_AED = "Money In - AED"
COL_MONEY_OUT_AED = "Money Out - AED"
COL_BANK = "Bank Account"
COL_NOTE = "Note"

# Canonical fields that map one-to-one onto a column.
UPDATE_COLUMNS = {
    "description": COL_DESCRIPTION,
    "subcategory_name": COL_SUBCATEGORY,
    "notes": COL_NOTE,
}
# The store only knows a category by its name; exclusion is the Excluded name.
CATEGORY_FIELDS = frozenset({"category_id", "category_name", "excluded"})
MONEY_COLUMNS = (COL_MONEY_IN_GBP, COL_MONEY_OUT_GBP, COL_MONEY_IN_AED, COL_MONEY_OUT_AED)


def _number(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _populated(row: dict[str, Any], *columns: str) -> bool:
    return any(row.get(column) not in (None, "") for column in columns)


def to_storage_row(draft: TransactionDraft) -> dict[str, Any]:
    is_income = draft.type == TransactionType.INCOME
    original = draft.amount_original or None
    return {
        COL_DATE: draft.date,
        COL_DESCRIPTION: draft.description,
        COL_CATEGORY: draft.category_name,
        COL_SUBCATEGORY: draft.subcategory_name,
        COL_MONEY_IN_GBP: draft.amount if is_income else None,
        COL_MONEY_OUT_GBP: None if is_income else draft.amount,
        COL_MONEY_IN_AED: original if is_income else None,
        COL_MONEY_OUT_AED: None if is_income else original,
        COL_BANK: draft.bank_name,
        COL_NOTE: draft.notes or None,
    }


def resolve_category_id(category_name: str, categories: Iterable[Category]) -> str:
    wanted = category_name.strip().lower()
    if not wanted:
        return ""
    for category in categories:
        if category.name.lower() == wanted:
            return category.id
    return ""


def from_storage_row(row: dict[str, Any], categories: Iterable[Category] = ()) -> Transaction:
    money_in_gbp = _number(row.get(COL_MONEY_IN_GBP))
    money_out_gbp = _number(row.get(COL_MONEY_OUT_GBP))
    money_in_aed = _number(row.get(COL_MONEY_IN_AED))
    money_out_aed = _number(row.get(COL_MONEY_OUT_AED))

    money_in_set = _populated(row, COL_MONEY_IN_GBP, COL_MONEY_IN_AED)
    money_out_set = _populated(row, COL_MONEY_OUT_GBP, COL_MONEY_OUT_AED)
    # Zero-value rows keep their direction from which side is non-null
    is_income = money_in_gbp > 0 or money_in_aed > 0 or (money_in_set and not money_out_set)
    amount = money_in_gbp if is_income else money_out_gbp
    original = money_in_aed if is_income else money_out_aed

    category_name = row.get(COL_CATEGORY) or ""
    category_id = resolve_category_id(category_name, categories)

    return Transaction(
        id=str(row.get("id")),
        date=normalize_date(row.get(COL_DATE)),
        amount=amount,
        amount_original=original if original > 0 else None,
        original_currency=SECONDARY_CURRENCY if original > 0 else None,
        type=TransactionType.INCOME if is_income else TransactionType.EXPENSE,
        category_id=category_id,
        category_name=category_name,
        subcategory_name=row.get(COL_SUBCATEGORY) or "",
        description=row.get(COL_DESCRIPTION) or "",
        notes=row.get(COL_NOTE) or "",
        excluded=category_id == EXCLUDED_CATEGORY_ID,
        bank_name=row.get(COL_BANK) or "",
    )


def to_storage_update(transaction: Transaction, fields: Iterable[str]) -> dict[str, Any]:
    """Columns affected by editing `fields`, read from the already merged `transaction`.

    Fields are included when explicitly set, even when set to ''. A category
    change writes the cached name. A type change rewrites all four money
    columns so the direction flips as a whole.
    """
    changed = set(fields)
    columns = {
        column: getattr(transaction, field)
        for field, column in UPDATE_COLUMNS.items()
        if field in changed
    }
    if changed & CATEGORY_FIELDS:
        columns[COL_CATEGORY] = transaction.category_name
    if "type" in changed:
        row = to_storage_row(transaction)
        columns.update({column: row[column] for column in MONEY_COLUMNS})
    return columns


def category_to_row(category: Category) -> dict[str, Any]:
    return category.model_dump(mode="json")


def category_from_row(row: dict[str, Any]) -> Category:
    return Category(
        id=str(row["id"]),
        name=row.get("name") or "",
        subcategories=list(row.get("subcategories") or []),
        type=row.get("type") or TransactionType.EXPENSE,
        color=row.get("color") or "#94a3b8",
    )


def mapping_to_row(mapping: MerchantMapping) -> dict[str, Any]:
    return mapping.model_dump()


def mapping_from_row(row: dict[str, Any]) -> MerchantMapping:
    return MerchantMapping(
        merchant_pattern=row.get("merchant_pattern") or "",
        category_id=row.get("category_id") or "",
        category_name=row.get("category_name") or "",
        subcategory_name=row.get("subcategory_name") or "",
        count=int(row.get("count") or 0),
    )
