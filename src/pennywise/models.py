from enum import Enum

from pydantic import BaseModel, Field, field_validator

EXCLUDED_CATEGORY_ID = "excluded"
UNCATEGORIZED_NAME = "Uncategorized"
PLACEHOLDER_COLOR = "#94a3b8"


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionDraft(BaseModel):
    """A canonical transaction that has not been committed to the store yet."""

    date: str  # YYYY-MM-DD
    amount: float = Field(ge=0)  # GBP magnitude, direction lives in `type`
    type: TransactionType
    description: str = ""
    amount_original: float | None = None
    original_currency: str | None = None
    category_id: str = ""
    category_name: str = ""  # cached at write time, survives category deletion
    subcategory_name: str = ""
    notes: str | None = None
    excluded: bool = False
    bank_name: str | None = None
    auto_categorized: bool = Field(default=False, exclude=True)

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        from pennywise.domain.dates import parse_date  # dates depends on this module

        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"unrecognised date '{value}'")
        return parsed.isoformat()


class Transaction(TransactionDraft):
    id: str


class TransactionUpdate(BaseModel):
    """Sparse edit; only fields explicitly set are sent to the store."""

    description: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    subcategory_name: str | None = None
    notes: str | None = None
    excluded: bool | None = None
    type: TransactionType | None = None


class Category(BaseModel):
    id: str
    name: str
    type: TransactionType
    color: str = PLACEHOLDER_COLOR
    subcategories: list[str] = Field(default_factory=list)


class Bank(BaseModel):
    id: str
    name: str
    currency: str = "GBP"
    icon: str = ""


class MerchantMapping(BaseModel):
    merchant_pattern: str
    category_id: str
    category_name: str
    subcategory_name: str = ""
    count: int = 1


class DateRange(BaseModel):
    start: str
    end: str
    label: str = "Custom Range"


class FinancialSummary(BaseModel):
    total_income: float = 0.0
    total_expense: float = 0.0
    balance: float = 0.0
