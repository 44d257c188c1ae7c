from pydantic import BaseModel

from pennywise.models import MerchantMapping, Transaction, TransactionType


class CategoryCreate(BaseModel):
    name: str
    type: TransactionType = TransactionType.EXPENSE
    color: str | None = None
    subcategories: list[str] = []


class CategoryPatch(BaseModel):
    name: str | None = None
    color: str | None = None


class SubcategoryRequest(BaseModel):
    name: str


class ConfirmMappingRequest(BaseModel):
    description: str
    category_id: str
    category_name: str
    subcategory_name: str = ""


class BackfillRequest(BaseModel):
    items: list[MerchantMapping] | None = None


class WebhookSettings(BaseModel):
    url: str | None = None


class TransactionPage(BaseModel):
    transactions: list[Transaction]
    count: int
    filtered_total: float
    missing_category_ids: list[str] = []


class ImportResponse(BaseModel):
    message: str
    imported: int
    auto_categorized: int
    skipped: int
    webhook_delivered: bool | None = None
    webhook_error: str | None = None
    transactions: list[Transaction]
