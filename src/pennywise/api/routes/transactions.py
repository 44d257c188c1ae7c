from typing import Annotated, Literal

from fastapi import APIRouter, Depends

from pennywise.api.dependencies import get_date_range, get_service, http_error
from pennywise.api.schemas import TransactionPage
from pennywise.domain.aggregation import filter_by_date_range
from pennywise.domain.filters import TransactionFilters, filter_transactions, filtered_total
from pennywise.errors import PennywiseError
from pennywise.logger import get_logger
from pennywise.manager import TrackerService
from pennywise.models import DateRange, Transaction, TransactionDraft, TransactionUpdate

logger = get_logger(__name__)

router = APIRouter()


@router.get("/api/transactions")
async def list_transactions(
    service: Annotated[TrackerService, Depends(get_service)],
    date_range: Annotated[DateRange, Depends(get_date_range)],
    type: Literal["all", "INCOME", "EXPENSE"] = "all",
    bank: str = "all",
    category: str = "all",
    subcategory: str = "all",
    search: str = "",
) -> TransactionPage:
    filters = TransactionFilters(
        type=type,
        bank=bank,
        category_id=category,
        subcategory=subcategory,
        query=search,
    )
    in_range = filter_by_date_range(service.transactions.list(), date_range)
    matches = filter_transactions(in_range, filters)
    return TransactionPage(
        transactions=matches,
        count=len(matches),
        filtered_total=filtered_total(matches, filters),
        missing_category_ids=[
            t.id for t in matches if service.categories.is_category_missing(t)
        ],
    )


@router.post("/api/transactions", status_code=201)
async def create_transaction(
    draft: TransactionDraft,
    service: Annotated[TrackerService, Depends(get_service)],
) -> Transaction:
    try:
        return await service.transactions.add(draft)
    except PennywiseError as exc:
        raise http_error(exc) from exc


@router.patch("/api/transactions/{transaction_id}")
async def update_transaction(
    transaction_id: str,
    update: TransactionUpdate,
    service: Annotated[TrackerService, Depends(get_service)],
) -> Transaction:
    try:
        return await service.save_transaction(transaction_id, update)
    except PennywiseError as exc:
        raise http_error(exc) from exc


@router.delete("/api/transactions/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    service: Annotated[TrackerService, Depends(get_service)],
) -> dict[str, str]:
    try:
        await service.transactions.delete(transaction_id)
    except PennywiseError as exc:
        raise http_error(exc) from exc
    return {"status": "deleted", "id": transaction_id}


@router.post("/api/transactions/{transaction_id}/exclude")
async def toggle_exclusion(
    transaction_id: str,
    service: Annotated[TrackerService, Depends(get_service)],
) -> Transaction:
    try:
        transaction = await service.transactions.toggle_exclusion(transaction_id)
    except PennywiseError as exc:
        raise http_error(exc) from exc
    logger.info(
        "[REPO] Transaction %s is now %s.",
        transaction_id,
        "excluded" if transaction.excluded else "included",
    )
    return transaction
