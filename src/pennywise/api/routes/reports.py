from dataclasses import asdict
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends

from pennywise.api.dependencies import get_date_range, get_service
from pennywise.domain.aggregation import (
    all_subcategory_breakdown,
    average_per_month,
    category_breakdown,
    completed_months_count,
    compute_summary,
    filter_by_date_range,
    group_by_merchant,
    partition_active,
    subcategory_breakdown,
)
from pennywise.domain.filters import TransactionFilters, daily_average
from pennywise.domain.trends import Granularity, trend_series
from pennywise.domain.yearly import available_years, yearly_summary
from pennywise.manager import TrackerService
from pennywise.models import DateRange, TransactionType

router = APIRouter()


@router.get("/api/summary")
async def summary(
    service: Annotated[TrackerService, Depends(get_service)],
    date_range: Annotated[DateRange, Depends(get_date_range)],
    type: Literal["all", "INCOME", "EXPENSE"] = "all",
    category: str | None = None,
) -> dict[str, Any]:
    categories = service.categories.list()
    in_range = filter_by_date_range(service.transactions.list(), date_range)
    partition = partition_active(in_range)
    totals = compute_summary(partition.active)

    if category:
        subcategories = subcategory_breakdown(partition.active, category, categories)
    else:
        subcategories = all_subcategory_breakdown(partition.active, categories)
    excluded_groups = group_by_merchant(partition.excluded, signed=True)

    return {
        "range": date_range.model_dump(),
        "summary": totals.model_dump(),
        "categories": [asdict(row) for row in category_breakdown(partition.active, categories)],
        "subcategories": [asdict(row) for row in subcategories],
        "daily_average": asdict(
            daily_average(partition.active, date_range, TransactionFilters(type=type))
        ),
        "monthly_average": {
            "months": completed_months_count(date_range),
            "expense": average_per_month(totals.total_expense, date_range),
            "income": average_per_month(totals.total_income, date_range),
        },
        "excluded": {
            "count": len(partition.excluded),
            "net": sum(group.amount for group in excluded_groups),
            "merchants": [asdict(group) for group in excluded_groups],
        },
    }


@router.get("/api/trends")
async def trends(
    service: Annotated[TrackerService, Depends(get_service)],
    date_range: Annotated[DateRange, Depends(get_date_range)],
    granularity: Granularity = Granularity.DAILY,
    category: str | None = None,
) -> dict[str, Any]:
    transactions = partition_active(service.transactions.list()).active
    if category:
        transactions = [t for t in transactions if t.category_id == category]
    buckets = trend_series(transactions, granularity, date_range, service.normalizer)
    return {
        "range": date_range.model_dump(),
        "granularity": granularity.value,
        "buckets": [asdict(bucket) for bucket in buckets],
    }


@router.get("/api/merchants")
async def merchants(
    service: Annotated[TrackerService, Depends(get_service)],
    date_range: Annotated[DateRange, Depends(get_date_range)],
    category: str | None = None,
    subcategory: str | None = None,
    type: TransactionType | None = None,
    secondary: bool = False,
) -> dict[str, Any]:
    active = partition_active(filter_by_date_range(service.transactions.list(), date_range)).active
    if category:
        active = [t for t in active if t.category_id == category]
    if subcategory:
        active = [t for t in active if t.subcategory_name == subcategory]
    if type is not None:
        active = [t for t in active if t.type == type]
    groups = group_by_merchant(active, use_secondary=secondary, normalizer=service.normalizer)
    return {
        "range": date_range.model_dump(),
        "currency": "AED" if secondary else "GBP",
        "merchants": [asdict(group) for group in groups],
    }


@router.get("/api/yearly/{year}")
async def yearly(
    year: int,
    service: Annotated[TrackerService, Depends(get_service)],
) -> dict[str, Any]:
    transactions = service.transactions.list()
    report = yearly_summary(transactions, service.categories.list(), year)
    return {**asdict(report), "available_years": available_years(transactions)}
