from typing import Annotated, Any

from fastapi import APIRouter, Depends

from pennywise.api.dependencies import get_service, http_error
from pennywise.api.schemas import BackfillRequest, ConfirmMappingRequest
from pennywise.errors import PennywiseError
from pennywise.manager import TrackerService
from pennywise.models import MerchantMapping

router = APIRouter()


def _with_readiness(service: TrackerService, mapping: MerchantMapping) -> dict[str, Any]:
    return {**mapping.model_dump(), "ready": service.mappings.is_ready(mapping)}


@router.get("/api/mappings")
async def list_mappings(
    service: Annotated[TrackerService, Depends(get_service)],
) -> dict[str, Any]:
    return {
        "threshold": service.mappings.threshold,
        "mappings": [_with_readiness(service, m) for m in service.mappings.entries()],
    }


@router.post("/api/mappings/confirm")
async def confirm_mapping(
    payload: ConfirmMappingRequest,
    service: Annotated[TrackerService, Depends(get_service)],
) -> dict[str, Any]:
    try:
        mapping = await service.mappings.confirm_categorization(
            payload.description,
            payload.category_id,
            payload.category_name,
            payload.subcategory_name,
        )
    except PennywiseError as exc:
        raise http_error(exc) from exc
    return _with_readiness(service, mapping)


@router.delete("/api/mappings/{pattern}")
async def delete_mapping(
    pattern: str,
    service: Annotated[TrackerService, Depends(get_service)],
) -> dict[str, str]:
    try:
        await service.mappings.delete(pattern)
    except PennywiseError as exc:
        raise http_error(exc) from exc
    return {"status": "deleted", "pattern": pattern}


@router.get("/api/mappings/backfill")
async def preview_backfill(
    service: Annotated[TrackerService, Depends(get_service)],
) -> dict[str, Any]:
    items = service.mappings.preview_backfill(service.transactions.list())
    return {
        "count": len(items),
        "ready": sum(1 for item in items if service.mappings.is_ready(item)),
        "items": [_with_readiness(service, item) for item in items],
    }


@router.post("/api/mappings/backfill")
async def execute_backfill(
    service: Annotated[TrackerService, Depends(get_service)],
    payload: BackfillRequest | None = None,
) -> dict[str, Any]:
    items = payload.items if payload and payload.items is not None else None
    if items is None:
        items = service.mappings.preview_backfill(service.transactions.list())
    try:
        written = await service.mappings.execute_backfill(items)
    except PennywiseError as exc:
        raise http_error(exc) from exc
    return {"status": "ok", "written": written}
