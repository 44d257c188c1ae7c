from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from pennywise.api.dependencies import get_service, http_error
from pennywise.api.schemas import CategoryCreate, CategoryPatch, SubcategoryRequest
from pennywise.errors import PennywiseError
from pennywise.manager import TrackerService
from pennywise.models import PLACEHOLDER_COLOR, Category
from pennywise.services.categories import category_id_for

router = APIRouter()


@router.get("/api/categories")
async def list_categories(
    service: Annotated[TrackerService, Depends(get_service)],
) -> list[Category]:
    return service.categories.list()


@router.post("/api/categories", status_code=201)
async def create_category(
    payload: CategoryCreate,
    service: Annotated[TrackerService, Depends(get_service)],
) -> Category:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Category name is required")
    category = Category(
        id=category_id_for(name),
        name=name,
        type=payload.type,
        color=payload.color or PLACEHOLDER_COLOR,
        subcategories=list(dict.fromkeys(s.strip() for s in payload.subcategories if s.strip())),
    )
    try:
        return await service.categories.add(category)
    except PennywiseError as exc:
        raise http_error(exc) from exc


@router.patch("/api/categories/{category_id}")
async def update_category(
    category_id: str,
    payload: CategoryPatch,
    service: Annotated[TrackerService, Depends(get_service)],
) -> Category:
    try:
        return await service.categories.update(
            category_id, name=payload.name, color=payload.color
        )
    except PennywiseError as exc:
        raise http_error(exc) from exc


@router.delete("/api/categories/{category_id}")
async def delete_category(
    category_id: str,
    service: Annotated[TrackerService, Depends(get_service)],
) -> dict[str, str]:
    try:
        await service.categories.delete(category_id)
    except PennywiseError as exc:
        raise http_error(exc) from exc
    return {"status": "deleted", "id": category_id}


@router.post("/api/categories/{category_id}/subcategories")
async def add_subcategory(
    category_id: str,
    payload: SubcategoryRequest,
    service: Annotated[TrackerService, Depends(get_service)],
) -> Category:
    try:
        return await service.categories.add_subcategory(category_id, payload.name)
    except PennywiseError as exc:
        raise http_error(exc) from exc


@router.delete("/api/categories/{category_id}/subcategories/{name}")
async def delete_subcategory(
    category_id: str,
    name: str,
    service: Annotated[TrackerService, Depends(get_service)],
) -> Category:
    try:
        return await service.categories.delete_subcategory(category_id, name)
    except PennywiseError as exc:
        raise http_error(exc) from exc
