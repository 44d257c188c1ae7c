from datetime import date

from fastapi import HTTPException, Request

from pennywise.domain.dates import date_range_preset, default_date_range
from pennywise.errors import (
    DuplicateCategoryError,
    EmptyImportError,
    ImportStructureError,
    NotFoundError,
    PennywiseError,
    PersistenceError,
    ProtectedCategoryError,
)
from pennywise.manager import TrackerService
from pennywise.models import DateRange


def get_service(request: Request) -> TrackerService:
    service = getattr(request.app.state, "service", None)
    if not service:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return service


def get_date_range(
    start: str | None = None,
    end: str | None = None,
    preset: str | None = None,
) -> DateRange:
    if start and end:
        try:
            first, last = date.fromisoformat(start), date.fromisoformat(end)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="start and end must be YYYY-MM-DD") from exc
        if first > last:
            raise HTTPException(status_code=400, detail="start must not be after end")
        return DateRange(start=first.isoformat(), end=last.isoformat())
    if preset:
        try:
            return date_range_preset(preset)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
    return default_date_range()


_STATUS_BY_ERROR: tuple[tuple[type[PennywiseError], int], ...] = (
    (ImportStructureError, 400),
    (EmptyImportError, 400),
    (NotFoundError, 404),
    (ProtectedCategoryError, 409),
    (DuplicateCategoryError, 409),
    (PersistenceError, 502),
)


def http_error(exc: PennywiseError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
