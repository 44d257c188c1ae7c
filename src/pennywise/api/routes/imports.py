from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from pennywise.api.dependencies import get_service, http_error
from pennywise.api.schemas import ImportResponse
from pennywise.constants import find_bank
from pennywise.errors import PennywiseError
from pennywise.logger import get_logger
from pennywise.manager import TrackerService

logger = get_logger(__name__)

router = APIRouter()


@router.post("/api/import")
async def import_csv(
    service: Annotated[TrackerService, Depends(get_service)],
    file: Annotated[UploadFile, File()],
    bank_id: Annotated[str | None, Form()] = None,
) -> ImportResponse:
    file_name = file.filename or "upload.csv"
    if not file_name.lower().endswith(".csv") and file.content_type != "text/csv":
        raise HTTPException(status_code=400, detail="Please upload a valid CSV file.")

    raw = await file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded.") from exc

    bank = find_bank(bank_id, service.banks)
    logger.info("[IMPORT] Received %s (%s bytes) for %s.", file_name, len(raw), bank.name)
    try:
        outcome = await service.imports.run(text, file_name, bank)
    except PennywiseError as exc:
        logger.warning("[IMPORT] %s rejected: %s", file_name, exc)
        raise http_error(exc) from exc

    webhook = outcome.webhook
    return ImportResponse(
        message=outcome.message,
        imported=len(outcome.transactions),
        auto_categorized=outcome.result.auto_categorized_count,
        skipped=outcome.result.skipped_count,
        webhook_delivered=webhook.delivered if webhook else None,
        webhook_error=webhook.error if webhook else None,
        transactions=outcome.transactions,
    )
