from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException

from pennywise.api.dependencies import get_service
from pennywise.api.schemas import WebhookSettings
from pennywise.core.configuration import build_config_view
from pennywise.domain.filters import available_banks
from pennywise.logger import get_logger
from pennywise.manager import TrackerService
from pennywise.services.advisor import APOLOGY_MESSAGE

logger = get_logger(__name__)

router = APIRouter()


@router.get("/api/settings")
async def get_settings() -> dict[str, Any]:
    return build_config_view()


@router.get("/api/settings/webhook")
async def get_webhook(
    service: Annotated[TrackerService, Depends(get_service)],
) -> WebhookSettings:
    return WebhookSettings(url=service.preferences.webhook_url)


@router.put("/api/settings/webhook")
async def set_webhook(
    payload: WebhookSettings,
    service: Annotated[TrackerService, Depends(get_service)],
) -> WebhookSettings:
    url = (payload.url or "").strip()
    if url and not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="Webhook URL must start with http:// or https://")
    service.preferences.webhook_url = url
    logger.info("[WEBHOOK] Webhook %s.", "configured" if url else "cleared")
    return WebhookSettings(url=service.preferences.webhook_url)


@router.get("/api/banks")
async def list_banks(
    service: Annotated[TrackerService, Depends(get_service)],
) -> dict[str, Any]:
    return {
        "banks": [bank.model_dump() for bank in service.banks],
        "names": available_banks(service.transactions.list(), service.banks),
    }


@router.post("/api/advice")
async def advice(
    service: Annotated[TrackerService, Depends(get_service)],
) -> dict[str, str]:
    if service.advisor is None:
        return {"advice": APOLOGY_MESSAGE}
    transactions = sorted(service.transactions.list(), key=lambda t: t.date, reverse=True)
    return {"advice": await service.advisor.advise(transactions)}
