from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from pennywise.core.settings import DEFAULT_WEBHOOK_TIMEOUT, get_env_float
from pennywise.logger import get_logger
from pennywise.models import TransactionDraft

logger = get_logger(__name__)


@dataclass(frozen=True)
class WebhookResult:
    delivered: bool
    error: str | None = None


def build_payload(
    source: str,
    file_name: str,
    drafts: list[TransactionDraft],
    uploaded_at: datetime | None = None,
) -> dict[str, Any]:
    uploaded_at = uploaded_at or datetime.now(timezone.utc)
    return {
        "source": source,
        "fileName": file_name,
        "count": len(drafts),
        "uploadedAt": uploaded_at.isoformat(),
        "transactions": [draft.model_dump(mode="json") for draft in drafts],
    }


class WebhookSink:
    """Fire-and-forget delivery of imported batches. Never raises."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float | None = None):
        self._client = client
        self.timeout = (
            timeout
            if timeout is not None
            else get_env_float("WEBHOOK_TIMEOUT", DEFAULT_WEBHOOK_TIMEOUT, min_value=0.0)
        )

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient()
        return self._client

    async def send(
        self, url: str, source: str, file_name: str, drafts: list[TransactionDraft]
    ) -> WebhookResult:
        """POST the batch to `url`; `source` names the bank the file came from."""
        payload = build_payload(source, file_name, drafts)
        try:
            response = await self._get_client().post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "[WEBHOOK] %s rejected %s transactions with status %s.",
                url,
                len(drafts),
                exc.response.status_code,
            )
            return WebhookResult(delivered=False, error=f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.warning("[WEBHOOK] Delivery to %s failed: %s", url, exc)
            return WebhookResult(delivered=False, error=str(exc) or exc.__class__.__name__)

        logger.info("[WEBHOOK] Sent %s transactions from %s.", len(drafts), file_name)
        return WebhookResult(delivered=True)
