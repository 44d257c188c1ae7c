from dataclasses import dataclass

from pennywise.classifiers.merchant import MerchantMappingStore
from pennywise.core.preferences import PreferenceStore
from pennywise.domain.currency import CurrencyNormalizer
from pennywise.integration.webhook import WebhookResult, WebhookSink
from pennywise.logger import get_logger
from pennywise.models import Bank, Transaction
from pennywise.services.categories import CategoryRegistry
from pennywise.services.importer import CsvImportParser, ImportResult
from pennywise.services.repository import TransactionRepository

logger = get_logger(__name__)


@dataclass
class ImportOutcome:
    transactions: list[Transaction]
    result: ImportResult
    webhook: WebhookResult | None = None

    @property
    def message(self) -> str:
        auto = self.result.auto_categorized_count
        auto_msg = f" ({auto} auto-categorized)" if auto > 0 else ""
        webhook_msg = ""
        if self.webhook is not None:
            webhook_msg = " & sent to webhook" if self.webhook.delivered else " but webhook failed"
        return f"Successfully imported {len(self.transactions)} transactions{auto_msg}{webhook_msg}."


class ImportPipeline:
    """CSV text -> drafts -> one batched store insert -> optional webhook."""

    def __init__(
        self,
        repository: TransactionRepository,
        mappings: MerchantMappingStore,
        categories: CategoryRegistry,
        webhook: WebhookSink,
        preferences: PreferenceStore,
        normalizer: CurrencyNormalizer | None = None,
    ) -> None:
        self.repository = repository
        self.mappings = mappings
        self.categories = categories
        self.webhook = webhook
        self.preferences = preferences
        self.normalizer = normalizer or CurrencyNormalizer()

    def parser(self) -> CsvImportParser:
        return CsvImportParser(
            mappings=self.mappings,
            categories=self.categories.list(),
            normalizer=self.normalizer,
        )

    async def run(self, text: str, file_name: str, bank: Bank) -> ImportOutcome:
        # Structural and empty-file errors propagate before anything is written
        result = self.parser().parse(text, bank)
        committed = await self.repository.bulk_add(result.drafts)

        webhook_result = None
        url = self.preferences.webhook_url
        if url:
            webhook_result = await self.webhook.send(url, bank.name, file_name, result.drafts)

        outcome = ImportOutcome(transactions=committed, result=result, webhook=webhook_result)
        logger.info("[IMPORT] %s", outcome.message)
        return outcome
