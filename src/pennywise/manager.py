import os

from pennywise.classifiers.merchant import MerchantMappingStore
from pennywise.constants import INITIAL_BANKS
from pennywise.core.preferences import PreferenceStore
from pennywise.core.settings import get_env_float
from pennywise.domain.aggregation import is_excluded
from pennywise.domain.currency import AED_TO_GBP_RATE, CurrencyNormalizer
from pennywise.errors import PersistenceError
from pennywise.integration.store import StoreClient
from pennywise.integration.webhook import WebhookSink
from pennywise.logger import get_logger
from pennywise.models import Bank, Transaction, TransactionUpdate
from pennywise.services.advisor import FinancialAdvisor
from pennywise.services.categories import CategoryRegistry
from pennywise.services.imports import ImportPipeline
from pennywise.services.repository import TransactionRepository

logger = get_logger(__name__)


class TrackerService:
    """Owns the stateful collaborators and the one cross-cutting workflow:
    saving a manual categorization also teaches the merchant mappings."""

    def __init__(
        self,
        data_dir: str = ".",
        store: StoreClient | None = None,
        webhook: WebhookSink | None = None,
        advisor: FinancialAdvisor | None = None,
    ):
        self.store = store or StoreClient()
        self.normalizer = CurrencyNormalizer(
            get_env_float("AED_TO_GBP_RATE", AED_TO_GBP_RATE, min_value=0.0)
        )
        self.banks: list[Bank] = list(INITIAL_BANKS)

        self.categories = CategoryRegistry(self.store)
        self.mappings = MerchantMappingStore(self.store)
        self.transactions = TransactionRepository(self.store, self.categories)
        self.preferences = PreferenceStore(os.path.join(data_dir, "preferences.json"))
        self.webhook = webhook or WebhookSink()

        if advisor is None and os.getenv("OPENAI_API_KEY"):
            advisor = FinancialAdvisor()
            logger.info("[ADVISOR] Financial advisor enabled: model=%s", advisor.model)
        elif advisor is None:
            logger.warning("OPENAI_API_KEY not found. Financial advisor disabled.")
        self.advisor = advisor

        self.imports = ImportPipeline(
            repository=self.transactions,
            mappings=self.mappings,
            categories=self.categories,
            webhook=self.webhook,
            preferences=self.preferences,
            normalizer=self.normalizer,
        )

    async def load(self) -> None:
        # Categories first: transaction rows resolve their category id by name.
        await self.categories.load()
        await self.mappings.load()
        await self.transactions.load()

    async def aclose(self) -> None:
        await self.store.aclose()
        await self.webhook.aclose()

    async def save_transaction(self, transaction_id: str, update: TransactionUpdate) -> Transaction:
        """Apply a manual edit. Setting a category counts as one mapping confirmation."""
        saved = await self.transactions.update(transaction_id, update)
        if "category_id" not in update.model_fields_set or not update.category_id:
            return saved
        if is_excluded(saved) or not saved.description.strip():
            return saved
        try:
            await self.mappings.confirm_categorization(
                saved.description,
                saved.category_id,
                saved.category_name,
                saved.subcategory_name,
            )
        except PersistenceError as exc:
            # The edit itself is committed; only the learning step is lost.
            logger.warning("[MAPPINGS] Could not record confirmation: %s", exc)
        return saved
