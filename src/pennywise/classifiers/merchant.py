from collections.abc import Iterable

from pennywise.core.settings import DEFAULT_MAPPING_THRESHOLD, get_env_int
from pennywise.domain.aggregation import is_excluded
from pennywise.domain.storage import mapping_from_row, mapping_to_row
from pennywise.errors import NotFoundError, PersistenceError
from pennywise.integration.store import StoreClient, StoreError
from pennywise.logger import get_logger
from pennywise.models import MerchantMapping, Transaction

from .base import Classifier

logger = get_logger(__name__)

MAPPINGS_TABLE = "merchant_mappings"


def _key(description: str) -> str:
    return description.lower()


class MerchantMappingStore(Classifier):
    """Learned description -> category pairs.

    A mapping is only used for auto-categorization once it has been confirmed
    `threshold` times. The in-memory view only ever reflects committed writes.
    """

    def __init__(self, store: StoreClient | None = None, threshold: int | None = None):
        self.store = store
        self.threshold = (
            threshold
            if threshold is not None
            else get_env_int("MAPPING_THRESHOLD", DEFAULT_MAPPING_THRESHOLD, min_value=1)
        )
        self.mappings: dict[str, MerchantMapping] = {}

    @property
    def persistent(self) -> bool:
        return self.store is not None and bool(self.store.configured)

    async def load(self) -> None:
        if not self.persistent:
            logger.info("[MAPPINGS] No store configured; starting with no mappings.")
            return
        try:
            rows = await self.store.select_all(MAPPINGS_TABLE)
        except StoreError as exc:
            logger.error("[MAPPINGS] Could not load mappings: %s", exc)
            return
        self.mappings = {}
        for row in rows:
            mapping = mapping_from_row(row)
            if mapping.merchant_pattern:
                self.mappings[_key(mapping.merchant_pattern)] = mapping
        logger.info("[MAPPINGS] Loaded %s merchant mappings.", len(self.mappings))

    def entries(self) -> list[MerchantMapping]:
        return sorted(self.mappings.values(), key=lambda m: (-m.count, m.merchant_pattern))

    def lookup(self, description: str) -> MerchantMapping | None:
        if not description:
            return None
        return self.mappings.get(_key(description))

    def is_ready(self, mapping: MerchantMapping) -> bool:
        return mapping.count >= self.threshold

    def classify(self, description: str) -> MerchantMapping | None:
        mapping = self.lookup(description)
        if mapping is not None and self.is_ready(mapping):
            return mapping
        return None

    async def _persist(self, mapping: MerchantMapping, *, exists: bool) -> None:
        if not self.persistent:
            return
        try:
            if exists:
                await self.store.update(
                    MAPPINGS_TABLE,
                    mapping.merchant_pattern,
                    mapping_to_row(mapping),
                    column="merchant_pattern",
                )
            else:
                await self.store.insert(MAPPINGS_TABLE, mapping_to_row(mapping))
        except StoreError as exc:
            raise PersistenceError(
                f"Could not save mapping for '{mapping.merchant_pattern}': {exc}"
            ) from exc

    async def record_confirmation(
        self,
        description: str,
        category_id: str,
        category_name: str,
        subcategory_name: str = "",
    ) -> MerchantMapping:
        """Count one more confirmation; the latest categorization wins."""
        existing = self.lookup(description)
        if existing is not None:
            updated = existing.model_copy(
                update={
                    "category_id": category_id,
                    "category_name": category_name,
                    "subcategory_name": subcategory_name,
                    "count": existing.count + 1,
                }
            )
        else:
            updated = MerchantMapping(
                merchant_pattern=description,
                category_id=category_id,
                category_name=category_name,
                subcategory_name=subcategory_name,
                count=1,
            )

        await self._persist(updated, exists=existing is not None)
        self.mappings[_key(description)] = updated
        logger.debug(
            "[MAPPINGS] '%s' -> %s (%s confirmations)",
            description[:50],
            category_name,
            updated.count,
        )
        return updated

    confirm_categorization = record_confirmation

    async def learn(
        self,
        description: str,
        category_id: str,
        category_name: str,
        subcategory_name: str = "",
    ) -> MerchantMapping:
        return await self.record_confirmation(
            description, category_id, category_name, subcategory_name
        )

    async def delete(self, pattern: str) -> None:
        existing = self.lookup(pattern)
        if existing is None:
            raise NotFoundError(f"No mapping for '{pattern}'.")
        if self.persistent:
            try:
                await self.store.delete(
                    MAPPINGS_TABLE, existing.merchant_pattern, column="merchant_pattern"
                )
            except StoreError as exc:
                raise PersistenceError(f"Could not delete mapping '{pattern}': {exc}") from exc
        self.mappings.pop(_key(pattern), None)
        logger.info("[MAPPINGS] Deleted mapping '%s'.", existing.merchant_pattern)

    def preview_backfill(self, transactions: Iterable[Transaction]) -> list[MerchantMapping]:
        """Mappings implied by already-categorized history. Mutates nothing."""
        groups: dict[str, list[Transaction]] = {}
        for t in transactions:
            if not t.category_id or is_excluded(t) or not t.description.strip():
                continue
            groups.setdefault(t.description, []).append(t)

        items = []
        for description, members in groups.items():
            latest = max(members, key=lambda t: t.date)
            items.append(
                MerchantMapping(
                    merchant_pattern=description,
                    category_id=latest.category_id,
                    category_name=latest.category_name,
                    subcategory_name=latest.subcategory_name,
                    count=len(members),
                )
            )
        items.sort(key=lambda m: (-m.count, m.merchant_pattern))
        return items

    async def execute_backfill(self, items: Iterable[MerchantMapping]) -> int:
        """Upsert by pattern; the scanned count replaces any stored count."""
        items = list(items)
        if not items:
            return 0
        if self.persistent:
            try:
                await self.store.upsert(
                    MAPPINGS_TABLE,
                    [mapping_to_row(item) for item in items],
                    on_conflict="merchant_pattern",
                )
            except StoreError as exc:
                raise PersistenceError(f"Backfill of {len(items)} mappings failed: {exc}") from exc

        for item in items:
            self.mappings[_key(item.merchant_pattern)] = item
        ready = sum(1 for item in items if self.is_ready(item))
        logger.info("[MAPPINGS] Backfilled %s mappings (%s ready).", len(items), ready)
        return len(items)
