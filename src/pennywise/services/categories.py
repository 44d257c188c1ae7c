from __future__ import annotations

import re
from collections.abc import Awaitable, Callable

from pennywise.constants import INITIAL_CATEGORIES
from pennywise.domain.aggregation import is_category_missing
from pennywise.domain.storage import category_from_row, category_to_row
from pennywise.errors import (
    DuplicateCategoryError,
    NotFoundError,
    PersistenceError,
    ProtectedCategoryError,
)
from pennywise.integration.store import StoreClient, StoreError
from pennywise.logger import get_logger
from pennywise.models import EXCLUDED_CATEGORY_ID, Category, Transaction

logger = get_logger(__name__)

CATEGORIES_TABLE = "Categories"


def category_id_for(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", name.strip().lower())


class CategoryRegistry:
    """Ordered category list mirrored to the store.

    Local state changes first; a failed store write puts the previous state back
    and raises PersistenceError.
    """

    def __init__(self, store: StoreClient | None = None):
        self.store = store
        self.categories: list[Category] = [c.model_copy(deep=True) for c in INITIAL_CATEGORIES]

    @property
    def persistent(self) -> bool:
        return self.store is not None and bool(self.store.configured)

    async def load(self) -> None:
        rows: list[dict] = []
        if self.persistent:
            try:
                rows = await self.store.select_all(CATEGORIES_TABLE)
            except StoreError as exc:
                logger.error("[CATEGORIES] Could not load categories: %s", exc)
        if rows:
            self.categories = [category_from_row(row) for row in rows]
            logger.info("[CATEGORIES] Loaded %s categories from the store.", len(self.categories))
        else:
            self.categories = [c.model_copy(deep=True) for c in INITIAL_CATEGORIES]
            logger.info("[CATEGORIES] Using the %s default categories.", len(self.categories))

    def list(self) -> list[Category]:
        return list(self.categories)

    def get(self, category_id: str) -> Category | None:
        return next((c for c in self.categories if c.id == category_id), None)

    def resolve_name(self, name: str) -> Category | None:
        wanted = name.strip().lower()
        return next((c for c in self.categories if c.name.lower() == wanted), None)

    def is_category_missing(self, transaction: Transaction) -> bool:
        return is_category_missing(transaction, self.categories)

    def _index(self, category_id: str) -> int:
        for index, category in enumerate(self.categories):
            if category.id == category_id:
                return index
        raise NotFoundError(f"Category '{category_id}' does not exist.")

    async def _write(
        self, action: str, operation: Callable[[StoreClient], Awaitable[object]]
    ) -> None:
        if not self.persistent:
            return
        try:
            await operation(self.store)
        except StoreError as exc:
            raise PersistenceError(f"Could not {action}: {exc}") from exc

    async def add(self, category: Category) -> Category:
        if self.get(category.id) is not None:
            raise DuplicateCategoryError(f"Category '{category.id}' already exists.")
        self.categories.append(category)
        try:
            await self._write(
                f"add category '{category.name}'",
                lambda store: store.insert(CATEGORIES_TABLE, category_to_row(category)),
            )
        except PersistenceError:
            self.categories = [c for c in self.categories if c is not category]
            raise
        logger.info("[CATEGORIES] Added '%s' (%s).", category.name, category.id)
        return category

    async def update(
        self, category_id: str, *, name: str | None = None, color: str | None = None
    ) -> Category:
        if category_id == EXCLUDED_CATEGORY_ID:
            raise ProtectedCategoryError("The Excluded category cannot be edited.")
        index = self._index(category_id)
        previous = self.categories[index]
        changes = {
            key: value for key, value in (("name", name), ("color", color)) if value is not None
        }
        if not changes:
            return previous

        updated = previous.model_copy(update=changes)
        self.categories[index] = updated
        try:
            await self._write(
                f"update category '{category_id}'",
                lambda store: store.update(CATEGORIES_TABLE, category_id, changes),
            )
        except PersistenceError:
            self.categories[index] = previous
            raise
        return updated

    async def delete(self, category_id: str) -> None:
        """Remove the category. Transactions that used it are left as they are."""
        if category_id == EXCLUDED_CATEGORY_ID:
            raise ProtectedCategoryError("The Excluded category cannot be deleted.")
        index = self._index(category_id)
        removed = self.categories.pop(index)
        try:
            await self._write(
                f"delete category '{category_id}'",
                lambda store: store.delete(CATEGORIES_TABLE, category_id),
            )
        except PersistenceError:
            self.categories.insert(index, removed)
            raise
        logger.info("[CATEGORIES] Deleted '%s'.", removed.name)

    async def _set_subcategories(self, index: int, subcategories: list[str]) -> Category:
        previous = self.categories[index]
        updated = previous.model_copy(update={"subcategories": subcategories})
        self.categories[index] = updated
        try:
            await self._write(
                f"update subcategories of '{previous.id}'",
                lambda store: store.update(
                    CATEGORIES_TABLE, previous.id, {"subcategories": subcategories}
                ),
            )
        except PersistenceError:
            self.categories[index] = previous
            raise
        return updated

    async def add_subcategory(self, category_id: str, subcategory: str) -> Category:
        index = self._index(category_id)
        category = self.categories[index]
        subcategory = subcategory.strip()
        if not subcategory or subcategory in category.subcategories:
            return category
        return await self._set_subcategories(index, [*category.subcategories, subcategory])

    async def delete_subcategory(self, category_id: str, subcategory: str) -> Category:
        index = self._index(category_id)
        category = self.categories[index]
        if subcategory not in category.subcategories:
            return category
        return await self._set_subcategories(
            index, [s for s in category.subcategories if s != subcategory]
        )
