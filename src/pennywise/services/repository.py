"""In-memory transaction log kept in step with the store.

Every mutation is applied locally first and then sent to the store exactly once.
When the store refuses, the local change is undone and PersistenceError is
raised, so callers never see a record the store does not have (or lose one it
still has).
"""
from __future__ import annotations

import uuid
from typing import Any

from pennywise.domain.aggregation import is_excluded
from pennywise.domain.storage import from_storage_row, to_storage_row, to_storage_update
from pennywise.errors import NotFoundError, PartialBatchError, PersistenceError
from pennywise.integration.store import StoreClient, StoreError
from pennywise.logger import get_logger
from pennywise.models import (
    EXCLUDED_CATEGORY_ID,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
)
from pennywise.services.categories import CategoryRegistry

logger = get_logger(__name__)

TRANSACTIONS_TABLE = "Transactions"
EXCLUDED_CATEGORY_NAME = "Excluded"


def _temporary_id() -> str:
    return str(uuid.uuid4())


def _server_id(row: dict[str, Any]) -> str | None:
    value = row.get("id")
    return None if value is None else str(value)


class TransactionRepository:
    def __init__(
        self,
        store: StoreClient | None = None,
        categories: CategoryRegistry | None = None,
    ):
        self.store = store
        self.categories = categories
        self.transactions: list[Transaction] = []

    @property
    def persistent(self) -> bool:
        return self.store is not None and bool(self.store.configured)

    async def load(self) -> None:
        if not self.persistent:
            logger.info("[REPO] No store configured; starting with an empty log.")
            return
        try:
            rows = await self.store.select_all(TRANSACTIONS_TABLE)
        except StoreError as exc:
            logger.error("[REPO] Could not load transactions: %s", exc)
            return
        known = self.categories.list() if self.categories else []
        self.transactions = [from_storage_row(row, known) for row in rows]
        logger.info("[REPO] Loaded %s transactions.", len(self.transactions))

    def list(self) -> list[Transaction]:
        return list(self.transactions)

    def _index(self, transaction_id: str) -> int:
        for index, transaction in enumerate(self.transactions):
            if transaction.id == transaction_id:
                return index
        raise NotFoundError(f"Transaction '{transaction_id}' does not exist.")

    def get(self, transaction_id: str) -> Transaction:
        return self.transactions[self._index(transaction_id)]

    def _swap_id(self, temporary_id: str, server_id: str | None) -> Transaction | None:
        for index, transaction in enumerate(self.transactions):
            if transaction.id == temporary_id:
                if server_id is not None:
                    transaction = transaction.model_copy(update={"id": server_id})
                    self.transactions[index] = transaction
                return transaction
        return None

    async def add(self, draft: TransactionDraft) -> Transaction:
        temporary = Transaction(id=_temporary_id(), **draft.model_dump())
        self.transactions.insert(0, temporary)
        if not self.persistent:
            return temporary

        try:
            rows = await self.store.insert(TRANSACTIONS_TABLE, [to_storage_row(draft)])
        except StoreError as exc:
            self.transactions = [t for t in self.transactions if t.id != temporary.id]
            raise PersistenceError(f"Could not save transaction: {exc}") from exc

        server_id = _server_id(rows[0]) if rows else None
        if server_id is None:
            logger.warning("[REPO] Store returned no id for '%s'.", draft.description[:50])
        # The record may have been edited while the insert was in flight.
        return self._swap_id(temporary.id, server_id) or temporary

    async def update(self, transaction_id: str, update: TransactionUpdate) -> Transaction:
        """Merge `update` locally; only the fields it explicitly sets are sent."""
        index = self._index(transaction_id)
        previous = self.transactions[index]
        changes = {
            key: value
            for key, value in update.model_dump(include=update.model_fields_set).items()
            if value is not None or key == "notes"
        }
        changes = self._with_category(previous, changes)
        merged = previous.model_copy(update=changes)
        self.transactions[index] = merged

        columns = to_storage_update(merged, changes)
        if not columns or not self.persistent:
            return merged

        try:
            await self.store.update(TRANSACTIONS_TABLE, transaction_id, columns)
        except StoreError as exc:
            self._restore(previous)
            raise PersistenceError(f"Could not update transaction {transaction_id}: {exc}") from exc
        return merged

    def _category_name(self, category_id: str) -> str:
        if category_id == EXCLUDED_CATEGORY_ID:
            return EXCLUDED_CATEGORY_NAME
        if not category_id:
            return ""
        category = self.categories.get(category_id) if self.categories else None
        if category is None:
            logger.warning("[REPO] Unknown category id '%s'; storing no name.", category_id)
            return ""
        return category.name

    def _with_category(self, previous: Transaction, changes: dict[str, Any]) -> dict[str, Any]:
        """Keep category id, cached name and the excluded flag in agreement."""
        changes = dict(changes)
        if "excluded" in changes and "category_id" not in changes:
            if changes["excluded"]:
                changes["category_id"] = EXCLUDED_CATEGORY_ID
            elif is_excluded(previous):
                changes["category_id"] = ""
        if "category_id" in changes:
            if "category_name" not in changes or changes["category_id"] == EXCLUDED_CATEGORY_ID:
                changes["category_name"] = self._category_name(changes["category_id"])
            changes["excluded"] = changes["category_id"] == EXCLUDED_CATEGORY_ID
        return changes

    def _restore(self, previous: Transaction) -> None:
        for index, transaction in enumerate(self.transactions):
            if transaction.id == previous.id:
                self.transactions[index] = previous
                return

    async def delete(self, transaction_id: str) -> None:
        index = self._index(transaction_id)
        removed = self.transactions.pop(index)
        if not self.persistent:
            return
        try:
            await self.store.delete(TRANSACTIONS_TABLE, transaction_id)
        except StoreError as exc:
            self.transactions.insert(min(index, len(self.transactions)), removed)
            raise PersistenceError(f"Could not delete transaction {transaction_id}: {exc}") from exc

    async def bulk_add(self, drafts: list[TransactionDraft]) -> list[Transaction]:
        """Insert all drafts in one batch; the batch lands whole or not at all locally."""
        if not drafts:
            return []
        temporaries = [Transaction(id=_temporary_id(), **draft.model_dump()) for draft in drafts]
        temporary_ids = {t.id for t in temporaries}
        self.transactions = temporaries + self.transactions
        if not self.persistent:
            return temporaries

        def discard() -> None:
            self.transactions = [t for t in self.transactions if t.id not in temporary_ids]

        try:
            rows = await self.store.insert(
                TRANSACTIONS_TABLE, [to_storage_row(draft) for draft in drafts]
            )
        except StoreError as exc:
            discard()
            raise PersistenceError(f"Could not import {len(drafts)} transactions: {exc}") from exc

        if len(rows) < len(drafts):
            discard()
            logger.error(
                "[REPO] Store kept %s of %s imported rows; discarding the batch locally.",
                len(rows),
                len(drafts),
            )
            raise PartialBatchError(
                f"Only {len(rows)} of {len(drafts)} transactions were saved.",
                sent=len(drafts),
                stored=len(rows),
            )

        committed = []
        for temporary, row in zip(temporaries, rows):
            swapped = self._swap_id(temporary.id, _server_id(row))
            committed.append(swapped or temporary)
        logger.info("[REPO] Imported %s transactions.", len(committed))
        return committed

    async def toggle_exclusion(self, transaction_id: str) -> Transaction:
        transaction = self.get(transaction_id)
        if is_excluded(transaction):
            update = TransactionUpdate(category_id="", category_name="", excluded=False)
        else:
            update = TransactionUpdate(
                category_id=EXCLUDED_CATEGORY_ID,
                category_name=EXCLUDED_CATEGORY_NAME,
                excluded=True,
            )
        return await self.update(transaction_id, update)
