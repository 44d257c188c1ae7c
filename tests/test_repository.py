from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from pennywise.domain.storage import (
    COL_CATEGORY,
    COL_MONEY_IN_AED,
    COL_MONEY_IN_GBP,
    COL_MONEY_OUT_AED,
    COL_MONEY_OUT_GBP,
    COL_NOTE,
)
from pennywise.errors import NotFoundError, PartialBatchError, PersistenceError
from pennywise.integration.store import StoreError
from pennywise.models import Transaction, TransactionDraft, TransactionType, TransactionUpdate
from pennywise.services.categories import CategoryRegistry
from pennywise.services.repository import TRANSACTIONS_TABLE, TransactionRepository


def _draft(description: str = "Coffee Shop", amount: float = 4.5) -> TransactionDraft:
    return TransactionDraft(
        date="2024-01-05",
        amount=amount,
        type=TransactionType.EXPENSE,
        description=description,
    )


@pytest.fixture
def repository(store: AsyncMock) -> TransactionRepository:
    return TransactionRepository(store=store, categories=CategoryRegistry())


@pytest.mark.anyio
async def test_load_resolves_categories(repository: TransactionRepository, store: AsyncMock) -> None:
    store.select_all.return_value = [
        {"id": 1, "Transaction Date": "2024-01-01", COL_CATEGORY: "Food", COL_MONEY_OUT_GBP: 8},
    ]
    await repository.load()

    (transaction,) = repository.list()
    assert transaction.id == "1"
    assert transaction.category_id == "food"
    store.select_all.assert_awaited_once_with(TRANSACTIONS_TABLE)


@pytest.mark.anyio
async def test_add_swaps_in_server_id(repository: TransactionRepository, store: AsyncMock) -> None:
    store.insert.return_value = [{"id": 101}]
    transaction = await repository.add(_draft())

    assert transaction.id == "101"
    assert [t.id for t in repository.list()] == ["101"]
    (table, rows), _ = store.insert.await_args
    assert table == TRANSACTIONS_TABLE
    assert rows[0][COL_MONEY_OUT_GBP] == 4.5


@pytest.mark.anyio
async def test_failed_add_restores_previous_state(
    repository: TransactionRepository,
    store: AsyncMock,
    make_tx: Callable[..., Transaction],
) -> None:
    repository.transactions = [make_tx(id="1"), make_tx(id="2")]
    before = [t.model_dump() for t in repository.list()]
    store.insert.side_effect = StoreError("rejected")

    with pytest.raises(PersistenceError):
        await repository.add(_draft())

    assert [t.model_dump() for t in repository.list()] == before


@pytest.mark.anyio
async def test_update_sends_only_explicit_fields(
    repository: TransactionRepository,
    store: AsyncMock,
    make_tx: Callable[..., Transaction],
) -> None:
    repository.transactions = [make_tx(id="9", notes="old")]

    updated = await repository.update("9", TransactionUpdate(notes="new note"))

    assert updated.notes == "new note"
    assert updated.description == "Coffee Shop"
    store.update.assert_awaited_once_with(TRANSACTIONS_TABLE, "9", {COL_NOTE: "new note"})


@pytest.mark.anyio
async def test_category_id_alone_stores_the_category_name(
    repository: TransactionRepository,
    store: AsyncMock,
    make_tx: Callable[..., Transaction],
) -> None:
    repository.transactions = [make_tx(id="9", category_id="", category_name="")]

    updated = await repository.update("9", TransactionUpdate(category_id="groceries"))

    assert updated.category_name == "Groceries"
    store.update.assert_awaited_once_with(TRANSACTIONS_TABLE, "9", {COL_CATEGORY: "Groceries"})


@pytest.mark.anyio
async def test_excluded_flag_is_stored_as_the_excluded_category(
    repository: TransactionRepository,
    store: AsyncMock,
    make_tx: Callable[..., Transaction],
) -> None:
    repository.transactions = [make_tx(id="9")]

    excluded = await repository.update("9", TransactionUpdate(excluded=True))
    assert (excluded.category_id, excluded.category_name) == ("excluded", "Excluded")
    store.update.assert_awaited_with(TRANSACTIONS_TABLE, "9", {COL_CATEGORY: "Excluded"})

    included = await repository.update("9", TransactionUpdate(excluded=False))
    assert (included.category_id, included.excluded) == ("", False)
    store.update.assert_awaited_with(TRANSACTIONS_TABLE, "9", {COL_CATEGORY: ""})


@pytest.mark.anyio
async def test_type_change_rewrites_money_columns(
    repository: TransactionRepository,
    store: AsyncMock,
    make_tx: Callable[..., Transaction],
) -> None:
    repository.transactions = [
        make_tx(id="9", amount=20, amount_original=92, original_currency="AED")
    ]

    updated = await repository.update("9", TransactionUpdate(type=TransactionType.INCOME))

    assert updated.type == TransactionType.INCOME
    store.update.assert_awaited_once_with(
        TRANSACTIONS_TABLE,
        "9",
        {
            COL_MONEY_IN_GBP: 20,
            COL_MONEY_OUT_GBP: None,
            COL_MONEY_IN_AED: 92,
            COL_MONEY_OUT_AED: None,
        },
    )


@pytest.mark.anyio
async def test_failed_update_rolls_back(
    repository: TransactionRepository,
    store: AsyncMock,
    make_tx: Callable[..., Transaction],
) -> None:
    original = make_tx(id="9", description="Before")
    repository.transactions = [original]
    store.update.side_effect = StoreError("rejected")

    with pytest.raises(PersistenceError):
        await repository.update("9", TransactionUpdate(description="After"))

    assert repository.get("9") == original


@pytest.mark.anyio
async def test_delete_and_rollback(
    repository: TransactionRepository,
    store: AsyncMock,
    make_tx: Callable[..., Transaction],
) -> None:
    repository.transactions = [make_tx(id="1"), make_tx(id="2"), make_tx(id="3")]

    store.delete.side_effect = StoreError("rejected")
    with pytest.raises(PersistenceError):
        await repository.delete("2")
    assert [t.id for t in repository.list()] == ["1", "2", "3"]

    store.delete.side_effect = None
    await repository.delete("2")
    assert [t.id for t in repository.list()] == ["1", "3"]

    with pytest.raises(NotFoundError):
        await repository.delete("2")


@pytest.mark.anyio
async def test_bulk_add_commits_whole_batch(
    repository: TransactionRepository, store: AsyncMock
) -> None:
    store.insert.return_value = [{"id": 1}, {"id": 2}]
    committed = await repository.bulk_add([_draft("A"), _draft("B")])

    assert [t.id for t in committed] == ["1", "2"]
    assert [t.description for t in repository.list()] == ["A", "B"]
    store.insert.assert_awaited_once()


@pytest.mark.anyio
async def test_bulk_add_partial_success_is_failure(
    repository: TransactionRepository,
    store: AsyncMock,
    make_tx: Callable[..., Transaction],
) -> None:
    existing = make_tx(id="1")
    repository.transactions = [existing]
    store.insert.return_value = [{"id": 2}]

    with pytest.raises(PartialBatchError) as excinfo:
        await repository.bulk_add([_draft("A"), _draft("B")])

    assert excinfo.value.sent == 2
    assert excinfo.value.stored == 1
    assert repository.list() == [existing]


@pytest.mark.anyio
async def test_bulk_add_store_error(repository: TransactionRepository, store: AsyncMock) -> None:
    store.insert.side_effect = StoreError("down")
    with pytest.raises(PersistenceError):
        await repository.bulk_add([_draft()])
    assert repository.list() == []


@pytest.mark.anyio
async def test_toggle_exclusion(
    repository: TransactionRepository,
    store: AsyncMock,
    make_tx: Callable[..., Transaction],
) -> None:
    repository.transactions = [make_tx(id="5")]

    excluded = await repository.toggle_exclusion("5")
    assert excluded.category_id == "excluded"
    assert excluded.category_name == "Excluded"
    assert excluded.excluded is True
    store.update.assert_awaited_with(TRANSACTIONS_TABLE, "5", {COL_CATEGORY: "Excluded"})

    included = await repository.toggle_exclusion("5")
    assert included.category_id == ""
    assert included.excluded is False
    store.update.assert_awaited_with(TRANSACTIONS_TABLE, "5", {COL_CATEGORY: ""})


@pytest.mark.anyio
async def test_memory_only_without_store() -> None:
    repository = TransactionRepository()
    transaction = await repository.add(_draft())
    assert repository.get(transaction.id) == transaction
