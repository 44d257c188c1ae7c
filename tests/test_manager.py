from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from pennywise.constants import INITIAL_BANKS
from pennywise.domain.storage import COL_CATEGORY
from pennywise.errors import EmptyImportError, PartialBatchError
from pennywise.integration.store import StoreError
from pennywise.integration.webhook import WebhookResult
from pennywise.manager import TrackerService
from pennywise.models import Transaction, TransactionUpdate
from pennywise.services.importer import ImportResult
from pennywise.services.imports import ImportOutcome
from pennywise.services.repository import TRANSACTIONS_TABLE

REVOLUT = INITIAL_BANKS[1]
CSV = (
    "Transaction Date,Description,Money In - GBP,Money Out - GBP\n"
    "2024-01-05,Coffee Shop,,4.50\n"
    "2024-01-06,Employer,2000.00,\n"
)


@pytest.fixture
def webhook() -> AsyncMock:
    sink = AsyncMock()
    sink.send.return_value = WebhookResult(delivered=True)
    return sink


@pytest.fixture
def service(
    tmp_path: Path,
    store: AsyncMock,
    webhook: AsyncMock,
    monkeypatch: pytest.MonkeyPatch,
) -> TrackerService:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return TrackerService(data_dir=str(tmp_path), store=store, webhook=webhook)


@pytest.mark.anyio
async def test_load_reads_every_table(service: TrackerService, store: AsyncMock) -> None:
    tables = {
        "Categories": [{"id": "pets", "name": "Pets", "type": "EXPENSE"}],
        "merchant_mappings": [],
        "Transactions": [
            {"id": 1, "Transaction Date": "2024-01-01", "Catagory": "Pets", "Money Out - GBP": 3}
        ],
    }
    store.select_all.side_effect = lambda table: tables[table]

    await service.load()

    assert [c.id for c in service.categories.list()] == ["pets"]
    assert service.transactions.get("1").category_id == "pets"
    assert service.advisor is None


@pytest.mark.anyio
async def test_manual_category_save_confirms_mapping(
    service: TrackerService, make_tx: Callable[..., Transaction]
) -> None:
    service.transactions.transactions = [
        make_tx(id="1", description="Uber", category_id="", category_name="")
    ]
    update = TransactionUpdate(
        category_id="travel", category_name="Travel", subcategory_name="Uber/Rideshare"
    )

    saved = await service.save_transaction("1", update)

    assert saved.category_id == "travel"
    mapping = service.mappings.lookup("uber")
    assert mapping is not None
    assert mapping.count == 1
    assert mapping.subcategory_name == "Uber/Rideshare"


@pytest.mark.anyio
async def test_category_id_alone_fills_the_cached_name(
    service: TrackerService, store: AsyncMock, make_tx: Callable[..., Transaction]
) -> None:
    service.transactions.transactions = [
        make_tx(id="1", description="Uber", category_id="", category_name="")
    ]

    saved = await service.save_transaction("1", TransactionUpdate(category_id="travel"))

    assert saved.category_name == "Travel"
    store.update.assert_awaited_once_with(TRANSACTIONS_TABLE, "1", {COL_CATEGORY: "Travel"})
    mapping = service.mappings.lookup("Uber")
    assert mapping is not None
    assert mapping.category_name == "Travel"


@pytest.mark.anyio
async def test_other_edits_do_not_confirm(
    service: TrackerService, make_tx: Callable[..., Transaction]
) -> None:
    service.transactions.transactions = [
        make_tx(id="1", description="Uber"),
        make_tx(id="2", description="Card payment"),
    ]

    await service.save_transaction("1", TransactionUpdate(notes="airport run"))
    await service.save_transaction(
        "2", TransactionUpdate(category_id="excluded", category_name="Excluded", excluded=True)
    )

    assert service.mappings.entries() == []


@pytest.mark.anyio
async def test_mapping_failure_keeps_the_edit(
    service: TrackerService, store: AsyncMock, make_tx: Callable[..., Transaction]
) -> None:
    service.transactions.transactions = [make_tx(id="1", description="Uber", category_id="")]
    store.insert.side_effect = StoreError("down")

    saved = await service.save_transaction(
        "1", TransactionUpdate(category_id="travel", category_name="Travel")
    )

    assert saved.category_id == "travel"
    assert service.transactions.get("1").category_id == "travel"
    assert service.mappings.lookup("Uber") is None


@pytest.mark.anyio
async def test_import_commits_then_notifies_webhook(
    service: TrackerService, store: AsyncMock, webhook: AsyncMock
) -> None:
    store.insert.return_value = [{"id": 10}, {"id": 11}]
    service.preferences.webhook_url = "http://hook"

    outcome = await service.imports.run(CSV, "jan.csv", REVOLUT)

    assert [t.id for t in outcome.transactions] == ["10", "11"]
    assert outcome.message == "Successfully imported 2 transactions & sent to webhook."
    url, source, file_name, drafts = webhook.send.await_args.args
    assert (url, source, file_name) == ("http://hook", "Revolut", "jan.csv")
    assert len(drafts) == 2


@pytest.mark.anyio
async def test_import_without_webhook(
    service: TrackerService, store: AsyncMock, webhook: AsyncMock
) -> None:
    store.insert.return_value = [{"id": 10}, {"id": 11}]
    outcome = await service.imports.run(CSV, "jan.csv", REVOLUT)

    assert outcome.webhook is None
    assert outcome.message == "Successfully imported 2 transactions."
    webhook.send.assert_not_awaited()


@pytest.mark.anyio
async def test_failed_import_skips_webhook(
    service: TrackerService, store: AsyncMock, webhook: AsyncMock
) -> None:
    service.preferences.webhook_url = "http://hook"
    store.insert.return_value = [{"id": 10}]

    with pytest.raises(PartialBatchError):
        await service.imports.run(CSV, "jan.csv", REVOLUT)
    with pytest.raises(EmptyImportError):
        await service.imports.run("Date,Amount\n2024-01-01,n/a\n", "bad.csv", REVOLUT)

    assert service.transactions.list() == []
    webhook.send.assert_not_awaited()


def test_webhook_failure_message() -> None:
    outcome = ImportOutcome(
        transactions=[],
        result=ImportResult(auto_categorized_count=3),
        webhook=WebhookResult(delivered=False, error="HTTP 500"),
    )
    assert outcome.message == (
        "Successfully imported 0 transactions (3 auto-categorized) but webhook failed."
    )
