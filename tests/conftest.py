from collections.abc import Callable
from itertools import count
from typing import Any
from unittest.mock import AsyncMock

import pytest

from pennywise.models import Transaction, TransactionType


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_tx() -> Callable[..., Transaction]:
    ids = count(1)

    def factory(**overrides: Any) -> Transaction:
        values: dict[str, Any] = {
            "id": str(next(ids)),
            "date": "2024-03-10",
            "amount": 10.0,
            "type": TransactionType.EXPENSE,
            "description": "Coffee Shop",
            "category_id": "food",
            "category_name": "Food",
            "subcategory_name": "Meals Out",
        }
        values.update(overrides)
        return Transaction(**values)

    return factory


@pytest.fixture
def store() -> AsyncMock:
    mock = AsyncMock()
    mock.configured = True
    mock.select_all.return_value = []
    mock.insert.return_value = []
    mock.upsert.return_value = []
    return mock
