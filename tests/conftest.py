from __future__ import annotations

import pytest

from budget_core import LedgerService, MemoryStorage, RecordStore


@pytest.fixture
def backend() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(backend: MemoryStorage) -> RecordStore:
    return RecordStore(backend)


@pytest.fixture
def ledger(store: RecordStore) -> LedgerService:
    return LedgerService(store)


@pytest.fixture
def seeded(ledger: LedgerService) -> LedgerService:
    """A small ledger spanning two months and both collections."""

    ledger.add("expense", {"amount": "12.50", "category": "Food", "date": "2024-05-03", "note": "Lunch, with team"})
    ledger.add("expense", {"amount": "40", "category": "Transport", "date": "2024-04-28", "note": "Monthly pass"})
    ledger.add("expense", {"amount": "7.25", "category": "Food", "date": "2024-05-10", "note": "Coffee beans"})
    ledger.add("income", {"amount": "2500", "category": "Salary", "date": "2024-05-01"})
    ledger.add("income", {"amount": "300", "category": "Freelance", "date": "2024-04-15", "note": "Logo for cafe"})
    return ledger
