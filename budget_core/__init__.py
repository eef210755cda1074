"""Core ledger store and query engine for the Smart Budget tracker."""

from .debounce import Debouncer, LiveSearch
from .exceptions import (
    EditTypeMismatchError,
    EntryIndexError,
    PersistenceError,
    RecordNotFoundError,
    StorageUnavailable,
    ValidationError,
)
from .models import EXPENSE, INCOME, CategoryAggregate, Entry, LedgerRow, PendingEdit, Totals
from .queries import FilterSpec, SortKey
from .services import EntryService, LedgerService, Report, SubmitResult
from .storage import JSONStorage, MemoryStorage, RecordStore

__all__ = [
    "EXPENSE",
    "INCOME",
    "CategoryAggregate",
    "Debouncer",
    "EditTypeMismatchError",
    "Entry",
    "EntryIndexError",
    "EntryService",
    "FilterSpec",
    "JSONStorage",
    "LedgerRow",
    "LedgerService",
    "LiveSearch",
    "MemoryStorage",
    "PendingEdit",
    "PersistenceError",
    "RecordNotFoundError",
    "RecordStore",
    "Report",
    "SortKey",
    "StorageUnavailable",
    "SubmitResult",
    "Totals",
    "ValidationError",
]
