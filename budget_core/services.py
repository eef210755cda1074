"""Framework-agnostic business services for the ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from .exceptions import (
    EditTypeMismatchError,
    EntryIndexError,
    RecordNotFoundError,
    ValidationError,
)
from .export import REPORT, export_csv, export_filename
from .models import (
    ENTRY_TYPES,
    EXPENSE,
    INCOME,
    CategoryAggregate,
    Entry,
    LedgerRow,
    PendingEdit,
    Totals,
)
from .queries import (
    FilterSpec,
    SortKey,
    apply_filters,
    category_aggregates,
    merged_view,
    run_query,
    sort_rows,
)
from .storage import RecordStore
from .totals import compute_totals, totals_for_rows
from .validators import (
    parse_amount,
    validate_category,
    validate_date,
    validate_entry_type,
    validate_note,
)

logger = logging.getLogger(__name__)

Payload = Union[Mapping[str, Any], Entry]


def _as_mapping(payload: Payload) -> Mapping[str, Any]:
    if isinstance(payload, Entry):
        return payload.to_dict()
    if not isinstance(payload, Mapping):
        raise ValidationError("entry payload must be an object")
    return payload


class EntryService:
    """Manages one entry collection; every call re-reads the store."""

    def __init__(self, store: RecordStore, entry_type: str) -> None:
        self._store = store
        self._type = validate_entry_type(entry_type)

    @property
    def type(self) -> str:
        return self._type

    # Public API -----------------------------------------------------------
    def add(self, payload: Payload) -> Entry:
        entry = Entry(**self._validate_payload(payload))
        entries = self._load()
        entries.append(entry)
        self._persist(entries)
        logger.info("Added %s %s at index %d", self._type, entry.id, len(entries) - 1)
        return entry

    def edit(self, index: int, payload: Payload) -> Entry:
        entries = self._load()
        existing = self._at(entries, index)
        # Whole-record replace; the identifier survives the edit.
        updated = Entry(**self._validate_payload(payload, current=existing))
        entries[index] = updated
        self._persist(entries)
        return updated

    def delete(self, index: int) -> Entry:
        entries = self._load()
        removed = self._at(entries, index)
        del entries[index]
        self._persist(entries)
        logger.info("Deleted %s %s from index %d", self._type, removed.id, index)
        return removed

    def get(self, index: int) -> Entry:
        return self._at(self._load(), index)

    def list(self) -> List[Entry]:
        return self._load()

    def clear(self) -> bool:
        return self._store.clear(self._type)

    # Identifier-keyed variants ---------------------------------------------
    def index_of(self, entry_id: str) -> int:
        for index, entry in enumerate(self._load()):
            if entry.id == entry_id:
                return index
        raise RecordNotFoundError(f"{self._type.capitalize()} {entry_id} not found")

    def get_by_id(self, entry_id: str) -> Entry:
        return self.get(self.index_of(entry_id))

    def edit_by_id(self, entry_id: str, payload: Payload) -> Entry:
        return self.edit(self.index_of(entry_id), payload)

    def delete_by_id(self, entry_id: str) -> Entry:
        return self.delete(self.index_of(entry_id))

    # Internal helpers -----------------------------------------------------
    def _load(self) -> List[Entry]:
        return self._store.get(self._type)

    def _persist(self, entries: List[Entry]) -> bool:
        return self._store.put(self._type, entries)

    def _at(self, entries: List[Entry], index: int) -> Entry:
        # Indices are positions in the collection as it is right now; no wrap-around.
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(entries):
            raise EntryIndexError(
                f"{self._type.capitalize()} index {index!r} is out of range "
                f"(collection has {len(entries)} entries)"
            )
        return entries[index]

    def _validate_payload(
        self, payload: Payload, *, current: Optional[Entry] = None
    ) -> Dict[str, Any]:
        data = _as_mapping(payload)
        return {
            "id": current.id if current else uuid4().hex,
            "amount": parse_amount(data.get("amount"), "amount"),
            "category": validate_category(data.get("category"), self._type),
            "date": validate_date(data.get("date")),
            "note": validate_note(data.get("note")),
        }


@dataclass(frozen=True)
class SubmitResult:
    entry: Entry
    type: str
    updated: bool
    persisted: bool

    @property
    def message(self) -> str:
        verb = "updated" if self.updated else "added"
        return f"{self.type.capitalize()} {verb} successfully!"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry": self.entry.to_dict(),
            "type": self.type,
            "updated": self.updated,
            "persisted": self.persisted,
            "message": self.message,
        }


@dataclass(frozen=True)
class Report:
    aggregates: List[CategoryAggregate]
    totals: Totals
    month: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "items": [aggregate.to_dict() for aggregate in self.aggregates],
            "totals": self.totals.to_dict(),
        }


class LedgerService:
    """Facade over both collections used by the API and CLI.

    Nothing is cached between calls: queries read the store afresh and
    callers re-query after every mutation.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._services = {entry_type: EntryService(store, entry_type) for entry_type in ENTRY_TYPES}

    @property
    def store(self) -> RecordStore:
        return self._store

    def service(self, entry_type: str) -> EntryService:
        return self._services[validate_entry_type(entry_type)]

    @property
    def last_write_ok(self) -> bool:
        return self._store.last_write_ok

    # CRUD ------------------------------------------------------------------
    def add(self, entry_type: str, payload: Payload) -> Entry:
        return self.service(entry_type).add(payload)

    def edit(self, entry_type: str, index: int, payload: Payload) -> Entry:
        return self.service(entry_type).edit(index, payload)

    def delete(self, entry_type: str, index: int) -> Entry:
        return self.service(entry_type).delete(index)

    def edit_by_id(self, entry_type: str, entry_id: str, payload: Payload) -> Entry:
        return self.service(entry_type).edit_by_id(entry_id, payload)

    def delete_by_id(self, entry_type: str, entry_id: str) -> Entry:
        return self.service(entry_type).delete_by_id(entry_id)

    def clear_all(self) -> bool:
        results = [self._store.clear(entry_type) for entry_type in ENTRY_TYPES]
        self._store.last_write_ok = all(results)
        logger.info("Cleared all entries")
        return self._store.last_write_ok

    # Queries -----------------------------------------------------------------
    def rows(self) -> List[LedgerRow]:
        return merged_view(self._store.get(EXPENSE), self._store.get(INCOME))

    def list(
        self, filters: Optional[FilterSpec] = None, sort: object = SortKey.DATE_DESC
    ) -> List[LedgerRow]:
        return run_query(self.rows(), filters, sort)

    def totals(self, filters: Optional[FilterSpec] = None) -> Totals:
        """Global totals when ``filters`` is omitted, otherwise filtered totals."""
        if filters is None:
            return compute_totals(self._store.get(EXPENSE), self._store.get(INCOME))
        return totals_for_rows(apply_filters(self.rows(), filters))

    def category_aggregates(self, filters: Optional[FilterSpec] = None) -> List[CategoryAggregate]:
        return category_aggregates(apply_filters(self.rows(), filters))

    def report(self, filters: Optional[FilterSpec] = None) -> Report:
        filters = filters or FilterSpec()
        rows = apply_filters(self.rows(), filters)
        return Report(
            aggregates=category_aggregates(rows),
            totals=totals_for_rows(rows),
            month=filters.month,
        )

    def recent(self, limit: int = 5) -> List[LedgerRow]:
        return sort_rows(self.rows(), SortKey.DATE_DESC)[: max(limit, 0)]

    def export_csv(
        self,
        shape: str,
        filters: Optional[FilterSpec] = None,
        sort: Optional[object] = None,
    ) -> str:
        if shape == REPORT:
            return export_csv(self.category_aggregates(filters), REPORT)
        rows = apply_filters(self.rows(), filters)
        if sort is not None:
            rows = sort_rows(rows, sort)
        return export_csv(rows, shape)

    @staticmethod
    def export_filename(shape: str, month: Optional[str] = None) -> str:
        return export_filename(shape, month)

    # Edit handoff ------------------------------------------------------------
    def request_edit(self, entry_type: str, index: int) -> PendingEdit:
        """Mark the entry currently at ``index`` for replacement by the next submit."""
        entry = self.service(entry_type).get(index)
        pending = PendingEdit(type=self.service(entry_type).type, entry_id=entry.id)
        self._store.put_pending(pending)
        return pending

    def pending_edit(self) -> Optional[LedgerRow]:
        """Resolve the pending edit against the current collection, if still present."""
        pending = self._store.get_pending()
        if pending is None or pending.type not in ENTRY_TYPES:
            return None
        service = self.service(pending.type)
        try:
            index = service.index_of(pending.entry_id)
        except RecordNotFoundError:
            return None
        return LedgerRow(service.get(index), pending.type, index)

    def cancel_edit(self) -> bool:
        return self._store.clear_pending()

    def submit(self, entry_type: str, payload: Payload) -> SubmitResult:
        """Apply a form submit: consume the pending edit if any, else append."""
        entry_type = validate_entry_type(entry_type)
        pending = self._store.get_pending()
        if pending is not None and pending.type != entry_type:
            raise EditTypeMismatchError(
                f"A pending edit targets a {pending.type}; submit it as {pending.type} "
                "or cancel the edit first"
            )

        service = self.service(entry_type)
        if pending is not None:
            try:
                entry = service.edit_by_id(pending.entry_id, payload)
            except RecordNotFoundError:
                logger.warning("Pending edit %s no longer exists; appending instead", pending.entry_id)
            else:
                persisted = self._store.last_write_ok
                self._store.clear_pending()
                return SubmitResult(entry, entry_type, updated=True, persisted=persisted)

        entry = service.add(payload)
        persisted = self._store.last_write_ok
        if pending is not None:
            self._store.clear_pending()
        return SubmitResult(entry, entry_type, updated=False, persisted=persisted)
