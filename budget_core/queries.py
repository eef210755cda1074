"""Filter, sort and aggregate pipeline over the merged ledger view.

Every function here is pure: callers hand in the collections they just read
from the store and receive freshly derived results. Filters are independent
conjunctive predicates, so the resulting set does not depend on the order in
which they are evaluated; sorting always runs last.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .exceptions import ValidationError
from .models import (
    ENTRY_TYPES,
    EXPENSE,
    INCOME,
    ZERO,
    CategoryAggregate,
    Entry,
    LedgerRow,
)
from .validators import validate_month

ALL_TYPES = "all"
ALL_CATEGORIES = "All"

_TYPE_ALIASES = {"all": ALL_TYPES, "both": ALL_TYPES, "": ALL_TYPES}
_TYPE_ORDER = {EXPENSE: 0, INCOME: 1}

Predicate = Callable[[LedgerRow], bool]


class SortKey(str, Enum):
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    AMOUNT_DESC = "amount-desc"
    AMOUNT_ASC = "amount-asc"

    @classmethod
    def parse(cls, value: object) -> "SortKey":
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.DATE_DESC
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise ValidationError(f"sort must be one of: {choices}") from exc


@dataclass(frozen=True)
class FilterSpec:
    type: str = ALL_TYPES
    category: str = ALL_CATEGORIES
    text: str = ""
    month: Optional[str] = None
    category_search: str = ""

    def __post_init__(self) -> None:
        requested = (self.type or ALL_TYPES).strip().lower()
        entry_type = _TYPE_ALIASES.get(requested, requested)
        if entry_type != ALL_TYPES and entry_type not in ENTRY_TYPES:
            raise ValidationError("type must be one of: all, expense, income")
        # Frozen dataclass; normalise through object.__setattr__.
        object.__setattr__(self, "type", entry_type)
        object.__setattr__(self, "category", (self.category or ALL_CATEGORIES).strip())
        object.__setattr__(self, "text", (self.text or "").strip().lower())
        object.__setattr__(self, "month", validate_month(self.month))
        object.__setattr__(self, "category_search", (self.category_search or "").strip().lower())

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Optional[str]]) -> "FilterSpec":
        """Build a spec from query-string style input, ignoring blank values."""
        return cls(
            type=raw.get("type") or ALL_TYPES,
            category=raw.get("category") or ALL_CATEGORIES,
            text=raw.get("q") or raw.get("text") or "",
            month=raw.get("month") or None,
            category_search=raw.get("category_search") or "",
        )

    def predicates(self) -> List[Predicate]:
        """Return the active filter stages in pipeline order."""
        stages: List[Predicate] = []
        if self.type != ALL_TYPES:
            stages.append(lambda row: row.type == self.type)
        if self.category and self.category != ALL_CATEGORIES:
            stages.append(lambda row: row.entry.category == self.category)
        if self.text:
            stages.append(lambda row: self.text in _search_blob(row.entry))
        if self.month:
            stages.append(lambda row: row.entry.month == self.month)
        if self.category_search:
            stages.append(lambda row: self.category_search in row.entry.category.lower())
        return stages


def _search_blob(entry: Entry) -> str:
    return f"{entry.category} {entry.note}".lower()


def merged_view(expenses: Sequence[Entry], incomes: Sequence[Entry]) -> List[LedgerRow]:
    """Concatenate both collections, tagging each entry with its type and index."""
    rows = [LedgerRow(entry, EXPENSE, index) for index, entry in enumerate(expenses)]
    rows.extend(LedgerRow(entry, INCOME, index) for index, entry in enumerate(incomes))
    return rows


def apply_filters(
    rows: Iterable[LedgerRow],
    filters: Optional[FilterSpec] = None,
    *,
    stages: Optional[Sequence[Predicate]] = None,
) -> List[LedgerRow]:
    """Keep rows matching every filter stage.

    ``stages`` overrides the order in which the predicates are evaluated; the
    result is the same set regardless of that order.
    """
    active = list(stages) if stages is not None else (filters or FilterSpec()).predicates()
    return [row for row in rows if all(stage(row) for stage in active)]


def _tiebreak(row: LedgerRow) -> Tuple[int, int]:
    return _TYPE_ORDER.get(row.type, len(_TYPE_ORDER)), row.index


def _date_key(row: LedgerRow) -> Tuple[date, int, int]:
    # Unparseable dates compare as the smallest possible value.
    return (row.entry.parsed_date or date.min, *_tiebreak(row))


def _amount_key(row: LedgerRow) -> Tuple[Decimal, int, int]:
    return (row.entry.amount, *_tiebreak(row))


def sort_rows(rows: Iterable[LedgerRow], sort: object = SortKey.DATE_DESC) -> List[LedgerRow]:
    key = SortKey.parse(sort)
    if key in (SortKey.DATE_DESC, SortKey.DATE_ASC):
        return sorted(rows, key=_date_key, reverse=key is SortKey.DATE_DESC)
    return sorted(rows, key=_amount_key, reverse=key is SortKey.AMOUNT_DESC)


def run_query(
    rows: Iterable[LedgerRow],
    filters: Optional[FilterSpec] = None,
    sort: object = SortKey.DATE_DESC,
) -> List[LedgerRow]:
    return sort_rows(apply_filters(rows, filters), sort)


def category_aggregates(rows: Iterable[LedgerRow]) -> List[CategoryAggregate]:
    """Group rows by category with expense and income sums kept apart."""
    expense_totals: Dict[str, Decimal] = {}
    income_totals: Dict[str, Decimal] = {}
    for row in rows:
        bucket = expense_totals if row.type == EXPENSE else income_totals
        bucket[row.entry.category] = bucket.get(row.entry.category, ZERO) + row.entry.amount

    categories = sorted(set(expense_totals) | set(income_totals))
    return [
        CategoryAggregate(
            category=category,
            expense=expense_totals.get(category, ZERO),
            income=income_totals.get(category, ZERO),
        )
        for category in categories
    ]
