"""Pure sums over entry collections."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from .models import EXPENSE, INCOME, ZERO, Entry, LedgerRow, Totals, coerce_amount


def sum_amounts(entries: Iterable[Entry]) -> Decimal:
    """Sum entry amounts; missing or non-numeric amounts count as zero."""
    return sum(
        (coerce_amount(getattr(entry, "amount", None)) for entry in entries),
        start=ZERO,
    )


def compute_totals(expenses: Iterable[Entry], incomes: Iterable[Entry]) -> Totals:
    return Totals(income=sum_amounts(incomes), expense=sum_amounts(expenses))


def totals_for_rows(rows: Iterable[LedgerRow]) -> Totals:
    """Totals restricted to the rows of a query result."""
    rows = list(rows)
    return compute_totals(
        (row.entry for row in rows if row.type == EXPENSE),
        (row.entry for row in rows if row.type == INCOME),
    )
