"""CSV rendering for history and report downloads.

The format mirrors earlier exports of the application: commas inside text
fields are replaced by a space instead of quoting, amounts always carry two
decimals and no thousands separators, and lines are joined with ``\\n``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from .exceptions import ValidationError
from .models import CategoryAggregate, LedgerRow, coerce_amount

HISTORY = "history"
REPORT = "report"
SHAPES = (HISTORY, REPORT)

HISTORY_HEADER = ("Date", "Category", "Note", "Amount", "Type")
REPORT_HEADER = ("Category", "Expenses", "Income")

HISTORY_FILENAME = "smart-budget-history.csv"


def _text(value: Optional[str]) -> str:
    return (value or "").replace(",", " ")


def _amount(value: object) -> str:
    amount = value if isinstance(value, Decimal) else coerce_amount(value)
    return f"{amount:.2f}"


def _join(lines: Iterable[Sequence[str]]) -> str:
    return "\n".join(",".join(line) for line in lines)


def history_csv(rows: Iterable[LedgerRow]) -> str:
    lines: List[Sequence[str]] = [HISTORY_HEADER]
    for row in rows:
        entry = row.entry
        lines.append((
            entry.date,
            _text(entry.category),
            _text(entry.note),
            _amount(entry.amount),
            row.type,
        ))
    return _join(lines)


def report_csv(aggregates: Iterable[CategoryAggregate]) -> str:
    lines: List[Sequence[str]] = [REPORT_HEADER]
    for aggregate in aggregates:
        lines.append((
            _text(aggregate.category),
            _amount(aggregate.expense),
            _amount(aggregate.income),
        ))
    return _join(lines)


def export_csv(records: Iterable[object], shape: str) -> str:
    """Render ledger rows (``history``) or category aggregates (``report``)."""
    if shape == HISTORY:
        return history_csv(records)  # type: ignore[arg-type]
    if shape == REPORT:
        return report_csv(records)  # type: ignore[arg-type]
    raise ValidationError(f"shape must be one of: {', '.join(SHAPES)}")


def export_filename(shape: str, month: Optional[str] = None) -> str:
    if shape == HISTORY:
        return HISTORY_FILENAME
    if shape == REPORT:
        return f"smart-budget-report-{month}.csv" if month else "smart-budget-report.csv"
    raise ValidationError(f"shape must be one of: {', '.join(SHAPES)}")
