"""Data models for the ledger domain."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

__all__ = [
    "EXPENSE",
    "INCOME",
    "ENTRY_TYPES",
    "COLLECTION_KEYS",
    "Entry",
    "PendingEdit",
    "LedgerRow",
    "Totals",
    "CategoryAggregate",
    "coerce_amount",
    "parse_iso_date",
]

EXPENSE = "expense"
INCOME = "income"
ENTRY_TYPES = (EXPENSE, INCOME)

# Storage keys kept compatible with ledgers exported by the browser version.
COLLECTION_KEYS = {EXPENSE: "expenses", INCOME: "incomes"}

ZERO = Decimal("0.00")

# Amounts must stay below 10**(AMOUNT_MAX_EXPONENT + 1) to sum and render safely.
AMOUNT_MAX_EXPONENT = 14


def coerce_amount(value: object) -> Decimal:
    """Best-effort conversion of a stored amount; anything unusable counts as zero."""
    if isinstance(value, bool) or value is None:
        return ZERO
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or abs(amount.adjusted()) > AMOUNT_MAX_EXPONENT:
        return ZERO
    return amount


def parse_iso_date(value: object) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string, returning ``None`` for anything else."""
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def _legacy_id(data: Dict[str, Any]) -> str:
    # Records written before ids existed get a deterministic id derived from content.
    canonical = json.dumps(
        {key: data.get(key) for key in ("amount", "category", "note", "date")},
        sort_keys=True,
        default=str,
    )
    return "legacy-" + hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class Entry:
    id: str
    amount: Decimal
    category: str
    date: str
    note: str = ""

    @property
    def parsed_date(self) -> Optional[date]:
        return parse_iso_date(self.date)

    @property
    def month(self) -> str:
        """The ``YYYY-MM`` prefix of the entry date (may be partial for bad data)."""
        return self.date[:7]

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the entry to JSON-friendly natives."""
        return {
            "id": self.id,
            "amount": f"{self.amount:.2f}",
            "category": self.category,
            "note": self.note,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entry":
        """Hydrate an Entry from stored data without enforcing the submit rules."""
        entry_id = data.get("id")
        return cls(
            id=str(entry_id) if entry_id else _legacy_id(data),
            amount=coerce_amount(data.get("amount")),
            category=str(data.get("category") or ""),
            date=str(data.get("date") or ""),
            note=str(data.get("note") or ""),
        )


@dataclass(frozen=True)
class PendingEdit:
    """An entry slated for replacement by the next successful submit."""

    type: str
    entry_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "entry_id": self.entry_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingEdit":
        return cls(type=str(data["type"]), entry_id=str(data["entry_id"]))


@dataclass(frozen=True)
class LedgerRow:
    """One entry of the merged view, tagged with its type and original index."""

    entry: Entry
    type: str
    index: int

    def to_dict(self) -> Dict[str, Any]:
        return {**self.entry.to_dict(), "type": self.type, "index": self.index}


@dataclass(frozen=True)
class Totals:
    income: Decimal
    expense: Decimal

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense

    def to_dict(self) -> Dict[str, str]:
        return {
            "income": f"{self.income:.2f}",
            "expense": f"{self.expense:.2f}",
            "balance": f"{self.balance:.2f}",
        }


@dataclass(frozen=True)
class CategoryAggregate:
    category: str
    expense: Decimal
    income: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            "category": self.category,
            "expense": f"{self.expense:.2f}",
            "income": f"{self.income:.2f}",
        }
