"""Validation helpers shared across the ledger services."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, FrozenSet, Optional

from .exceptions import ValidationError
from .models import AMOUNT_MAX_EXPONENT, ENTRY_TYPES, EXPENSE, INCOME

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

EXPENSE_CATEGORIES = frozenset({
    "Food",
    "Transport",
    "Utilities",
    "Entertainment",
    "Shopping",
    "Health",
    "Travel",
    "Other",
})

INCOME_CATEGORIES = frozenset({
    "Salary",
    "Freelance",
    "Business",
    "Investment",
    "Gift",
    "Other",
})

CATEGORIES: Dict[str, FrozenSet[str]] = {
    EXPENSE: EXPENSE_CATEGORIES,
    INCOME: INCOME_CATEGORIES,
}

NOTE_MAX_LENGTH = 200
MIN_AMOUNT = Decimal("0.01")


def _quantize_two_decimals(amount: Decimal) -> Decimal:
    """Round the amount to two decimal places using HALF_UP rounding."""
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_amount(raw: object, field: str = "amount") -> Decimal:
    """Convert raw input to a positive finite Decimal with exactly two fraction digits."""
    if raw is None or isinstance(raw, bool):
        raise ValidationError(f"{field} must be a numeric value")
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a numeric value") from exc

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    if amount.adjusted() > AMOUNT_MAX_EXPONENT:
        raise ValidationError(f"{field} is too large")

    try:
        quantized = _quantize_two_decimals(amount)
    except InvalidOperation as exc:
        raise ValidationError(f"{field} is too large") from exc
    # Positive amounts below one cent are kept as the smallest storable amount.
    return max(quantized, MIN_AMOUNT)


def validate_entry_type(value: object) -> str:
    if not isinstance(value, str):
        raise ValidationError("type must be a string")
    canonical = value.strip().lower()
    if canonical not in ENTRY_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(ENTRY_TYPES)}")
    return canonical


def validate_category(value: object, entry_type: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Please select a category.")
    category = value.strip()
    allowed = CATEGORIES[entry_type]
    if category not in allowed:
        raise ValidationError(
            f"category for {entry_type} must be one of: {', '.join(sorted(allowed))}"
        )
    return category


def validate_date(value: object, field: str = "date") -> str:
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Please select a date.")
    candidate = value.strip()
    if not DATE_PATTERN.fullmatch(candidate):
        raise ValidationError(f"{field} must use the YYYY-MM-DD format")
    try:
        date.fromisoformat(candidate)
    except ValueError as exc:
        raise ValidationError(f"{field} is not a valid calendar date") from exc
    return candidate


def validate_note(value: object) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("note must be a string")
    trimmed = value.strip()
    if len(trimmed) > NOTE_MAX_LENGTH:
        raise ValidationError(f"note must be at most {NOTE_MAX_LENGTH} characters")
    return trimmed


def validate_month(value: object) -> Optional[str]:
    """Accept ``None``/empty (no month filter) or an exact ``YYYY-MM`` string."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("month must be a string")
    candidate = value.strip()
    if not candidate:
        return None
    if not MONTH_PATTERN.fullmatch(candidate):
        raise ValidationError("month must use the YYYY-MM format")
    return candidate
