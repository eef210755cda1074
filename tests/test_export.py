"""Tests for CSV export of history rows and category reports."""

from __future__ import annotations

from decimal import Decimal

import pytest

from budget_core import CategoryAggregate, FilterSpec, LedgerService, ValidationError
from budget_core.export import export_csv, export_filename, history_csv, report_csv


def test_history_export_header_and_rows(seeded: LedgerService) -> None:
    text = seeded.export_csv("history")
    lines = text.split("\n")

    assert lines[0] == "Date,Category,Note,Amount,Type"
    assert lines[1] == "2024-05-03,Food,Lunch  with team,12.50,expense"
    assert lines[4] == "2024-05-01,Salary,,2500.00,income"
    assert len(lines) == 6
    assert not text.endswith("\n")


def test_history_amounts_round_trip_to_two_decimals(seeded: LedgerService) -> None:
    rows = seeded.list()
    lines = history_csv(rows).split("\n")[1:]

    parsed = [Decimal(line.split(",")[3]) for line in lines]

    assert parsed == [row.entry.amount.quantize(Decimal("0.01")) for row in rows]
    assert all(len(line.split(",")) == 5 for line in lines)


def test_large_amounts_have_no_thousands_separator(ledger: LedgerService) -> None:
    ledger.add("income", {"amount": "1234567.8", "category": "Business", "date": "2024-05-01"})

    assert ledger.export_csv("history").split("\n")[1].endswith(",1234567.80,income")


def test_report_export(seeded: LedgerService) -> None:
    text = seeded.export_csv("report", FilterSpec(month="2024-05"))

    assert text.split("\n") == [
        "Category,Expenses,Income",
        "Food,19.75,0.00",
        "Salary,0.00,2500.00",
    ]


def test_report_replaces_commas_in_category() -> None:
    text = report_csv([CategoryAggregate("Rent, shared", Decimal("10"), Decimal("0"))])

    assert text.split("\n")[1] == "Rent  shared,10.00,0.00"


def test_empty_exports_still_have_headers() -> None:
    assert export_csv([], "history") == "Date,Category,Note,Amount,Type"
    assert export_csv([], "report") == "Category,Expenses,Income"


def test_unknown_shape_is_rejected() -> None:
    with pytest.raises(ValidationError):
        export_csv([], "pdf")


def test_export_filenames() -> None:
    assert export_filename("history") == "smart-budget-history.csv"
    assert export_filename("report", "2024-05") == "smart-budget-report-2024-05.csv"
    assert export_filename("report") == "smart-budget-report.csv"
