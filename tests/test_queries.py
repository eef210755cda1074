"""Tests for the filter/sort/aggregate pipeline."""

from __future__ import annotations

import itertools
from decimal import Decimal

import pytest

from budget_core import Entry, FilterSpec, LedgerService, SortKey, ValidationError
from budget_core.queries import apply_filters, category_aggregates, merged_view, sort_rows


def _e(amount: str, category: str, date: str, note: str = "", entry_id: str = "") -> Entry:
    return Entry(id=entry_id or f"{category}-{date}-{amount}", amount=Decimal(amount), category=category, date=date, note=note)


EXPENSES = [
    _e("12.50", "Food", "2024-05-03", "Lunch with team"),
    _e("40.00", "Transport", "2024-04-28", "Monthly pass"),
    _e("7.25", "Food", "2024-05-10", "Coffee beans"),
    _e("15.00", "Other", "not-a-date", "Mystery"),
    _e("12.50", "Food", "2024-05-03", "Same day, same amount"),
]
INCOMES = [
    _e("2500.00", "Salary", "2024-05-01"),
    _e("300.00", "Freelance", "2024-04-15", "Logo for FOOD truck"),
]


@pytest.fixture
def rows():
    return merged_view(EXPENSES, INCOMES)


def test_merged_view_tags_type_and_original_index(rows) -> None:
    assert [(row.type, row.index) for row in rows] == [
        ("expense", 0), ("expense", 1), ("expense", 2), ("expense", 3), ("expense", 4),
        ("income", 0), ("income", 1),
    ]


def test_type_filter(rows) -> None:
    assert {row.type for row in apply_filters(rows, FilterSpec(type="income"))} == {"income"}
    assert len(apply_filters(rows, FilterSpec(type="all"))) == len(rows)
    assert len(apply_filters(rows, FilterSpec(type="both"))) == len(rows)


def test_category_filter_is_exact_and_all_disables(rows) -> None:
    assert len(apply_filters(rows, FilterSpec(category="Food"))) == 3
    assert apply_filters(rows, FilterSpec(category="food")) == []
    assert len(apply_filters(rows, FilterSpec(category="All"))) == len(rows)


def test_text_filter_matches_category_or_note_case_insensitively(rows) -> None:
    matched = apply_filters(rows, FilterSpec(text="  food "))

    assert {(row.type, row.index) for row in matched} == {
        ("expense", 0), ("expense", 2), ("expense", 4), ("income", 1),
    }


def test_month_filter_matches_prefix_exactly(rows) -> None:
    matched = apply_filters(rows, FilterSpec(month="2024-04"))

    assert {row.entry.category for row in matched} == {"Transport", "Freelance"}


@pytest.mark.parametrize("month", ["2024-4", "2024-13", "May 2024", "2024-05-01"])
def test_malformed_month_is_rejected(month: str) -> None:
    with pytest.raises(ValidationError):
        FilterSpec(month=month)


def test_category_search_matches_substring_of_category_only(rows) -> None:
    matched = apply_filters(rows, FilterSpec(category_search="FOO"))

    assert {row.entry.category for row in matched} == {"Food"}


def test_filter_order_does_not_change_result_set(rows) -> None:
    spec = FilterSpec(type="expense", category="Food", text="lunch", month="2024-05")
    stages = spec.predicates()
    expected = {(row.type, row.index) for row in apply_filters(rows, spec)}

    assert expected == {("expense", 0)}
    for order in itertools.permutations(stages):
        assert {(row.type, row.index) for row in apply_filters(rows, stages=order)} == expected


def test_date_sorts_are_exact_reverses(rows) -> None:
    ascending = sort_rows(rows, SortKey.DATE_ASC)
    descending = sort_rows(rows, "date-desc")

    assert descending == list(reversed(ascending))
    assert ascending[0].entry.date == "not-a-date"


def test_amount_sorts(rows) -> None:
    ascending = sort_rows(rows, "amount-asc")
    descending = sort_rows(rows, "amount-desc")

    assert [row.entry.amount for row in ascending] == sorted(row.entry.amount for row in rows)
    assert descending == list(reversed(ascending))


def test_unknown_sort_is_rejected(rows) -> None:
    with pytest.raises(ValidationError):
        sort_rows(rows, "category")


def test_aggregates_are_sorted_and_split_by_type(rows) -> None:
    aggregates = category_aggregates(rows)

    assert [aggregate.category for aggregate in aggregates] == [
        "Food", "Freelance", "Other", "Salary", "Transport",
    ]
    food = aggregates[0]
    assert food.expense == Decimal("32.25")
    assert food.income == Decimal("0")
    assert aggregates[3].income == Decimal("2500.00")


def test_same_category_in_both_collections_shares_a_bucket() -> None:
    rows = merged_view([_e("5", "Other", "2024-05-01")], [_e("9", "Other", "2024-05-02")])

    [bucket] = category_aggregates(rows)

    assert (bucket.expense, bucket.income) == (Decimal("5"), Decimal("9"))


def test_from_mapping_ignores_blank_values() -> None:
    spec = FilterSpec.from_mapping({"type": "", "category": "", "q": "Cafe", "month": ""})

    assert spec == FilterSpec(text="cafe")


def test_missing_values_fall_back_to_defaults(rows) -> None:
    spec = FilterSpec(type=None, category=None, text=None, month=None, category_search=None)

    assert spec == FilterSpec()
    assert spec.type == "all"
    assert len(apply_filters(rows, spec)) == len(rows)


def test_queries_reread_the_store(seeded: LedgerService) -> None:
    before = seeded.list(FilterSpec(category="Food"))

    seeded.add("expense", {"amount": "1", "category": "Food", "date": "2024-05-20"})

    assert len(seeded.list(FilterSpec(category="Food"))) == len(before) + 1
