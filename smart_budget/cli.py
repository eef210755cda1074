"""Console interface for the Smart Budget ledger."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, List, Optional

from budget_core.exceptions import (
    EntryIndexError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from budget_core.models import ENTRY_TYPES, LedgerRow, Totals
from budget_core.queries import FilterSpec, SortKey
from budget_core.services import LedgerService
from budget_core.storage import JSONStorage, RecordStore


def _parse_date(value: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}'. Expected format YYYY-MM-DD."
        ) from exc
    return value


def _parse_amount(value: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError("Amount must be a numeric value") from exc
    if not amount.is_finite() or amount <= 0:
        raise argparse.ArgumentTypeError("Amount must be greater than zero")
    return value


def _load_ledger(data_dir: Path) -> LedgerService:
    return LedgerService(RecordStore(JSONStorage(data_dir)))


def _format_row(row: LedgerRow) -> str:
    entry = row.entry
    sign = "+" if row.type == "income" else "-"
    return (
        f"[{row.type} #{row.index}] {entry.date or '-'} {sign}{entry.amount:,.2f}\n"
        f"  Category: {entry.category or '-'} | Note: {entry.note or '-'}\n"
    )


def _format_totals(totals: Totals) -> str:
    return (
        f"Income: {totals.income:,.2f} | Expenses: {totals.expense:,.2f} "
        f"| Balance: {totals.balance:,.2f}"
    )


def _filters(args: argparse.Namespace) -> FilterSpec:
    return FilterSpec(
        type=getattr(args, "type", None) or "all",
        category=getattr(args, "category", None) or "All",
        text=getattr(args, "search", None) or "",
        month=getattr(args, "month", None),
        category_search=getattr(args, "category_search", None) or "",
    )


def _print_rows(rows: Iterable[LedgerRow]) -> None:
    for row in rows:
        print(_format_row(row))


def _warn_if_unsaved(ledger: LedgerService) -> None:
    if not ledger.last_write_ok:
        print("Warning: the change could not be saved.", file=sys.stderr)


def handle_add(args: argparse.Namespace, ledger: LedgerService) -> None:
    payload = {"amount": args.amount, "category": args.category, "date": args.date, "note": args.note}
    if args.submit:
        result = ledger.submit(args.type, payload)
        print(result.message)
    else:
        entry = ledger.add(args.type, payload)
        print(f"{args.type.capitalize()} added successfully! ({entry.id})")
    _warn_if_unsaved(ledger)


def handle_edit(args: argparse.Namespace, ledger: LedgerService) -> None:
    payload = {"amount": args.amount, "category": args.category, "date": args.date, "note": args.note}
    if args.id:
        ledger.edit_by_id(args.type, args.id, payload)
    else:
        ledger.edit(args.type, args.index, payload)
    print(f"{args.type.capitalize()} updated successfully!")
    _warn_if_unsaved(ledger)


def handle_delete(args: argparse.Namespace, ledger: LedgerService) -> None:
    if args.id:
        ledger.delete_by_id(args.type, args.id)
    else:
        ledger.delete(args.type, args.index)
    print(f"{args.type.capitalize()} deleted successfully")
    _warn_if_unsaved(ledger)


def handle_mark_edit(args: argparse.Namespace, ledger: LedgerService) -> None:
    if args.cancel:
        ledger.cancel_edit()
        print("Pending edit cancelled.")
        return
    if args.type is None or args.index is None:
        target = ledger.pending_edit()
        print("No pending edit." if target is None else "Pending edit:\n" + _format_row(target))
        return
    ledger.request_edit(args.type, args.index)
    print(f"{args.type.capitalize()} #{args.index} will be replaced by the next 'add --submit'.")


def handle_clear(args: argparse.Namespace, ledger: LedgerService) -> None:
    if not args.yes:
        print("This will delete ALL expenses and incomes. Re-run with --yes to continue.")
        return
    ledger.clear_all()
    print("All history cleared.")
    _warn_if_unsaved(ledger)


def handle_list(args: argparse.Namespace, ledger: LedgerService) -> None:
    rows = ledger.list(_filters(args), args.sort)
    print(_format_totals(ledger.totals()))
    if not rows:
        print("No history found.")
        return
    print(f"Found {len(rows)} entries:")
    _print_rows(rows)


def handle_recent(args: argparse.Namespace, ledger: LedgerService) -> None:
    print(_format_totals(ledger.totals()))
    rows = ledger.recent(args.limit)
    if not rows:
        print("No entries yet.")
        return
    _print_rows(rows)


def handle_totals(args: argparse.Namespace, ledger: LedgerService) -> None:
    print(_format_totals(ledger.totals()))


def handle_report(args: argparse.Namespace, ledger: LedgerService) -> None:
    report = ledger.report(_filters(args))
    print(_format_totals(report.totals))
    if not report.aggregates:
        print("No data for the selected filters.")
        return
    for aggregate in report.aggregates:
        print(
            f"  {aggregate.category}: expenses {aggregate.expense:,.2f} | income {aggregate.income:,.2f}"
        )


def handle_export(args: argparse.Namespace, ledger: LedgerService) -> None:
    filters = _filters(args)
    text = ledger.export_csv(args.shape, filters, args.sort if args.shape == "history" else None)
    output: Path = args.output or Path(ledger.export_filename(args.shape, filters.month))
    output.write_text(text, encoding="utf-8")
    print(f"Exported {args.shape} to {output}")


def _add_entry_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("amount", type=_parse_amount)
    parser.add_argument("category")
    parser.add_argument("date", type=_parse_date)
    parser.add_argument("--note")


def _add_filter_arguments(parser: argparse.ArgumentParser, *, report: bool = False) -> None:
    parser.add_argument("--type", choices=("all",) + ENTRY_TYPES, default="all")
    parser.add_argument("--month", help="Restrict to a single month (YYYY-MM)")
    if report:
        parser.add_argument("--category-search", help="Case-insensitive category substring")
    else:
        parser.add_argument("--category", help="Exact category match")
        parser.add_argument("--search", help="Case-insensitive text in category or note")


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("type", choices=ENTRY_TYPES)
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--index", type=int, help="Position in the current collection")
    target.add_argument("--id", help="Stable entry identifier")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smart Budget CLI")
    parser.add_argument(
        "--data-dir",
        default="data",
        type=Path,
        help="Directory to store JSON data (default: ./data)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    sort_choices = [key.value for key in SortKey]

    add_parser = subparsers.add_parser("add", help="Add a new expense or income")
    add_parser.add_argument("type", choices=ENTRY_TYPES)
    _add_entry_arguments(add_parser)
    add_parser.add_argument(
        "--submit",
        action="store_true",
        help="Consume a pending edit (see 'mark-edit') instead of always appending",
    )

    edit_parser = subparsers.add_parser("edit", help="Replace an existing entry")
    _add_target_arguments(edit_parser)
    _add_entry_arguments(edit_parser)

    delete_parser = subparsers.add_parser("delete", help="Delete an entry")
    _add_target_arguments(delete_parser)

    mark_parser = subparsers.add_parser("mark-edit", help="Show, set or cancel the pending edit")
    mark_parser.add_argument("type", nargs="?", choices=ENTRY_TYPES)
    mark_parser.add_argument("index", nargs="?", type=int)
    mark_parser.add_argument("--cancel", action="store_true")

    clear_parser = subparsers.add_parser("clear", help="Delete all expenses and incomes")
    clear_parser.add_argument("--yes", action="store_true")

    list_parser = subparsers.add_parser("list", help="List history")
    _add_filter_arguments(list_parser)
    list_parser.add_argument("--sort", choices=sort_choices, default=SortKey.DATE_DESC.value)

    recent_parser = subparsers.add_parser("recent", help="Show the dashboard summary")
    recent_parser.add_argument("--limit", type=int, default=5)

    subparsers.add_parser("totals", help="Show global totals")

    report_parser = subparsers.add_parser("report", help="Category report")
    _add_filter_arguments(report_parser, report=True)

    export_parser = subparsers.add_parser("export", help="Export CSV")
    export_parser.add_argument("shape", choices=("history", "report"))
    _add_filter_arguments(export_parser)
    export_parser.add_argument("--category-search")
    export_parser.add_argument("--sort", choices=sort_choices)
    export_parser.add_argument("--output", type=Path)

    return parser


HANDLERS = {
    "add": handle_add,
    "edit": handle_edit,
    "delete": handle_delete,
    "mark-edit": handle_mark_edit,
    "clear": handle_clear,
    "list": handle_list,
    "recent": handle_recent,
    "totals": handle_totals,
    "report": handle_report,
    "export": handle_export,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    )
    ledger = _load_ledger(args.data_dir)

    try:
        HANDLERS[args.command](args, ledger)
    except ValidationError as exc:
        print(f"Validation error: {exc}", file=sys.stderr)
        return 1
    except EntryIndexError as exc:
        print(f"Nothing changed: {exc}", file=sys.stderr)
        return 1
    except RecordNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except PersistenceError as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Unable to write export: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
