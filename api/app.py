"""Flask REST API exposing the ledger services."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from budget_core.exceptions import (
    EntryIndexError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from budget_core.queries import FilterSpec, SortKey
from budget_core.services import LedgerService
from budget_core.storage import JSONStorage, RecordStore


def create_app(data_dir: Optional[Path] = None, storage: Optional[Any] = None) -> Flask:
    app = Flask(__name__)

    env_name = os.getenv("SMART_BUDGET_ENV", "prod").lower()
    if env_name in {"dev", "development"}:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
    else:
        allowed_origins = os.getenv("SMART_BUDGET_ALLOWED_ORIGINS")
        if allowed_origins:
            origins = [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]
            CORS(app, resources={r"/*": {"origins": origins}}, supports_credentials=True)
        else:
            CORS(app)

    if storage is None:
        storage = JSONStorage(Path(data_dir or os.getenv("SMART_BUDGET_DATA_DIR", "data")))
    ledger = LedgerService(RecordStore(storage))
    app.extensions["ledger"] = ledger

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    def _handle_error(exc: Exception, status: int, message: str):
        app.logger.error("%s: %s", message, exc)
        return jsonify({"error": message, "details": str(exc)}), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _handle_error(exc, 400, "Validation error")

    @app.errorhandler(EntryIndexError)
    def handle_index_error(exc: EntryIndexError):
        # Stale positional addresses are expected after concurrent deletes.
        app.logger.warning("Entry index out of range: %s", exc)
        return jsonify({"error": "Entry index out of range", "details": str(exc)}), 404

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc: RecordNotFoundError):
        return _handle_error(exc, 404, "Record not found")

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(exc: PersistenceError):
        return _handle_error(exc, 500, "Persistence error")

    def _json_body() -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError("Request content must be application/json")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data

    def _filters() -> FilterSpec:
        return FilterSpec.from_mapping(request.args)

    def _entry_result(entry, status: int = 200):
        return _success({"entry": entry.to_dict(), "persisted": ledger.last_write_ok}, status)

    def _csv(text: str, filename: str) -> Response:
        return Response(
            text,
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/entries")
    def list_entries():
        filters = _filters()
        rows = ledger.list(filters, SortKey.parse(request.args.get("sort")))
        return _success({
            "items": [row.to_dict() for row in rows],
            "totals": ledger.totals(filters).to_dict(),
        })

    @app.delete("/entries")
    def clear_entries():
        persisted = ledger.clear_all()
        return _success({"persisted": persisted})

    @app.post("/entries/<entry_type>")
    def create_entry(entry_type: str):
        entry = ledger.add(entry_type, _json_body())
        return _entry_result(entry, 201)

    @app.put("/entries/<entry_type>/<int:index>")
    def update_entry(entry_type: str, index: int):
        entry = ledger.edit(entry_type, index, _json_body())
        return _entry_result(entry)

    @app.delete("/entries/<entry_type>/<int:index>")
    def delete_entry(entry_type: str, index: int):
        entry = ledger.delete(entry_type, index)
        return _entry_result(entry)

    @app.put("/entries/<entry_type>/id/<entry_id>")
    def update_entry_by_id(entry_type: str, entry_id: str):
        entry = ledger.edit_by_id(entry_type, entry_id, _json_body())
        return _entry_result(entry)

    @app.delete("/entries/<entry_type>/id/<entry_id>")
    def delete_entry_by_id(entry_type: str, entry_id: str):
        entry = ledger.delete_by_id(entry_type, entry_id)
        return _entry_result(entry)

    @app.get("/totals")
    def totals():
        return _success(ledger.totals().to_dict())

    @app.get("/recent")
    def recent():
        limit = request.args.get("limit", default=5, type=int)
        rows = ledger.recent(limit)
        return _success({
            "items": [row.to_dict() for row in rows],
            "totals": ledger.totals().to_dict(),
        })

    @app.get("/report")
    def report():
        return _success(ledger.report(_filters()).to_dict())

    @app.get("/export/history.csv")
    def export_history():
        filters = _filters()
        sort = request.args.get("sort") or None
        text = ledger.export_csv("history", filters, sort)
        return _csv(text, ledger.export_filename("history"))

    @app.get("/export/report.csv")
    def export_report():
        filters = _filters()
        text = ledger.export_csv("report", filters)
        return _csv(text, ledger.export_filename("report", filters.month))

    @app.get("/pending-edit")
    def get_pending_edit():
        target = ledger.pending_edit()
        return _success({"pending": target.to_dict() if target else None})

    @app.put("/pending-edit")
    def put_pending_edit():
        payload = _json_body()
        index = payload.get("index")
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValidationError("index must be an integer")
        pending = ledger.request_edit(str(payload.get("type", "")), index)
        return _success(pending.to_dict())

    @app.delete("/pending-edit")
    def cancel_pending_edit():
        ledger.cancel_edit()
        return _success({}, 204)

    @app.post("/submit/<entry_type>")
    def submit(entry_type: str):
        result = ledger.submit(entry_type, _json_body())
        return _success(result.to_dict(), 200 if result.updated else 201)

    return app
