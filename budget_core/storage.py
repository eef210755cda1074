"""Persistence utilities for the ledger core services."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import PersistenceError, StorageUnavailable, ValidationError
from .models import COLLECTION_KEYS, Entry, PendingEdit

logger = logging.getLogger(__name__)

PENDING_EDIT_KEY = "pending_edit"
KEY_PATTERN = re.compile(r"^[a-z_]{1,40}$")


def _check_key(key: str) -> str:
    if not KEY_PATTERN.fullmatch(key):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class JSONStorage:
    """Simple file-based JSON blob storage with crash-safe writes."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)
        try:
            self._base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            # Reads and writes will report the failure; construction stays usable.
            logger.warning("Unable to create data directory %s: %s", self._base_path, exc)

    def _path(self, key: str) -> Path:
        return self._base_path / f"{_check_key(key)}.json"

    def load(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except json.JSONDecodeError as exc:
            raise StorageUnavailable(f"Corrupted JSON data in {path}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageUnavailable(f"Unable to read from {path}") from exc

    def save(self, key: str, payload: Any) -> None:
        path = self._path(key)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
                handle.flush()
            # Use replace for atomic move on POSIX; ensures crash-safe persistence.
            temp_path.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageUnavailable(f"Unable to write to {path}") from exc

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailable(f"Unable to remove {path}") from exc

    @property
    def base_path(self) -> Path:
        return self._base_path


class MemoryStorage:
    """In-process blob storage holding serialised JSON text per key."""

    def __init__(self, blobs: Optional[Dict[str, str]] = None) -> None:
        self.blobs: Dict[str, str] = dict(blobs or {})

    def load(self, key: str) -> Any:
        raw = self.blobs.get(_check_key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageUnavailable(f"Corrupted JSON data under {key!r}") from exc

    def save(self, key: str, payload: Any) -> None:
        try:
            self.blobs[_check_key(key)] = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise StorageUnavailable(f"Unable to serialise {key!r}") from exc

    def remove(self, key: str) -> None:
        self.blobs.pop(_check_key(key), None)


class RecordStore:
    """Keyed store for the two entry collections and the pending edit.

    The store enforces no schema: callers validate before writing. Reads never
    raise; a missing, unreadable or corrupt collection is returned as empty.
    Writes replace the whole collection and report failure by returning False.
    """

    def __init__(self, backend: Any) -> None:
        self._backend = backend
        # Outcome of the most recent collection write; failed writes are not retried.
        self.last_write_ok = True

    @property
    def backend(self) -> Any:
        return self._backend

    # Collections -----------------------------------------------------------
    def get(self, collection: str) -> List[Entry]:
        key = self._collection_key(collection)
        try:
            payload = self._backend.load(key)
        except PersistenceError as exc:
            logger.warning("Treating %s as empty: %s", key, exc)
            return []
        if payload is None:
            return []
        if not isinstance(payload, list):
            logger.warning("Treating %s as empty: expected a list payload", key)
            return []
        return [Entry.from_dict(item) for item in payload if isinstance(item, dict)]

    def put(self, collection: str, entries: Iterable[Entry]) -> bool:
        key = self._collection_key(collection)
        records = [entry.to_dict() for entry in entries]
        try:
            self._backend.save(key, records)
        except PersistenceError as exc:
            logger.error("Dropped write of %d records to %s: %s", len(records), key, exc)
            self.last_write_ok = False
            return False
        logger.debug("Persisted %d records to %s", len(records), key)
        self.last_write_ok = True
        return True

    def clear(self, collection: str) -> bool:
        key = self._collection_key(collection)
        try:
            self._backend.remove(key)
        except PersistenceError as exc:
            logger.error("Unable to clear %s: %s", key, exc)
            self.last_write_ok = False
            return False
        self.last_write_ok = True
        return True

    # Pending edit ----------------------------------------------------------
    def get_pending(self) -> Optional[PendingEdit]:
        try:
            payload = self._backend.load(PENDING_EDIT_KEY)
        except PersistenceError as exc:
            logger.warning("Ignoring unreadable pending edit: %s", exc)
            return None
        if not isinstance(payload, dict):
            return None
        try:
            return PendingEdit.from_dict(payload)
        except KeyError:
            logger.warning("Ignoring malformed pending edit payload")
            return None

    def put_pending(self, pending: PendingEdit) -> bool:
        try:
            self._backend.save(PENDING_EDIT_KEY, pending.to_dict())
        except PersistenceError as exc:
            logger.error("Unable to record pending edit: %s", exc)
            return False
        return True

    def clear_pending(self) -> bool:
        try:
            self._backend.remove(PENDING_EDIT_KEY)
        except PersistenceError as exc:
            logger.error("Unable to clear pending edit: %s", exc)
            return False
        return True

    @staticmethod
    def _collection_key(collection: str) -> str:
        try:
            return COLLECTION_KEYS[collection]
        except KeyError as exc:
            raise ValidationError(f"Unknown collection: {collection!r}") from exc
