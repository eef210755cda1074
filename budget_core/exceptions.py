"""Domain-specific exceptions for the ledger core services."""

class ValidationError(ValueError):
    """Raised when provided data does not meet validation requirements."""


class RecordNotFoundError(LookupError):
    """Raised when an expense or income entry cannot be located."""


class EntryIndexError(RecordNotFoundError, IndexError):
    """Raised when a positional index falls outside the current collection."""


class EditTypeMismatchError(ValidationError):
    """Raised when a pending edit targets a different collection than the submit."""


class PersistenceError(IOError):
    """Raised when the persistence layer encounters unrecoverable issues."""


class StorageUnavailable(PersistenceError):
    """Raised by storage backends that are inaccessible or hold unparsable data."""
