"""Exceptions raised by the ledger engine."""


class LedgerError(Exception):
    """Base class for all ledger engine errors."""


class ParseError(LedgerError):
    """An input file could not be read as a table."""


class StoreError(LedgerError):
    """A document store operation failed (transport, permission, missing record)."""

    def __init__(self, message: str, collection: str | None = None, record_id: str | None = None):
        super().__init__(message)
        self.collection = collection
        self.record_id = record_id
