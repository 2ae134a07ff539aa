# Overview: Error taxonomy for tab and settlement operations.

from __future__ import annotations


class LedgerError(Exception):
    """Base class for errors raised by the ledger engine."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LedgerError):
    """Referenced client, catalog item or transaction does not exist."""


class InvariantViolation(LedgerError):
    """Operation would lose money or break a settlement rule."""


class ImmutableRecordError(LedgerError):
    """Raised when an archived transaction is updated or deleted."""
