"""Typed exception hierarchy for holding-ledger errors.

Every rejected ledger operation raises one of these. Each carries a
stable ``kind`` string (what API clients see) and a ``context`` dict
with the identifiers and amounts involved, so callers can report the
failure verbatim without parsing messages.
"""

from typing import Any


class LedgerError(Exception):
    """Base exception for all ledger operation failures."""

    kind = "LedgerError"

    def __init__(self, message: str, **context: Any):
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize as ``{"error", "message", "context"}`` with JSON-safe values."""
        return {
            "error": self.kind,
            "message": str(self),
            "context": {key: _json_safe(value) for key, value in self.context.items()},
        }


class LedgerValidationError(LedgerError, ValueError):
    """Malformed input: non-positive quantity, negative price, missing field."""

    kind = "ValidationError"


class InsufficientQuantityError(LedgerError):
    """A sell or consume asked for more than the holding's lots contain."""

    kind = "InsufficientQuantity"


class InsufficientFundsError(LedgerError):
    """A withdrawal or debit would drive the cash balance negative."""

    kind = "InsufficientFunds"


class NotFoundError(LedgerError):
    """Unknown account, holding, or lot."""

    kind = "NotFound"


class UnauthorizedError(LedgerError):
    """The caller does not own the account."""

    kind = "Unauthorized"


class PriceUnavailableError(LedgerError):
    """The price oracle failed, timed out, or returned no usable quote."""

    kind = "PriceUnavailable"


class ConcurrentModificationError(LedgerError):
    """The account changed since the caller read it. Re-read and retry."""

    kind = "ConcurrentModification"


def _json_safe(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
