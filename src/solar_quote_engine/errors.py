from __future__ import annotations


class QuoteEngineError(Exception):
    """Domain error that can be translated to an HTTP response."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class OrganizationNotFoundError(QuoteEngineError):
    status_code = 404

    def __init__(self, org_id: str) -> None:
        super().__init__(f"Organization not found: {org_id}")
        self.org_id = org_id


class QuoteNotFoundError(QuoteEngineError):
    status_code = 404

    def __init__(self, org_id: str, quote_id: str) -> None:
        super().__init__(f"Quote not found: {org_id}/{quote_id}")
        self.org_id = org_id
        self.quote_id = quote_id


class TransactionConflictError(QuoteEngineError):
    """A transaction read state that changed before it could commit."""

    status_code = 409


class QuoteCreationError(QuoteEngineError):
    status_code = 503


class InvalidStatusTransitionError(QuoteEngineError):
    status_code = 409

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move quote from {current} to {target}")
        self.current = current
        self.target = target


class QuoteTotalsMismatchError(QuoteEngineError):
    status_code = 422


__all__ = [
    "QuoteEngineError",
    "OrganizationNotFoundError",
    "QuoteNotFoundError",
    "TransactionConflictError",
    "QuoteCreationError",
    "InvalidStatusTransitionError",
    "QuoteTotalsMismatchError",
]
