from __future__ import annotations

import copy
import logging
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Mapping, Protocol, Tuple, TypeVar

from .errors import TransactionConflictError
from .models.quote import Quote, QuoteStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 5

# Fixed when the quote is numbered.
IMMUTABLE_QUOTE_FIELDS = frozenset({"id", "org_id", "number", "created_at", "updated_at"})


def check_updatable_fields(fields: Iterable[str]) -> frozenset[str]:
    fields = frozenset(fields)
    unknown = fields - set(Quote.model_fields)
    if unknown:
        raise ValueError(f"Unknown quote fields: {', '.join(sorted(unknown))}")
    immutable = fields & IMMUTABLE_QUOTE_FIELDS
    if immutable:
        raise ValueError(f"Quote fields cannot be updated: {', '.join(sorted(immutable))}")
    return fields


class QuoteTransaction(Protocol):
    """Read-modify-write unit scoped to one organization's counter and quotes."""

    def get_organization(self, org_id: str) -> Mapping[str, Any] | None:
        ...

    def update_organization(self, org_id: str, data: Mapping[str, Any]) -> None:
        ...

    def new_quote_id(self, org_id: str) -> str:
        ...

    def create_quote(self, quote: Quote) -> None:
        ...


class QuoteStore(Protocol):
    def run_transaction(self, fn: Callable[[QuoteTransaction], T]) -> T:
        ...

    def get_quote(self, org_id: str, quote_id: str) -> Quote | None:
        ...

    def update_quote(self, quote: Quote, fields: Iterable[str]) -> Quote:
        """Write only ``fields`` of ``quote``; every other stored field is kept."""
        ...

    def list_quotes(self, org_id: str, *, status: QuoteStatus | None = None, limit: int = 100) -> list[Quote]:
        ...


class _InMemoryTransaction:
    def __init__(self, store: "InMemoryQuoteStore") -> None:
        self._store = store
        self._read_versions: Dict[str, int] = {}
        self._org_writes: Dict[str, Dict[str, Any]] = {}
        self._quote_writes: list[Quote] = []

    def get_organization(self, org_id: str) -> Mapping[str, Any] | None:
        with self._store._lock:
            entry = self._store._organizations.get(org_id)
            if entry is None:
                self._read_versions[org_id] = 0
                return None
            version, data = entry
            self._read_versions[org_id] = version
            return copy.deepcopy(data)

    def update_organization(self, org_id: str, data: Mapping[str, Any]) -> None:
        self._org_writes.setdefault(org_id, {}).update(data)

    def new_quote_id(self, org_id: str) -> str:
        return uuid.uuid4().hex[:20]

    def create_quote(self, quote: Quote) -> None:
        self._quote_writes.append(quote)

    def commit(self) -> None:
        with self._store._lock:
            for org_id, version in self._read_versions.items():
                entry = self._store._organizations.get(org_id)
                current = entry[0] if entry else 0
                if current != version:
                    raise TransactionConflictError(f"Organization {org_id} changed during transaction")
            for org_id, changes in self._org_writes.items():
                version, data = self._store._organizations[org_id]
                self._store._organizations[org_id] = (version + 1, {**data, **changes})
            for quote in self._quote_writes:
                self._store._quotes[(quote.org_id, quote.id)] = quote


class InMemoryQuoteStore:
    """Thread-safe document store for local runs and tests.

    Transactions are optimistic: reads record a document version and commit
    fails with ``TransactionConflictError`` if any of them moved. The whole
    transaction function is then replayed, up to ``max_attempts`` times.
    """

    def __init__(self, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self._organizations: Dict[str, Tuple[int, Dict[str, Any]]] = {}
        self._quotes: Dict[Tuple[str, str], Quote] = {}
        self._lock = threading.Lock()
        self._max_attempts = max_attempts

    def add_organization(
        self,
        org_id: str,
        *,
        prefix: str = "QT",
        start_number: int = 1,
        quotes_count: int = 0,
        **fields: Any,
    ) -> None:
        data = {
            **fields,
            "settings": {"quotePrefix": prefix, "quoteStartNumber": start_number},
            "quotesCount": quotes_count,
        }
        with self._lock:
            self._organizations[org_id] = (1, data)

    def get_organization(self, org_id: str) -> Mapping[str, Any] | None:
        with self._lock:
            entry = self._organizations.get(org_id)
            return copy.deepcopy(entry[1]) if entry else None

    def run_transaction(self, fn: Callable[[QuoteTransaction], T]) -> T:
        for attempt in range(1, self._max_attempts + 1):
            transaction = _InMemoryTransaction(self)
            result = fn(transaction)
            try:
                transaction.commit()
            except TransactionConflictError:
                logger.info(
                    "Transaction conflict, retrying",
                    extra={"attempt": attempt, "max_attempts": self._max_attempts},
                )
                continue
            return result
        raise TransactionConflictError(f"Transaction failed after {self._max_attempts} attempts")

    def get_quote(self, org_id: str, quote_id: str) -> Quote | None:
        with self._lock:
            return self._quotes.get((org_id, quote_id))

    def update_quote(self, quote: Quote, fields: Iterable[str]) -> Quote:
        fields = check_updatable_fields(fields)
        key = (quote.org_id, quote.id)
        with self._lock:
            stored = self._quotes.get(key)
            if stored is None:
                raise KeyError(f"Unknown quote: {quote.org_id}/{quote.id}")
            changes = {field: getattr(quote, field) for field in fields}
            changes["updated_at"] = datetime.utcnow()
            stored = stored.model_copy(update=changes)
            self._quotes[key] = stored
            return stored

    def list_quotes(self, org_id: str, *, status: QuoteStatus | None = None, limit: int = 100) -> list[Quote]:
        with self._lock:
            quotes = [
                quote
                for (owner, _), quote in self._quotes.items()
                if owner == org_id and (status is None or quote.status == status)
            ]
        quotes.sort(key=lambda quote: quote.created_at, reverse=True)
        return quotes[:limit]


__all__ = [
    "QuoteStore",
    "QuoteTransaction",
    "InMemoryQuoteStore",
    "DEFAULT_MAX_ATTEMPTS",
    "IMMUTABLE_QUOTE_FIELDS",
    "check_updatable_fields",
]
