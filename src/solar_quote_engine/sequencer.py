from __future__ import annotations

import logging
from datetime import datetime

from .errors import OrganizationNotFoundError, QuoteCreationError, TransactionConflictError
from .models.organization import OrganizationCounter
from .models.quote import Quote, QuoteDraft
from .pricing import verify_totals
from .quote_store import QuoteStore, QuoteTransaction

logger = logging.getLogger(__name__)

SEQUENCE_WIDTH = 5


def format_quote_number(prefix: str, sequence: int) -> str:
    return f"{prefix}-{sequence:0{SEQUENCE_WIDTH}d}"


class QuoteSequencer:
    """Assigns organization-scoped quote numbers.

    The counter read, its increment and the quote insert happen in one
    store transaction; nothing about the counter is cached between calls.
    """

    def __init__(self, store: QuoteStore) -> None:
        self._store = store

    def next_number(self, transaction: QuoteTransaction, org_id: str) -> str:
        data = transaction.get_organization(org_id)
        if data is None:
            raise OrganizationNotFoundError(org_id)
        counter = OrganizationCounter.from_document(org_id, data)
        number = format_quote_number(counter.prefix, counter.next_sequence)
        transaction.update_organization(
            org_id,
            {"quotesCount": counter.quotes_count + 1, "updatedAt": datetime.utcnow()},
        )
        return number

    def create_quote(self, org_id: str, draft: QuoteDraft) -> Quote:
        verify_totals(draft)

        def create(transaction: QuoteTransaction) -> Quote:
            number = self.next_number(transaction, org_id)
            now = datetime.utcnow()
            quote = Quote(
                **draft.model_dump(include=set(QuoteDraft.model_fields)),
                id=transaction.new_quote_id(org_id),
                org_id=org_id,
                number=number,
                created_at=now,
                updated_at=now,
            )
            transaction.create_quote(quote)
            return quote

        try:
            quote = self._store.run_transaction(create)
        except TransactionConflictError as exc:
            logger.error(
                "Quote numbering retries exhausted",
                extra={"org_id": org_id, "error": str(exc)},
            )
            raise QuoteCreationError("Failed to create quote") from exc

        logger.info(
            "Created quote",
            extra={"org_id": org_id, "quote_id": quote.id, "number": quote.number, "total": quote.total},
        )
        return quote


__all__ = ["QuoteSequencer", "format_quote_number"]
