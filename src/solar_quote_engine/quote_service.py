from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from .errors import InvalidStatusTransitionError, QuoteNotFoundError
from .models.quote import Quote, QuoteDraft, QuoteStatus, Section
from .pricing import apply_totals, verify_totals
from .pubsub_client import QuoteEventPublisher
from .quote_status import INITIAL_STATUSES, status_fields, transition_status
from .quote_store import QuoteStore
from .sequencer import QuoteSequencer

logger = logging.getLogger(__name__)

SECTION_FIELDS = ("sections", "subtotal", "total_discount", "tax_amount", "total")


class QuoteService:
    """Persists manually built quotes and later edits to any quote.

    Every write recomputes totals from the line items first and verifies
    them, so a stored quote always agrees with its own lines.
    """

    def __init__(
        self,
        store: QuoteStore,
        *,
        sequencer: QuoteSequencer | None = None,
        publisher: QuoteEventPublisher | None = None,
    ) -> None:
        self._store = store
        self._sequencer = sequencer or QuoteSequencer(store)
        self._publisher = publisher

    def create_quote(self, org_id: str, draft: QuoteDraft) -> Quote:
        if draft.status not in INITIAL_STATUSES:
            raise InvalidStatusTransitionError("new", draft.status.value)
        quote = self._sequencer.create_quote(org_id, apply_totals(draft))
        self._publish("publish_quote_created", quote)
        return quote

    def get_quote(self, org_id: str, quote_id: str) -> Quote:
        quote = self._store.get_quote(org_id, quote_id)
        if quote is None:
            raise QuoteNotFoundError(org_id, quote_id)
        return quote

    def list_quotes(self, org_id: str, *, status: QuoteStatus | None = None) -> list[Quote]:
        return self._store.list_quotes(org_id, status=status)

    def update_sections(self, org_id: str, quote_id: str, sections: Sequence[Section]) -> Quote:
        current = self.get_quote(org_id, quote_id)
        updated = apply_totals(current.model_copy(update={"sections": list(sections)}))
        verify_totals(updated)
        return self._store.update_quote(updated, SECTION_FIELDS)

    def change_status(
        self,
        org_id: str,
        quote_id: str,
        target: QuoteStatus,
        *,
        actor: str | None = None,
        reason: str | None = None,
        at: datetime | None = None,
    ) -> Quote:
        current = self.get_quote(org_id, quote_id)
        updated = self._store.update_quote(
            transition_status(current, target, at=at, actor=actor, reason=reason),
            status_fields(target),
        )
        logger.info(
            "Quote status changed",
            extra={
                "org_id": org_id,
                "quote_id": quote_id,
                "from_status": current.status.value,
                "to_status": target.value,
            },
        )
        self._publish("publish_status_changed", updated)
        return updated

    def _publish(self, method: str, quote: Quote) -> None:
        if not self._publisher:
            return
        try:
            getattr(self._publisher, method)(quote)
        except Exception as exc:
            logger.warning(
                "Publishing quote event failed (non-fatal)",
                exc_info=True,
                extra={"org_id": quote.org_id, "quote_id": quote.id, "error": str(exc)},
            )


__all__ = ["QuoteService"]
