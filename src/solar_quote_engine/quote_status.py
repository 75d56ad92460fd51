from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping

from .errors import InvalidStatusTransitionError
from .models.quote import Quote, QuoteStatus

TERMINAL_STATUSES = frozenset({QuoteStatus.accepted, QuoteStatus.rejected, QuoteStatus.expired})

# Statuses a quote may be saved with when it is first numbered.
INITIAL_STATUSES = frozenset({QuoteStatus.draft, QuoteStatus.pending_approval})

ALLOWED_TRANSITIONS: Mapping[QuoteStatus, frozenset[QuoteStatus]] = {
    QuoteStatus.draft: frozenset({QuoteStatus.pending_approval, QuoteStatus.approved}),
    QuoteStatus.pending_approval: frozenset({QuoteStatus.approved, QuoteStatus.draft, QuoteStatus.rejected}),
    QuoteStatus.approved: frozenset({QuoteStatus.sent}),
    QuoteStatus.sent: frozenset({QuoteStatus.viewed, QuoteStatus.accepted, QuoteStatus.rejected}),
    QuoteStatus.viewed: frozenset({QuoteStatus.accepted, QuoteStatus.rejected}),
    QuoteStatus.accepted: frozenset(),
    QuoteStatus.rejected: frozenset(),
    QuoteStatus.expired: frozenset(),
}

STATUS_TIMESTAMPS: Mapping[QuoteStatus, str] = {
    QuoteStatus.approved: "approved_at",
    QuoteStatus.sent: "sent_at",
    QuoteStatus.viewed: "viewed_at",
    QuoteStatus.accepted: "accepted_at",
    QuoteStatus.rejected: "rejected_at",
}

STATUS_LABELS: Mapping[QuoteStatus, str] = {
    QuoteStatus.draft: "Draft",
    QuoteStatus.pending_approval: "Pending Approval",
    QuoteStatus.approved: "Approved",
    QuoteStatus.sent: "Sent",
    QuoteStatus.viewed: "Viewed",
    QuoteStatus.accepted: "Accepted",
    QuoteStatus.rejected: "Rejected",
    QuoteStatus.expired: "Expired",
}


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    if target == QuoteStatus.expired:
        return current not in TERMINAL_STATUSES
    return target in ALLOWED_TRANSITIONS[current]


def transition_status(
    quote: Quote,
    target: QuoteStatus,
    *,
    at: datetime | None = None,
    actor: str | None = None,
    reason: str | None = None,
) -> Quote:
    """Return a copy of ``quote`` moved to ``target``, stamped with ``at``."""
    if not can_transition(quote.status, target):
        raise InvalidStatusTransitionError(quote.status.value, target.value)

    at = at or datetime.utcnow()
    updates: dict[str, object] = {"status": target, "updated_at": at}
    timestamp_field = STATUS_TIMESTAMPS.get(target)
    if timestamp_field:
        updates[timestamp_field] = at
    if target == QuoteStatus.approved and actor:
        updates["approved_by"] = actor
    if target == QuoteStatus.rejected and reason:
        updates["rejection_reason"] = reason
    return quote.model_copy(update=updates)


def status_fields(target: QuoteStatus) -> tuple[str, ...]:
    """Quote fields that ``transition_status`` may change when moving to ``target``."""
    fields = ["status"]
    if target in STATUS_TIMESTAMPS:
        fields.append(STATUS_TIMESTAMPS[target])
    if target == QuoteStatus.approved:
        fields.append("approved_by")
    if target == QuoteStatus.rejected:
        fields.append("rejection_reason")
    return tuple(fields)


def is_expired(quote: Quote, now: datetime) -> bool:
    """Whether validity has lapsed; moving the quote to expired is up to the caller."""
    if quote.valid_until is None or quote.status in TERMINAL_STATUSES:
        return False
    return _naive_utc(now) > _naive_utc(quote.valid_until)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def status_label(status: QuoteStatus) -> str:
    return STATUS_LABELS[status]


__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "INITIAL_STATUSES",
    "can_transition",
    "transition_status",
    "status_fields",
    "is_expired",
    "status_label",
]
