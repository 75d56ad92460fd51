from datetime import datetime, timedelta, timezone

import pytest

from solar_quote_engine.errors import InvalidStatusTransitionError
from solar_quote_engine.models.quote import Quote, QuoteStatus
from solar_quote_engine.quote_status import can_transition, is_expired, status_label, transition_status


def quote(status=QuoteStatus.draft, valid_until=None) -> Quote:
    return Quote(id="q1", org_id="org-1", number="QT-00001", status=status, valid_until=valid_until)


def test_happy_path_stamps_each_step():
    at = datetime(2024, 5, 1, 9, 30)
    current = quote()

    current = transition_status(current, QuoteStatus.approved, at=at, actor="manager-1")
    assert current.approved_by == "manager-1"
    assert current.approved_at == at

    current = transition_status(current, QuoteStatus.sent, at=at + timedelta(hours=1))
    current = transition_status(current, QuoteStatus.viewed, at=at + timedelta(hours=2))
    current = transition_status(current, QuoteStatus.accepted, at=at + timedelta(days=1))

    assert current.status == QuoteStatus.accepted
    assert current.sent_at == at + timedelta(hours=1)
    assert current.viewed_at == at + timedelta(hours=2)
    assert current.accepted_at == current.updated_at


def test_rejection_keeps_reason():
    rejected = transition_status(quote(QuoteStatus.sent), QuoteStatus.rejected, reason="Too expensive")

    assert rejected.rejection_reason == "Too expensive"
    assert rejected.rejected_at is not None


@pytest.mark.parametrize(
    "current, target",
    [
        (QuoteStatus.draft, QuoteStatus.sent),
        (QuoteStatus.approved, QuoteStatus.draft),
        (QuoteStatus.accepted, QuoteStatus.rejected),
        (QuoteStatus.expired, QuoteStatus.expired),
    ],
)
def test_invalid_transitions_raise(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidStatusTransitionError):
        transition_status(quote(current), target)


def test_any_open_quote_can_expire():
    for status in (QuoteStatus.draft, QuoteStatus.pending_approval, QuoteStatus.sent, QuoteStatus.viewed):
        assert can_transition(status, QuoteStatus.expired)


def test_is_expired_handles_aware_and_naive_times():
    valid_until = datetime(2024, 6, 1)
    open_quote = quote(QuoteStatus.sent, valid_until=valid_until)

    assert not is_expired(open_quote, datetime(2024, 5, 31, 23, 0))
    assert is_expired(open_quote, datetime(2024, 6, 2, tzinfo=timezone.utc))
    assert not is_expired(quote(QuoteStatus.accepted, valid_until=valid_until), datetime(2025, 1, 1))
    assert not is_expired(quote(QuoteStatus.sent), datetime(2025, 1, 1))


def test_status_labels():
    assert status_label(QuoteStatus.pending_approval) == "Pending Approval"
