from concurrent.futures import ThreadPoolExecutor

import pytest

from solar_quote_engine.errors import (
    OrganizationNotFoundError,
    QuoteCreationError,
    QuoteTotalsMismatchError,
    TransactionConflictError,
)
from solar_quote_engine.models.quote import LineItem, QuoteDraft, Section
from solar_quote_engine.pricing import apply_totals
from solar_quote_engine.quote_store import InMemoryQuoteStore, _InMemoryTransaction
from solar_quote_engine.sequencer import QuoteSequencer, format_quote_number


def priced_draft() -> QuoteDraft:
    item = LineItem(id="l1", name="Panel 550W", quantity=9, unit_price=180, tax_rate=23)
    return apply_totals(QuoteDraft(sections=[Section(id="s1", name="Equipment", items=[item])]))


def test_format_quote_number_pads_to_five_digits():
    assert format_quote_number("QT", 1) == "QT-00001"
    assert format_quote_number("SOL", 105) == "SOL-00105"
    assert format_quote_number("QT", 123456) == "QT-123456"


def test_first_quote_uses_default_prefix_and_start():
    store = InMemoryQuoteStore()
    store.add_organization("org-1")

    quote = QuoteSequencer(store).create_quote("org-1", priced_draft())

    assert quote.number == "QT-00001"
    assert quote.org_id == "org-1"
    assert quote.total == pytest.approx(1992.6)
    assert store.get_organization("org-1")["quotesCount"] == 1
    assert store.get_quote("org-1", quote.id) == quote


def test_custom_prefix_and_start_number():
    store = InMemoryQuoteStore()
    store.add_organization("org-1", prefix="SOL", start_number=100, quotes_count=5)

    quote = QuoteSequencer(store).create_quote("org-1", priced_draft())

    assert quote.number == "SOL-00105"
    assert store.get_organization("org-1")["quotesCount"] == 6


def test_missing_organization_persists_nothing():
    store = InMemoryQuoteStore()

    with pytest.raises(OrganizationNotFoundError):
        QuoteSequencer(store).create_quote("ghost", priced_draft())

    assert store.get_organization("ghost") is None
    assert store.list_quotes("ghost") == []


def test_conflicting_commit_is_retried_with_fresh_counter(monkeypatch):
    store = InMemoryQuoteStore()
    store.add_organization("org-1", quotes_count=40)
    sequencer = QuoteSequencer(store)
    run_transaction = store.run_transaction
    rivals = []

    def racing(fn):
        def with_rival(transaction):
            result = fn(transaction)
            if not rivals:
                rivals.append(None)
                rivals[0] = sequencer.create_quote("org-1", priced_draft())
            return result

        return run_transaction(with_rival)

    monkeypatch.setattr(store, "run_transaction", racing)

    quote = sequencer.create_quote("org-1", priced_draft())

    assert rivals[0].number == "QT-00041"
    assert quote.number == "QT-00042"
    assert store.get_organization("org-1")["quotesCount"] == 42
    assert len(store.list_quotes("org-1")) == 2


def test_concurrent_creations_get_unique_consecutive_numbers():
    workers = 20
    store = InMemoryQuoteStore(max_attempts=workers + 5)
    store.add_organization("org-1")
    sequencer = QuoteSequencer(store)
    draft = priced_draft()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        quotes = list(pool.map(lambda _: sequencer.create_quote("org-1", draft), range(workers)))

    numbers = sorted(quote.number for quote in quotes)
    assert numbers == [format_quote_number("QT", seq) for seq in range(1, workers + 1)]
    assert store.get_organization("org-1")["quotesCount"] == workers


def test_exhausted_retries_raise_creation_error(monkeypatch):
    store = InMemoryQuoteStore(max_attempts=3)
    store.add_organization("org-1", quotes_count=7)

    def always_conflict(self):
        raise TransactionConflictError("counter moved")

    monkeypatch.setattr(_InMemoryTransaction, "commit", always_conflict)

    with pytest.raises(QuoteCreationError):
        QuoteSequencer(store).create_quote("org-1", priced_draft())

    assert store.get_organization("org-1")["quotesCount"] == 7
    assert store.list_quotes("org-1") == []


def test_stale_totals_are_rejected_before_numbering():
    store = InMemoryQuoteStore()
    store.add_organization("org-1")
    draft = priced_draft()

    with pytest.raises(QuoteTotalsMismatchError):
        QuoteSequencer(store).create_quote("org-1", draft.model_copy(update={"total": 1.0}))

    assert store.get_organization("org-1")["quotesCount"] == 0
