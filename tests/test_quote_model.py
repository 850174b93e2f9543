"""
Unit tests for the quote state machine and pricing
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
import uuid

from travel_crm.core.errors import ImmutableQuote, InvalidStateError
from travel_crm.models.quote import Quote, QuoteStatus, calculate_total_price


def make_quote(status: QuoteStatus = QuoteStatus.DRAFT, valid_for_days: int = 30, **overrides) -> Quote:
    quote = Quote(
        tenant_id=uuid.uuid4(),
        quote_number="Q2026-000001",
        itinerary_id=uuid.uuid4(),
        agent_id=uuid.uuid4(),
        customer_id=uuid.uuid4(),
        status=status,
        valid_until=datetime.utcnow() + timedelta(days=valid_for_days),
        **overrides,
    )
    quote.recalculate_total()
    return quote


def test_calculate_total_price():
    total = calculate_total_price(Decimal("1000"), Decimal("200"), Decimal("50"), Decimal("50"))
    assert total == Decimal("1200.00")


def test_calculate_total_price_treats_missing_components_as_zero():
    assert calculate_total_price(Decimal("99.995")) == Decimal("100.00")


def test_apply_pricing_recomputes_total():
    quote = make_quote()
    quote.apply_pricing({
        "base_cost": Decimal("1000"),
        "markup": {"percentage": Decimal("20"), "amount": Decimal("200")},
        "taxes": {"amount": Decimal("50")},
        "agent_discount": {"amount": Decimal("50")},
    })
    assert quote.total_price == Decimal("1200.00")
    assert quote.markup_percentage == Decimal("20")


def test_apply_pricing_ignores_supplied_total():
    quote = make_quote(base_cost=Decimal("500"))
    quote.apply_pricing({"taxes": {"amount": Decimal("25")}, "total_price": Decimal("1")})
    assert quote.total_price == Decimal("525.00")


def test_partial_pricing_update_merges_with_existing():
    quote = make_quote()
    quote.apply_pricing({"base_cost": Decimal("1000"), "markup": {"amount": Decimal("100")}})
    quote.apply_pricing({"taxes": {"amount": Decimal("10")}})
    assert quote.total_price == Decimal("1110.00")
    assert quote.pricing["markup"]["amount"] == Decimal("100.00")


def test_send_only_from_draft():
    quote = make_quote()
    quote.transition_to_sent()
    assert quote.status == QuoteStatus.SENT
    assert quote.sent_at is not None

    with pytest.raises(InvalidStateError):
        quote.transition_to_sent()


def test_record_view_only_moves_sent_quotes():
    draft = make_quote()
    assert draft.record_view() is False
    assert draft.status == QuoteStatus.DRAFT

    sent = make_quote(QuoteStatus.SENT)
    assert sent.record_view() is True
    assert sent.status == QuoteStatus.VIEWED
    assert sent.viewed_at is not None
    assert sent.record_view() is False


@pytest.mark.parametrize("status", [QuoteStatus.SENT, QuoteStatus.VIEWED])
def test_accept_from_response_sources(status):
    quote = make_quote(status)
    quote.transition_to_accepted()
    assert quote.status == QuoteStatus.ACCEPTED
    assert quote.accepted_at is not None


def test_accept_draft_requires_relaxed_rule():
    quote = make_quote()
    with pytest.raises(InvalidStateError):
        quote.transition_to_accepted(relaxed=False)

    quote.transition_to_accepted(relaxed=True)
    assert quote.status == QuoteStatus.ACCEPTED


@pytest.mark.parametrize("status", [QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED])
def test_terminal_quotes_cannot_respond_even_when_relaxed(status):
    quote = make_quote(status)
    with pytest.raises(InvalidStateError):
        quote.transition_to_accepted(relaxed=True)
    with pytest.raises(InvalidStateError):
        quote.transition_to_rejected(relaxed=True)


def test_reject_stores_reason_and_appends_to_notes():
    quote = make_quote(QuoteStatus.VIEWED, notes="Family of four")
    quote.transition_to_rejected(reason="Too expensive")
    assert quote.status == QuoteStatus.REJECTED
    assert quote.rejection_reason == "Too expensive"
    assert quote.notes == "Family of four\n\nRejection reason: Too expensive"


@pytest.mark.parametrize("status", [QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED])
def test_terminal_quotes_are_immutable(status):
    quote = make_quote(status)
    with pytest.raises(ImmutableQuote):
        quote.ensure_editable()


def test_refresh_expiry_moves_non_terminal_quotes():
    quote = make_quote(QuoteStatus.SENT, valid_for_days=-1)
    assert quote.refresh_expiry() is True
    assert quote.status == QuoteStatus.EXPIRED
    assert quote.expired_at is not None


def test_refresh_expiry_leaves_terminal_and_valid_quotes():
    accepted = make_quote(QuoteStatus.ACCEPTED, valid_for_days=-1)
    assert accepted.refresh_expiry() is False
    assert accepted.status == QuoteStatus.ACCEPTED

    valid = make_quote(QuoteStatus.SENT)
    assert valid.refresh_expiry() is False


def test_accepted_quote_cannot_be_deleted():
    assert make_quote(QuoteStatus.ACCEPTED).can_delete() is False
    assert make_quote(QuoteStatus.REJECTED).can_delete() is True
