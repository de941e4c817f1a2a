from decimal import Decimal

import pytest

from conftest import make_tx
from matcher import TransactionMatcher, normalize_transactions, parse_amount, parse_timestamp
from models import PaymentClaim, ProviderTransaction


CLAIM = PaymentClaim(amount="100.00", currency="USD", timestamp="2024-01-01T00:00:00Z", status="COMPLETED")


@pytest.fixture
def matcher():
    return TransactionMatcher()


def test_first_satisfying_transaction_is_selected(matcher):
    candidates = [
        make_tx(amount="99.00", payment_id="too-small"),
        make_tx(amount="150.00", payment_id="ok"),
    ]
    outcome = matcher.match(CLAIM, candidates)

    assert outcome.matched
    assert outcome.transaction.payment_id == "ok"
    assert str(outcome.transaction.amount) == "150.00"


def test_ties_are_broken_by_provider_order(matcher):
    candidates = [
        make_tx(amount="500.00", payment_id="first"),
        make_tx(amount="100.00", payment_id="exact"),
    ]
    assert matcher.match(CLAIM, candidates).transaction.payment_id == "first"


def test_sent_transaction_never_matches(matcher):
    assert not matcher.match(CLAIM, [make_tx(type="sent")]).matched


@pytest.mark.parametrize("amount,expected", [
    ("100.00", True),
    ("100", True),
    ("99.99", False),
    ("101.00", True),
    ("100000.00", True),
])
def test_amount_is_a_lower_bound(matcher, amount, expected):
    assert matcher.match(CLAIM, [make_tx(amount=amount)]).matched is expected


@pytest.mark.parametrize("currency", ["EUR", "usd", "US", ""])
def test_currency_must_match_exactly(matcher, currency):
    assert not matcher.match(CLAIM, [make_tx(currency=currency)]).matched


@pytest.mark.parametrize("status", ["PENDING", "completed", "ERROR"])
def test_status_must_match_exactly(matcher, status):
    assert not matcher.match(CLAIM, [make_tx(status=status)]).matched


def test_claim_status_defaults_to_completed(matcher):
    claim = PaymentClaim(amount="10", currency="USD", timestamp="2024-01-01T00:00:00Z")
    assert claim.status == "COMPLETED"
    assert matcher.match(claim, [make_tx()]).matched


def test_custom_claim_status_is_honoured(matcher):
    claim = PaymentClaim(amount="10", currency="USD", timestamp="2024-01-01T00:00:00Z", status="PENDING")
    assert matcher.match(claim, [make_tx(status="PENDING")]).matched
    assert not matcher.match(claim, [make_tx(status="COMPLETED")]).matched


@pytest.mark.parametrize("date,expected", [
    ("2024-01-01T00:00:00Z", True),
    ("2023-12-31T23:59:59Z", False),
    ("2024-01-01T00:00:01Z", True),
    ("2030-01-01T00:00:00Z", True),
    ("2024-01-01T01:00:00+01:00", True),
    ("2024-01-01T00:59:59+01:00", False),
    ("2024-01-01T00:00:00", True),
])
def test_transaction_must_not_predate_claim(matcher, date, expected):
    assert matcher.match(CLAIM, [make_tx(date=date)]).matched is expected


@pytest.mark.parametrize("amount", ["abc", "", "NaN", "Infinity", "1.2.3", "1,5", "0,5"])
def test_unparseable_claim_amount_is_no_match(matcher, amount):
    claim = PaymentClaim(amount=amount, currency="USD", timestamp="2024-01-01T00:00:00Z")
    assert not matcher.match(claim, [make_tx()]).matched


def test_decimal_comma_claim_is_not_read_as_another_number(matcher):
    claim = PaymentClaim(amount="1,5", currency="USD", timestamp="2024-01-01T00:00:00Z")
    assert not matcher.match(claim, [make_tx(amount="20.00")]).matched


def test_unparseable_claim_timestamp_is_no_match(matcher):
    claim = PaymentClaim(amount="1", currency="USD", timestamp="yesterday")
    assert not matcher.match(claim, [make_tx()]).matched


def test_unparseable_transaction_date_is_skipped(matcher):
    candidates = [make_tx(date="not-a-date", payment_id="bad"), make_tx(payment_id="good")]
    assert matcher.match(CLAIM, candidates).transaction.payment_id == "good"


def test_placeholder_records_never_match(matcher):
    placeholder = ProviderTransaction.placeholder("broken")
    assert placeholder.is_placeholder
    assert not matcher.match(PaymentClaim(amount="0", currency="", timestamp="1970-01-01T00:00:00Z",
                                          status="ERROR"), [placeholder]).matched


def test_empty_candidates_is_no_match(matcher):
    assert not matcher.match(CLAIM, []).matched


def test_normalize_replaces_bad_records_with_placeholders():
    def parse(raw):
        return make_tx(amount=raw["amount"], payment_id=raw["id"])

    result = normalize_transactions([{"id": "a", "amount": "1.00"}, {"id": "b"}, "junk"], parse)

    assert [t.payment_id for t in result] == ["a", "b", ""]
    assert not result[0].is_placeholder
    assert result[1].is_placeholder
    assert result[2].is_placeholder


def test_parse_helpers():
    assert parse_amount("1,234.50") is None
    assert parse_amount(" 12.50 ") == Decimal("12.50")
    assert parse_amount(Decimal("3")) == Decimal("3")
    assert parse_amount("nan") is None
    assert parse_timestamp("2024-01-01T00:00:00Z").utcoffset().total_seconds() == 0
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None
