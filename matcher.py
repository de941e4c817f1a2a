# matcher.py - Decides whether a provider transaction substantiates a payment claim

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from models import NO_MATCH, RECEIVED, MatchOutcome, ProviderTransaction

logger = logging.getLogger(__name__)


def parse_amount(value):
    """Decimal for a numeric string, or None when it is not a finite number."""
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    return amount if amount.is_finite() else None


def parse_timestamp(value):
    """Aware UTC datetime for an ISO-8601 string, or None.

    A trailing 'Z' and naive timestamps are read as UTC.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_transactions(raw_items, parse):
    """Map raw provider records through `parse`.

    A record that fails to parse becomes a placeholder so one bad entry
    cannot block matching against the rest of the batch.
    """
    transactions = []
    for raw in raw_items:
        try:
            transactions.append(parse(raw))
        except Exception as e:
            raw_id = raw.get("id", "") if isinstance(raw, dict) else ""
            logger.warning("Skipping malformed provider record %r: %s", raw_id, e)
            transactions.append(ProviderTransaction.placeholder(raw_id))
    return transactions


class TransactionMatcher:
    """First-match search over provider transactions.

    A candidate matches when currency and status are equal, it was received,
    its amount is at least the claimed amount, and it is dated at or after
    the claim. Candidates are scanned in provider order with no ranking.
    """

    def match(self, claim, candidates):
        claim_amount = parse_amount(claim.amount)
        if claim_amount is None:
            logger.info("Claim amount %r is not numeric; nothing to match", claim.amount)
            return NO_MATCH
        claim_time = parse_timestamp(claim.timestamp)
        if claim_time is None:
            logger.info("Claim timestamp %r is not ISO-8601; nothing to match", claim.timestamp)
            return NO_MATCH

        for candidate in candidates:
            if self._matches(candidate, claim, claim_amount, claim_time):
                return MatchOutcome(transaction=candidate)
        return NO_MATCH

    @staticmethod
    def _matches(candidate, claim, claim_amount, claim_time):
        if candidate.is_placeholder:
            return False
        if candidate.currency != claim.currency:
            return False
        if candidate.status != claim.status:
            return False
        if candidate.type != RECEIVED:
            return False

        amount = parse_amount(candidate.amount)
        if amount is None or amount < claim_amount:
            return False

        # lower bound only
        occurred_at = parse_timestamp(candidate.date)
        return occurred_at is not None and occurred_at >= claim_time
