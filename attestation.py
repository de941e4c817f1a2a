# attestation.py - Binds a verified quote to a TDX attestation report
#
# Attestation input encoding (relying parties must recompute it byte for byte):
#   canonical_bytes(quote) = UTF-8 JSON of quote.to_dict(), keys sorted,
#                            separators (",", ":"), non-ASCII kept as is.
#                            amount is plain decimal notation, never exponent form.
#   report_data            = sha256(canonical_bytes) || 32 zero bytes

import hashlib
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal

from errors import AttestationError
from models import Quote

logger = logging.getLogger(__name__)

REPORT_DATA_LENGTH = 64
# TDX v4 quote: 48-byte header followed by a 584-byte TD report body whose
# last 64 bytes are the report data.
TDX_HEADER_LENGTH = 48
TDX_BODY_LENGTH = 584
REPORT_DATA_OFFSET = TDX_HEADER_LENGTH + TDX_BODY_LENGTH - REPORT_DATA_LENGTH
MIN_QUOTE_LENGTH = TDX_HEADER_LENGTH + TDX_BODY_LENGTH


def utcnow_iso():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_quote(transaction, platform, now=None):
    """Quote record for a matched transaction; only verified_at varies."""
    return Quote(
        platform=platform,
        payment_id=transaction.payment_id,
        amount=format(Decimal(transaction.amount), "f"),
        currency=transaction.currency,
        date=transaction.date,
        status=transaction.status,
        recipient_id=transaction.recipient_id,
        verified_at=now or utcnow_iso(),
    )


def canonical_json_bytes(payload):
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def canonical_bytes(quote):
    return canonical_json_bytes(quote.to_dict())


def report_data_for(data):
    digest = hashlib.sha256(data).digest()
    return digest + b"\x00" * (REPORT_DATA_LENGTH - len(digest))


def extract_report_data(report):
    if len(report) < MIN_QUOTE_LENGTH:
        raise ValueError(f"report too short: {len(report)} bytes, need at least {MIN_QUOTE_LENGTH}")
    return report[REPORT_DATA_OFFSET:REPORT_DATA_OFFSET + REPORT_DATA_LENGTH]


class AttestationReportGenerator:
    def __init__(self, quoting_client):
        self._client = quoting_client

    def attest(self, data):
        """Hardware report over `data`; raises AttestationError on any defect."""
        expected = report_data_for(data)
        try:
            report = self._client.quote(expected)
        except AttestationError:
            raise
        except Exception as e:
            raise AttestationError(f"Quote request failed: {e}") from e

        if not report:
            raise AttestationError("Quoting primitive returned an empty report")
        if isinstance(report, str):
            try:
                report = bytes.fromhex(report[2:] if report.startswith("0x") else report)
            except ValueError:
                raise AttestationError("Quoting primitive returned a malformed report") from None

        try:
            bound = extract_report_data(report)
        except ValueError as e:
            raise AttestationError(f"Malformed report: {e}") from None
        if bound != expected:
            raise AttestationError("Report is not bound to the requested data")

        logger.info("Obtained %d-byte attestation report", len(report))
        return bytes(report)
