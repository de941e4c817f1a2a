from decimal import Decimal

import pytest

from attestation import AttestationReportGenerator, REPORT_DATA_OFFSET, TDX_HEADER_LENGTH
from credential_cipher import CredentialCipher
from key_provider import KeyMaterialProvider
from models import ProviderTransaction


def fake_tdx_quote(report_data):
    """A quote-shaped byte string with report_data in the TD report body."""
    header = b"\x04\x00\x02\x00" + b"\x00" * (TDX_HEADER_LENGTH - 4)
    body = b"\x11" * (REPORT_DATA_OFFSET - TDX_HEADER_LENGTH)
    return header + body + report_data


class FakeQuotingClient:
    def __init__(self, key=bytes(range(32))):
        self.key = key
        self.derive_calls = []
        self.quote_calls = []

    def derive_key(self, purpose):
        self.derive_calls.append(purpose)
        return self.key

    def quote(self, report_data):
        self.quote_calls.append(report_data)
        return fake_tdx_quote(report_data)


class FakeProviderClient:
    def __init__(self, transactions=(), error=None):
        self.transactions = list(transactions)
        self.error = error
        self.credentials = []

    def get_transactions(self, credential):
        self.credentials.append(credential)
        if self.error is not None:
            raise self.error
        return self.transactions


def make_tx(amount="100.00", currency="USD", status="COMPLETED", type="received",
            date="2024-01-02T00:00:00Z", payment_id="tx-1", recipient_id="profile-1"):
    return ProviderTransaction(
        payment_id=payment_id,
        amount=Decimal(amount),
        currency=currency,
        date=date,
        status=status,
        type=type,
        recipient_id=recipient_id,
    )


@pytest.fixture
def quoting_client():
    return FakeQuotingClient()


@pytest.fixture
def key_provider(quoting_client):
    return KeyMaterialProvider(quoting_client, "wise-api-key")


@pytest.fixture
def cipher(key_provider):
    return CredentialCipher(key_provider)


@pytest.fixture
def report_generator(quoting_client):
    return AttestationReportGenerator(quoting_client)
