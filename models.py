# models.py - Value types passed between the verification stages

import base64
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

DEFAULT_PAYMENT_STATUS = "COMPLETED"
ERROR_STATUS = "ERROR"
RECEIVED = "received"
SENT = "sent"

SUPPORTED_CURRENCIES = frozenset([
    "AED", "ARS", "AUD", "CAD", "CHF", "CNY", "EUR", "GBP",
    "HKD", "IDR", "ILS", "JPY", "KES", "MXN", "MYR", "NZD",
    "PLN", "SAR", "SGD", "THB", "TRY", "USD", "VND", "ZAR",
])


def is_supported_currency(code):
    return code in SUPPORTED_CURRENCIES


@dataclass(frozen=True)
class EncryptedCredential:
    ciphertext: bytes
    iv: bytes

    def to_b64(self):
        return {
            "encryptedCredentials": base64.b64encode(self.ciphertext).decode("ascii"),
            "encryptionIV": base64.b64encode(self.iv).decode("ascii"),
        }

    @classmethod
    def from_b64(cls, ciphertext_b64, iv_b64):
        """Raises ValueError (binascii.Error) on malformed base64."""
        return cls(
            ciphertext=base64.b64decode(ciphertext_b64, validate=True),
            iv=base64.b64decode(iv_b64, validate=True),
        )


@dataclass(frozen=True)
class PaymentClaim:
    """What the caller asserts was paid."""
    amount: str
    currency: str
    timestamp: str
    status: str = DEFAULT_PAYMENT_STATUS


@dataclass(frozen=True)
class ProviderTransaction:
    payment_id: str
    amount: Decimal
    currency: str
    date: str
    status: str
    type: str
    recipient_id: str

    @classmethod
    def placeholder(cls, payment_id=""):
        """Sentinel for a provider record that could not be parsed."""
        return cls(
            payment_id=str(payment_id or ""),
            amount=Decimal(0),
            currency="",
            date="",
            status=ERROR_STATUS,
            type="",
            recipient_id="",
        )

    @property
    def is_placeholder(self):
        return self.status == ERROR_STATUS


@dataclass(frozen=True)
class MatchOutcome:
    transaction: Optional[ProviderTransaction] = None

    @property
    def matched(self):
        return self.transaction is not None


NO_MATCH = MatchOutcome()


@dataclass(frozen=True)
class Quote:
    platform: str
    payment_id: str
    amount: str
    currency: str
    date: str
    status: str
    recipient_id: str
    verified_at: str

    def to_dict(self):
        return {
            "platform": self.platform,
            "paymentId": self.payment_id,
            "amount": self.amount,
            "currency": self.currency,
            "date": self.date,
            "status": self.status,
            "recipientId": self.recipient_id,
            "verifiedAt": self.verified_at,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            platform=data["platform"],
            payment_id=data["paymentId"],
            amount=data["amount"],
            currency=data["currency"],
            date=data["date"],
            status=data["status"],
            recipient_id=data["recipientId"],
            verified_at=data["verifiedAt"],
        )


class Stage(str, Enum):
    DECRYPT_CREDENTIAL = "decrypt_credential"
    FETCH_TRANSACTIONS = "fetch_transactions"
    MATCH = "match"
    BUILD_QUOTE = "build_quote"
    ATTEST = "attest"


@dataclass(frozen=True)
class StageFailure:
    stage: Stage
    error: Exception

    @property
    def message(self):
        return getattr(self.error, "message", None) or str(self.error)


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of one verify_payment run.

    A quote is only ever present together with its report.
    """
    verified: bool
    quote: Optional[Quote] = None
    report: Optional[bytes] = None
    failure: Optional[StageFailure] = None

    @classmethod
    def success(cls, quote, report):
        return cls(verified=True, quote=quote, report=report)

    @classmethod
    def unverified(cls):
        return cls(verified=False)

    @classmethod
    def failed(cls, stage, error):
        return cls(verified=False, failure=StageFailure(Stage(stage), error))

    @property
    def ok(self):
        return self.failure is None
