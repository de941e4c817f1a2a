# orchestrator.py - Runs decrypt -> fetch -> match -> quote -> attest for one request

import logging

from attestation import AttestationReportGenerator, build_quote, canonical_bytes
from credential_cipher import CredentialCipher
from errors import (
    AttestationError,
    DecryptionError,
    KeyDerivationError,
    ProviderFetchError,
    VerificationError,
)
from key_provider import KeyMaterialProvider
from matcher import TransactionMatcher
from models import Stage, VerificationOutcome
from tappd_client import TappdClient
from wise_client import WiseClient

logger = logging.getLogger(__name__)


class VerificationService:
    """Verifies payment claims against provider data inside the TEE.

    Stages run sequentially and the first failure ends the run with a
    stage-tagged outcome. Nothing is retried here.
    """

    def __init__(self, cipher, provider_client, report_generator, matcher=None, platform="wise"):
        self.cipher = cipher
        self.provider_client = provider_client
        self.report_generator = report_generator
        self.matcher = matcher or TransactionMatcher()
        self.platform = platform

    def encrypt_credential(self, credential):
        logger.info("Encrypting credentials")
        encrypted = self.cipher.encrypt(credential)
        logger.info("Successfully encrypted credentials")
        return encrypted

    def verify_payment(self, encrypted, claim):
        logger.info("Verifying payment")

        try:
            credential = self.cipher.decrypt(encrypted.ciphertext, encrypted.iv)
        except (DecryptionError, KeyDerivationError) as e:
            return self._fail(Stage.DECRYPT_CREDENTIAL, e)

        try:
            transactions = list(self.provider_client.get_transactions(credential))
        except ProviderFetchError as e:
            return self._fail(Stage.FETCH_TRANSACTIONS, e)
        except Exception as e:
            # timeouts or cancellation from the transport layer
            return self._fail(Stage.FETCH_TRANSACTIONS, ProviderFetchError(f"Provider fetch failed: {e}"))

        try:
            outcome = self.matcher.match(claim, transactions)
        except Exception as e:
            return self._fail(Stage.MATCH, VerificationError(f"Matching failed: {e}"))
        if not outcome.matched:
            logger.info("No matching transaction found among %d", len(transactions))
            return VerificationOutcome.unverified()

        try:
            quote = build_quote(outcome.transaction, self.platform)
            payload = canonical_bytes(quote)
        except Exception as e:
            return self._fail(Stage.BUILD_QUOTE, VerificationError(f"Quote construction failed: {e}"))

        try:
            report = self.report_generator.attest(payload)
        except AttestationError as e:
            return self._fail(Stage.ATTEST, e)
        except Exception as e:
            return self._fail(Stage.ATTEST, AttestationError(f"RA report generation failed: {e}"))

        logger.info("Payment verified successfully (payment %s)", quote.payment_id)
        return VerificationOutcome.success(quote, report)

    def generate_report(self, user_data=""):
        logger.info("Generating RA report")
        return self.report_generator.attest(user_data.encode("utf-8"))

    @staticmethod
    def _fail(stage, error):
        logger.error("Verification failed at %s: %s", stage.value, error)
        return VerificationOutcome.failed(stage, error)


def build_service(settings):
    """Default wiring: one Tappd client shared by key derivation and quoting."""
    tappd = TappdClient(settings.tappd_endpoint, timeout=settings.request_timeout)
    key_provider = KeyMaterialProvider(tappd, settings.key_purpose)
    return VerificationService(
        cipher=CredentialCipher(key_provider),
        provider_client=WiseClient(settings.wise_api_url, timeout=settings.request_timeout),
        report_generator=AttestationReportGenerator(tappd),
        platform=settings.platform,
    )
