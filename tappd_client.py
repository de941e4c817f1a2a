# tappd_client.py - HTTP adapter for the dstack guest agent (key derivation and TDX quotes)

import logging

import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from errors import AttestationError, KeyDerivationError

logger = logging.getLogger(__name__)

DERIVE_KEY_PATH = "/prpc/Tappd.DeriveKey?json"
TDX_QUOTE_PATH = "/prpc/Tappd.TdxQuote?json"


def key_bytes_from_response(key):
    """Raw secret bytes from a DeriveKey 'key' field (PEM or hex)."""
    if key.lstrip().startswith("-----BEGIN"):
        private_key = serialization.load_pem_private_key(key.encode(), password=None)
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise ValueError(f"unsupported derived key type {type(private_key).__name__}")
        size = (private_key.curve.key_size + 7) // 8
        return private_key.private_numbers().private_value.to_bytes(size, "big")
    return bytes.fromhex(key[2:] if key.startswith("0x") else key)


class TappdClient:
    def __init__(self, endpoint, timeout=30.0, session=None):
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path, payload):
        response = self.session.post(
            self.endpoint + path,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def derive_key(self, purpose):
        try:
            body = self._post(DERIVE_KEY_PATH, {"path": purpose, "subject": purpose})
            return key_bytes_from_response(body["key"])
        except (requests.exceptions.RequestException, KeyError, TypeError, ValueError) as e:
            logger.error("Tappd key derivation failed: %s", type(e).__name__)
            raise KeyDerivationError(f"Key derivation failed: {e}") from e

    def quote(self, report_data):
        try:
            body = self._post(TDX_QUOTE_PATH, {
                "report_data": report_data.hex(),
                "hash_algorithm": "raw",
            })
            quote_hex = body.get("quote") or ""
        except (requests.exceptions.RequestException, AttributeError, ValueError) as e:
            logger.error("Tappd quote request failed: %s", e)
            raise AttestationError(f"RA report generation failed: {e}") from e
        if not quote_hex:
            raise AttestationError("RA report generation failed: empty quote")
        try:
            return bytes.fromhex(quote_hex[2:] if quote_hex.startswith("0x") else quote_hex)
        except ValueError:
            raise AttestationError("RA report generation failed: quote is not hex") from None
