# credential_cipher.py - Encrypts provider API credentials under the TEE key
#
# Layout: ciphertext = AES-256-CBC(PKCS#7(plaintext)) || HMAC-SHA256(iv || cbc)
# The 32-byte provider key is split with HKDF into an encryption and a MAC key.

import logging
import os

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives import hmac as crypto_hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from errors import DecryptionError, EncryptionError, KeyDerivationError
from models import EncryptedCredential

logger = logging.getLogger(__name__)

IV_LENGTH = 16
TAG_LENGTH = 32
BLOCK_BITS = algorithms.AES.block_size

_HKDF_INFO_ENC = b"tee-verifier:credential:enc:v1"
_HKDF_INFO_MAC = b"tee-verifier:credential:mac:v1"


def _subkey(key, info):
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=info)
    return hkdf.derive(key)


def _tag(mac_key, iv, body):
    h = crypto_hmac.HMAC(mac_key, hashes.SHA256())
    h.update(iv)
    h.update(body)
    return h


class CredentialCipher:
    def __init__(self, key_provider):
        self._key_provider = key_provider

    def _keys(self):
        key = self._key_provider.get_key()
        return _subkey(key, _HKDF_INFO_ENC), _subkey(key, _HKDF_INFO_MAC)

    def encrypt(self, plaintext):
        """Returns EncryptedCredential with a fresh random iv."""
        enc_key, mac_key = self._keys()
        try:
            iv = os.urandom(IV_LENGTH)
            padder = padding.PKCS7(BLOCK_BITS).padder()
            padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
            encryptor = Cipher(algorithms.AES(enc_key), modes.CBC(iv)).encryptor()
            body = encryptor.update(padded) + encryptor.finalize()
            tag = _tag(mac_key, iv, body).finalize()
        except Exception as e:
            logger.error("Credential encryption failed: %s", type(e).__name__)
            raise EncryptionError("Credential encryption failed") from e
        return EncryptedCredential(ciphertext=body + tag, iv=iv)

    def decrypt(self, ciphertext, iv):
        # Key derivation problems are infrastructure failures, not bad input.
        enc_key, mac_key = self._keys()
        try:
            return self._open(enc_key, mac_key, bytes(ciphertext), bytes(iv))
        except (KeyDerivationError, DecryptionError):
            raise
        except Exception:
            raise DecryptionError() from None

    @staticmethod
    def _open(enc_key, mac_key, ciphertext, iv):
        if len(iv) != IV_LENGTH:
            raise DecryptionError()
        body_len = len(ciphertext) - TAG_LENGTH
        if body_len <= 0 or body_len % (BLOCK_BITS // 8):
            raise DecryptionError()

        body, tag = ciphertext[:body_len], ciphertext[body_len:]
        try:
            _tag(mac_key, iv, body).verify(tag)
        except InvalidSignature:
            raise DecryptionError() from None

        decryptor = Cipher(algorithms.AES(enc_key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(body) + decryptor.finalize()
        unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode("utf-8")
