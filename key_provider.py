# key_provider.py - Hardware derived symmetric key, derived once per process

import logging
import threading

from errors import KeyDerivationError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32


class KeyMaterialProvider:
    """Wraps the quoting primitive's key derivation and memoizes the result.

    The key is derived at most once, even when several requests race on
    first use. Rotation requires a process restart.
    """

    def __init__(self, quoting_client, purpose, key_length=KEY_LENGTH):
        self._client = quoting_client
        self._purpose = purpose
        self._key_length = key_length
        self._key = None
        self._lock = threading.Lock()

    def get_key(self):
        key = self._key
        if key is not None:
            return key
        with self._lock:
            if self._key is None:
                self._key = self._derive()
            return self._key

    def _derive(self):
        logger.info("Deriving credential key for purpose %r", self._purpose)
        try:
            raw = self._client.derive_key(self._purpose)
        except KeyDerivationError:
            raise
        except Exception as e:
            raise KeyDerivationError(f"Key derivation failed: {e}") from e

        if not raw or len(raw) < self._key_length:
            raise KeyDerivationError(
                f"Derived key too short: expected {self._key_length} bytes, "
                f"got {len(raw) if raw else 0}"
            )
        return bytes(raw[:self._key_length])
