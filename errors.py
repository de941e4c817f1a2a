# errors.py - Failure taxonomy for the payment verification pipeline


class VerificationError(Exception):
    """Base class for every failure the pipeline surfaces to its caller."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class KeyDerivationError(VerificationError):
    pass


class EncryptionError(VerificationError):
    pass


class DecryptionError(VerificationError):
    """Raised for any bad ciphertext, iv or key combination.

    The message is always the same so callers cannot tell padding
    failures apart from authentication failures.
    """

    GENERIC_MESSAGE = "Unable to decrypt credential"

    def __init__(self, message=GENERIC_MESSAGE):
        super().__init__(message)


class ProviderFetchError(VerificationError):
    pass


class AttestationError(VerificationError):
    pass
