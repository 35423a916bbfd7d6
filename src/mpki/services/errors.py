# mpki/services/errors.py

class PKIError(Exception):
    """Base class for mpki errors."""


class UsageError(PKIError):
    """Raised for a malformed invocation that argparse cannot reject on its own."""


class KeyNotFoundError(PKIError):
    """Raised when neither the suffixed nor the literal key file exists."""


class InvalidKeyError(PKIError):
    """Raised when a key file is structurally malformed."""


class AlreadyExistsError(PKIError):
    """Raised when a key file would be overwritten."""


class WeakKeyError(PKIError):
    """Raised when the requested key size is below the floor."""


class TrustError(PKIError):
    """Base class for trust relationship violations."""


class NotSelfSignedError(TrustError):
    """Raised when a certificate that should anchor itself names another issuer."""


class NotSignedBySignerError(TrustError):
    """Raised when a certificate's issuer is not the signer's subject."""


class InvalidSignatureError(TrustError):
    """Raised when a certificate signature does not validate against the signer."""


class AlreadyLockedError(PKIError):
    """Raised when locking a secret key that already carries a passphrase."""


class NotLockedError(PKIError):
    """Raised when unlocking a secret key that has no passphrase."""


class VerifyFailedError(PKIError):
    """Raised for any signature verification failure, forged or corrupted alike."""


class EncryptFailedError(PKIError):
    """Raised when an envelope cannot be encrypted."""


class DecryptFailedError(PKIError):
    """Raised for any decryption failure, wrong key or corrupted input alike."""


class EnvironmentConfigError(PKIError):
    """Raised when the hardware security module is not configured."""


class IssuanceFailedError(PKIError):
    """Raised when a certificate cannot be issued."""


class PromptDeniedError(PKIError):
    """Raised when no passphrase could be obtained."""
