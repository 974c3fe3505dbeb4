"""
Client error taxonomy.

Every exception carries a message that is safe to show to the user; raw
library exceptions are chained as __cause__ but never put in the message.
"""


class LockboxError(Exception):
    """Base class for all client errors."""

    default_message = "Something went wrong"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)


class InputError(LockboxError):
    """Missing or too-short input, rejected before any crypto or network call."""

    default_message = "Invalid input"


class AuthFailure(LockboxError):
    """Wrong credentials or a rejected/expired access token."""

    default_message = "Incorrect credentials"


class CryptoFailure(LockboxError):
    """Malformed blob or failed integrity check."""

    default_message = "Decryption failed: the password is incorrect or the data is corrupted"


class DecryptionError(CryptoFailure):
    """Raised by the vault cipher. Wrong key and tampering look the same."""


class BiometricCancelled(LockboxError):
    """The user declined or cancelled the device gesture. Fall back to manual entry."""

    default_message = "Biometric authentication was cancelled"


class BiometricUnavailable(LockboxError):
    """No biometric/platform authenticator on this device."""

    default_message = "Biometric authentication is not supported on this device"


class BiometricNotEnabled(LockboxError):
    """No usable wrapped master password is stored on this device."""

    default_message = "Biometric unlock is not set up. Enter your master password"


class TransportFailure(LockboxError):
    """The server could not be reached."""

    default_message = "Cannot reach the server. Check your network connection"


class ApiError(LockboxError):
    """The server answered with an error other than an auth failure."""

    default_message = "The server could not process the request"

    def __init__(self, message: str = None, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class VaultLocked(LockboxError):
    """The operation needs an unlocked session."""

    default_message = "The vault is locked"
