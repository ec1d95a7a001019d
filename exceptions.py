"""
Exceptions for Keeper Client.

Crypto failures, local persistence failures and remote service failures
each get their own branch so callers can decide what is recoverable.
"""

from typing import Optional


class KeeperError(Exception):
    """Base exception for all Keeper Client errors."""

    pass


# ---------------------------------------------------------------------------
# Crypto
# ---------------------------------------------------------------------------

class CryptoError(KeeperError):
    """Base exception for encryption/decryption failures."""

    pass


class InvalidKeyLength(CryptoError):
    """Key is not exactly 32 bytes."""

    pass


class RandomSourceFailure(CryptoError):
    """Secure randomness could not be obtained for a nonce."""

    pass


class CiphertextTooShort(CryptoError):
    """Ciphertext is shorter than the nonce."""

    pass


class AuthenticationFailed(CryptoError):
    """GCM tag check failed: wrong key, tampered or truncated data."""

    pass


class InvalidEncoding(CryptoError):
    """Text ciphertext is not valid base64."""

    pass


# ---------------------------------------------------------------------------
# Local storage
# ---------------------------------------------------------------------------

class PersistenceError(KeeperError):
    """Reading or writing the local cache store failed."""

    pass


# ---------------------------------------------------------------------------
# Remote service
# ---------------------------------------------------------------------------

class RemoteError(KeeperError):
    """A call to the secret service failed (network or server-reported)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
