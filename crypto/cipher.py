"""
Symmetric encryption for cache files and HTTP bodies.

Uses AES-256-GCM with a fresh random 96-bit nonce per call.
Ciphertext format: nonce (12 bytes) + sealed data (plaintext + 16-byte tag).

The same key protects the local cache at rest and the request/response
bodies exchanged with the server.
"""

import os
import base64
import binascii

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from exceptions import (
    AuthenticationFailed,
    CiphertextTooShort,
    InvalidEncoding,
    InvalidKeyLength,
    RandomSourceFailure,
)

KEY_LEN = 32  # AES-256
NONCE_LEN = 12  # 96 bits for AES-GCM
TAG_LEN = 16


def _cipher(key: bytes) -> AESGCM:
    if len(key) != KEY_LEN:
        raise InvalidKeyLength(f"Key must be {KEY_LEN} bytes, got {len(key)}")
    return AESGCM(key)


def encrypt(key: bytes, plaintext: bytes) -> bytes:
    """
    Encrypt plaintext with AES-256-GCM.

    Args:
        key: 32-byte key (see PassphraseDeriver)
        plaintext: Data to encrypt, may be empty

    Returns:
        nonce + ciphertext + tag

    Raises:
        InvalidKeyLength: If the key is not 32 bytes
        RandomSourceFailure: If no nonce could be generated
    """
    aesgcm = _cipher(key)
    try:
        nonce = os.urandom(NONCE_LEN)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceFailure(f"Could not generate nonce: {e}") from e
    return nonce + aesgcm.encrypt(nonce, plaintext, None)


def decrypt(key: bytes, ciphertext: bytes) -> bytes:
    """
    Decrypt data produced by encrypt().

    Args:
        key: 32-byte key
        ciphertext: nonce + sealed data

    Returns:
        The original plaintext

    Raises:
        InvalidKeyLength: If the key is not 32 bytes
        CiphertextTooShort: If there are fewer bytes than a nonce
        AuthenticationFailed: Wrong key, tampered or truncated data
    """
    if len(ciphertext) < NONCE_LEN:
        raise CiphertextTooShort(
            f"Ciphertext too short: {len(ciphertext)} bytes (minimum {NONCE_LEN})"
        )
    aesgcm = _cipher(key)
    nonce, sealed = ciphertext[:NONCE_LEN], ciphertext[NONCE_LEN:]
    try:
        return aesgcm.decrypt(nonce, sealed, None)
    except InvalidTag as e:
        raise AuthenticationFailed("Decryption failed: authentication tag mismatch") from e


def encrypt_string(key: bytes, plaintext: str) -> str:
    """Encrypt a UTF-8 string and return base64 text (safe for JSON)."""
    return base64.b64encode(encrypt(key, plaintext.encode("utf-8"))).decode("ascii")


def decrypt_string(key: bytes, ciphertext: str) -> str:
    """Inverse of encrypt_string: base64-decode, then decrypt."""
    try:
        data = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidEncoding(f"Invalid base64 ciphertext: {e}") from e
    return decrypt(key, data).decode("utf-8")
