"""
Cryptographic module for Keeper Client.

Handles:
- Passphrase derivation (SHA-256)
- Payload encryption (AES-256-GCM)
- Base64 text wrappers for JSON transport
"""

from .passphrase import PassphraseDeriver, derive_key
from .cipher import encrypt, decrypt, encrypt_string, decrypt_string, KEY_LEN, NONCE_LEN, TAG_LEN

__all__ = [
    "PassphraseDeriver",
    "derive_key",
    "encrypt",
    "decrypt",
    "encrypt_string",
    "decrypt_string",
    "KEY_LEN",
    "NONCE_LEN",
    "TAG_LEN",
]
