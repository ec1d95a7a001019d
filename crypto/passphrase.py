"""
Passphrase derivation using SHA-256.

The passphrase (CRYPTO_KEY) is hashed into the AES-256 key shared by the
local cache and the server's body encryption, so derivation must be
deterministic and unsalted: both sides compute the same key independently.
"""

from cryptography.hazmat.primitives import hashes


class PassphraseDeriver:
    """Derives encryption keys from passphrases."""

    HASH_LEN = 32  # 256 bits for AES-256

    @classmethod
    def derive_key(cls, passphrase: str) -> bytes:
        """
        Derive a 256-bit key from a passphrase.

        The same passphrase always yields the same key.

        Args:
            passphrase: The user's passphrase

        Returns:
            The 32-byte derived key
        """
        digest = hashes.Hash(hashes.SHA256())
        digest.update(passphrase.encode("utf-8"))
        return digest.finalize()


derive_key = PassphraseDeriver.derive_key
