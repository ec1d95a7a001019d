"""
Encrypted local cache of the user's secrets.

The whole SecretBundle is kept as one AES-256-GCM encrypted entry
(nonce + sealed JSON) in a single-slot store, plus a decrypted copy in
memory. This lets the client serve reads when the server is unreachable.

Invalidation: every write/delete against the server calls reset(), which
drops the whole bundle. The next read fetches fresh data.
"""

import json
import logging
from typing import Optional

from crypto import encrypt, decrypt
from exceptions import AuthenticationFailed, CiphertextTooShort, PersistenceError
from models import SecretBundle

from .locks import ReadWriteLock

logger = logging.getLogger(__name__)


class SecretCache:
    """Thread-safe encrypted single-slot secret cache."""

    def __init__(self, store, key: bytes):
        """
        Initialize the cache.

        Call load() afterwards to open the store and restore cached data.

        Args:
            store: Single-slot backend (SqliteStore or FileStore)
            key: 32-byte key derived from the passphrase
        """
        self._store = store
        self._key = key
        self._lock = ReadWriteLock()
        self._bundle: Optional[SecretBundle] = None
        self._wrong_key = False

    def load(self) -> None:
        """
        Open the store and restore any previously cached bundle.

        A missing entry leaves the cache empty. An entry that fails
        authentication marks the cache as wrong-key instead of raising.

        Raises:
            PersistenceError: If the store cannot be opened or read
        """
        with self._lock.write_locked():
            self._store.open()
            blob = self._store.get()
            if blob is None:
                logger.debug("No cached secrets found")
                return

            try:
                plaintext = decrypt(self._key, blob)
            except (AuthenticationFailed, CiphertextTooShort):
                logger.warning("Cached secrets could not be decrypted: wrong CRYPTO_KEY?")
                self._wrong_key = True
                return

            try:
                data = json.loads(plaintext.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning(f"Ignoring corrupt cache entry: {e}")
                return

            if data is None:
                return
            if not isinstance(data, dict):
                logger.warning("Ignoring corrupt cache entry: not a JSON object")
                return

            try:
                self._bundle = SecretBundle.from_dict(data)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Ignoring corrupt cache entry: {e}")
                return
            logger.info(f"Loaded {self._bundle.count()} cached secret(s)")

    def get(self) -> Optional[SecretBundle]:
        """Return the cached bundle, or None when the cache is empty."""
        with self._lock.read_locked():
            return self._bundle

    def set(self, bundle: Optional[SecretBundle]) -> None:
        """
        Replace the cached bundle and persist it encrypted.

        The in-memory copy is updated first, so a persistence failure still
        leaves the new bundle available for this process.

        Args:
            bundle: The bundle to cache (None is stored as-is)

        Raises:
            PersistenceError: If the encrypted entry could not be written
        """
        with self._lock.write_locked():
            self._bundle = bundle
            payload = bundle.to_dict() if bundle is not None else None
            plaintext = json.dumps(payload, ensure_ascii=False).encode("utf-8")
            self._store.replace(encrypt(self._key, plaintext))
            logger.debug("Cached secrets saved")

    def reset(self) -> None:
        """
        Drop the cached bundle from memory and from the store.

        Safe to call on an empty cache.

        Raises:
            PersistenceError: If the store is not open or the persisted entry
                could not be deleted
        """
        with self._lock.write_locked():
            self._bundle = None
            self._store.clear()
            logger.debug("Cache reset")

    @property
    def wrong_key(self) -> bool:
        """True if load() found data that the current key cannot decrypt."""
        with self._lock.read_locked():
            return self._wrong_key

    def is_wrong_key(self) -> bool:
        return self.wrong_key

    def close(self) -> None:
        """Release the store. Safe to call more than once."""
        with self._lock.write_locked():
            self._store.close()

    def remove(self) -> None:
        """Close the store and delete its file from disk."""
        with self._lock.write_locked():
            self._bundle = None
            try:
                self._store.remove()
            except OSError as e:
                raise PersistenceError(f"Could not remove cache: {e}") from e
