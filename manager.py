"""
Secrets manager: coordinates the Keeper server and the local cache.

Read policy is explicit (see ReadPolicy). Writes always go to the server
first; on success the whole cache is invalidated so the next read fetches
fresh data. There is no partial cache update.
"""

import logging
from enum import Enum
from typing import Optional, Protocol

from auth import SessionHolder
from exceptions import PersistenceError, RemoteError
from models import (
    BinarySecret,
    CardSecret,
    LoginPassword,
    SecretBundle,
    TextSecret,
)

logger = logging.getLogger(__name__)


class ReadPolicy(str, Enum):
    """Which source get_all_secrets() consults first."""

    # Serve the cache when it has data; hit the server only on a miss.
    CACHE_FIRST = "cache-first"
    # Always ask the server; fall back to the cache when it is unreachable.
    SERVER_FIRST = "server-first"


class SecretCacheLike(Protocol):
    """What the manager needs from the cache."""

    def get(self) -> Optional[SecretBundle]: ...

    def set(self, bundle: Optional[SecretBundle]) -> None: ...

    def reset(self) -> None: ...

    def is_wrong_key(self) -> bool: ...


class SecretsManager:
    """Single entry point for the UI layer."""

    def __init__(self, client, cache: SecretCacheLike, read_policy: ReadPolicy = ReadPolicy.CACHE_FIRST):
        """
        Initialize the manager.

        Args:
            client: Remote service client (see KeeperClient)
            cache: Encrypted local cache (see SecretCache)
            read_policy: Read strategy for get_all_secrets()
        """
        self.client = client
        self.cache = cache
        self.read_policy = ReadPolicy(read_policy)
        self.session = SessionHolder()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def token(self) -> str:
        return self.session.token

    def set_token(self, token: str, login: str = "") -> None:
        self.session.set_token(token, login=login)

    async def login(self, login: str, password: str) -> str:
        """Authenticate and return the token. Call set_token() to use it."""
        token = await self.client.login(login, password)
        logger.info(f"Logged in as {login}")
        return token

    async def register(self, login: str, password: str) -> str:
        """Create an account, then log in with it."""
        await self.client.register(login, password)
        logger.info(f"Registered {login}")
        return await self.client.login(login, password)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_all_secrets(self) -> SecretBundle:
        """
        Return all secrets according to the read policy.

        Raises:
            RemoteError: If the server call fails and no cached copy may be used
        """
        if self.read_policy is ReadPolicy.SERVER_FIRST:
            return await self._get_server_first()
        return await self._get_cache_first()

    async def _get_cache_first(self) -> SecretBundle:
        cached = self.cache.get()
        if cached is not None:
            logger.debug("Serving secrets from cache")
            return cached

        secrets = await self.client.get_all_secrets(self.token)
        self._store(secrets)
        return secrets

    async def _get_server_first(self) -> SecretBundle:
        try:
            secrets = await self.client.get_all_secrets(self.token)
        except RemoteError as e:
            cached = self.cache.get()
            if cached is None:
                raise
            logger.warning(f"Server unavailable, serving cached secrets: {e}")
            return cached

        self._store(secrets)
        return secrets

    def get_cached_secrets(self) -> Optional[SecretBundle]:
        """Offline view: the cached bundle without any network call."""
        return self.cache.get()

    def _store(self, secrets: SecretBundle) -> None:
        try:
            self.cache.set(secrets)
        except PersistenceError as e:
            # Still cached in memory for this process.
            logger.warning(f"Could not persist secrets cache: {e}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_login_password(self, record: LoginPassword) -> None:
        await self.client.post_login_password(self.token, record)
        self._invalidate("add login-password", record.login)

    async def add_text_secret(self, record: TextSecret) -> None:
        await self.client.post_text_secret(self.token, record)
        self._invalidate("add text secret", record.title)

    async def add_binary_secret(self, record: BinarySecret) -> None:
        await self.client.post_binary_secret(self.token, record)
        self._invalidate("add binary secret", record.filename)

    async def add_card_secret(self, record: CardSecret) -> None:
        await self.client.post_card_secret(self.token, record)
        self._invalidate("add card secret", record.cardholder)

    async def delete_login_password(self, login: str) -> None:
        await self.client.delete_login_password(self.token, login)
        self._invalidate("delete login-password", login)

    async def delete_text_secret(self, title: str) -> None:
        await self.client.delete_text_secret(self.token, title)
        self._invalidate("delete text secret", title)

    async def delete_binary_secret(self, filename: str) -> None:
        await self.client.delete_binary_secret(self.token, filename)
        self._invalidate("delete binary secret", filename)

    async def delete_card_secret(self, cardholder: str) -> None:
        await self.client.delete_card_secret(self.token, cardholder)
        self._invalidate("delete card secret", cardholder)

    def _invalidate(self, operation: str, key: str) -> None:
        logger.debug(f"{operation} '{key}' succeeded, invalidating cache")
        try:
            self.cache.reset()
        except PersistenceError as e:
            # The server already accepted the write; the in-memory copy is
            # gone, only the on-disk entry is stale.
            logger.warning(f"Could not clear persisted cache after {operation}: {e}")

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def reset_cache(self) -> None:
        """Clear the local cache (memory and disk)."""
        self.cache.reset()
        logger.info("Cache cleared")

    def is_wrong_key(self) -> bool:
        """True if the cache on disk could not be decrypted with CRYPTO_KEY."""
        return self.cache.is_wrong_key()
