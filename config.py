"""
Configuration for Keeper Client.
"""

import os
from pathlib import Path
from dataclasses import dataclass

# Application version - update this for each release
VERSION = "0.3.0"

CACHE_BACKENDS = ("sqlite", "file")
READ_POLICIES = ("cache-first", "server-first")


@dataclass
class Config:
    """Application configuration."""

    # Keeper server the client talks to
    SERVER_HOST: str = os.getenv("HTTP_HOST", "127.0.0.1")
    SERVER_PORT: str = os.getenv("HTTP_PORT", "8080")
    REQUEST_TIMEOUT: float = float(os.getenv("KEEPER_REQUEST_TIMEOUT", "30.0"))

    # Local API settings
    HOST: str = os.getenv("KEEPER_HOST", "127.0.0.1")
    PORT: int = int(os.getenv("KEEPER_PORT", "18422"))

    # Passphrase for the local cache and for HTTP body encryption
    CRYPTO_KEY: str = os.getenv("CRYPTO_KEY", "change-me")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "debug")

    # Cache settings
    STORAGE_DIR: Path = Path(os.getenv("KEEPER_STORAGE_DIR", "."))
    CACHE_BACKEND: str = os.getenv("KEEPER_CACHE_BACKEND", "sqlite")
    READ_POLICY: str = os.getenv("KEEPER_READ_POLICY", "cache-first")

    def __post_init__(self):
        """Validate choices and normalise paths."""
        self.STORAGE_DIR = Path(self.STORAGE_DIR)
        if self.CACHE_BACKEND not in CACHE_BACKENDS:
            raise ValueError(f"Unsupported cache backend: {self.CACHE_BACKEND}")
        if self.READ_POLICY not in READ_POLICIES:
            raise ValueError(f"Unsupported read policy: {self.READ_POLICY}")

    @property
    def server_url(self) -> str:
        """Base URL of the user API on the Keeper server."""
        return f"http://{self.SERVER_HOST}:{self.SERVER_PORT}/v1/api/user"

    @property
    def cache_path(self) -> Path:
        """Path to the encrypted secret cache."""
        if self.CACHE_BACKEND == "file":
            return self.STORAGE_DIR / ".keeper_cache.enc"
        return self.STORAGE_DIR / ".keeper_cache.db"

    def ensure_storage_dir(self) -> Path:
        """Create the storage directory if needed."""
        self.STORAGE_DIR.mkdir(parents=True, exist_ok=True)
        return self.STORAGE_DIR
