"""
Local storage for Keeper Client.

Handles:
- Encrypted single-slot secret cache
- SQLite and plain-file persistence backends
"""

from .cache import SecretCache
from .backends import SqliteStore, FileStore, create_store

__all__ = ["SecretCache", "SqliteStore", "FileStore", "create_store"]
