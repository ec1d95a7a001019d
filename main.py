"""
Keeper Client - Local API

A local FastAPI application that exposes the secrets manager to a UI.
Runs on http://127.0.0.1:18422 by default (see cli.py).
"""

import logging
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import Config, VERSION
from client import KeeperClient
from crypto import derive_key
from exceptions import PersistenceError, RemoteError
from manager import ReadPolicy, SecretsManager
from models import BinarySecret, CardSecret, LoginPassword, TextSecret
from storage import SecretCache, create_store

logger = logging.getLogger(__name__)


class AppState:
    """Per-application state container."""

    def __init__(self, config: Config):
        self.config = config
        self.cache: Optional[SecretCache] = None
        self.client: Optional[KeeperClient] = None
        self.manager: Optional[SecretsManager] = None

    def startup(self, client: Optional[KeeperClient] = None) -> None:
        """Derive the key, load the cache and wire up the manager."""
        key = derive_key(self.config.CRYPTO_KEY)

        self.config.ensure_storage_dir()
        store = create_store(self.config.CACHE_BACKEND, self.config.cache_path)
        self.cache = SecretCache(store, key)
        self.cache.load()
        if self.cache.is_wrong_key():
            logger.warning("Local cache exists but CRYPTO_KEY cannot decrypt it")

        self.client = client or KeeperClient(
            self.config.server_url,
            key,
            timeout=self.config.REQUEST_TIMEOUT,
        )
        self.manager = SecretsManager(
            self.client,
            self.cache,
            read_policy=ReadPolicy(self.config.READ_POLICY),
        )

    async def shutdown(self) -> None:
        """Close the HTTP client and the cache store."""
        if self.client:
            await self.client.close()
        if self.cache:
            self.cache.close()


# Secret kinds exposed on /api/secrets/{kind}
SECRET_KINDS = {
    "login-password": ("login", LoginPassword, "add_login_password", "delete_login_password"),
    "text": ("title", TextSecret, "add_text_secret", "delete_text_secret"),
    "binary": ("filename", BinarySecret, "add_binary_secret", "delete_binary_secret"),
    "card": ("cardholder", CardSecret, "add_card_secret", "delete_card_secret"),
}


def create_app(config: Optional[Config] = None, client: Optional[KeeperClient] = None) -> FastAPI:
    """
    Build the local API application.

    Args:
        config: Application configuration (defaults to environment)
        client: Optional pre-built server client

    Returns:
        Configured FastAPI app; its AppState lives on app.state.keeper
    """
    state = AppState(config or Config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        state.startup(client)
        logger.info(f"Keeper Client started, server: {state.config.server_url}")
        yield
        await state.shutdown()
        logger.info("Keeper Client stopped")

    app = FastAPI(
        title="Keeper Client",
        description="Local client for the Keeper secret storage service",
        version=VERSION,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.keeper = state

    def get_manager() -> SecretsManager:
        if state.manager is None:
            raise HTTPException(status_code=503, detail="Client is not started")
        return state.manager

    def require_session(manager: SecretsManager) -> None:
        if not manager.session.is_authenticated:
            raise HTTPException(status_code=401, detail="Not authenticated")

    def kind_or_404(kind: str) -> tuple:
        if kind not in SECRET_KINDS:
            raise HTTPException(status_code=404, detail=f"Unknown secret kind: {kind}")
        return SECRET_KINDS[kind]

    async def read_json(request: Request) -> dict[str, Any]:
        try:
            data = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        if not isinstance(data, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object")
        return data

    async def read_credentials(request: Request) -> tuple[str, str]:
        data = await read_json(request)
        login = data.get("login", "")
        password = data.get("password", "")
        if not login or not password:
            raise HTTPException(status_code=400, detail="Login and password required")
        return login, password

    # ========================================================================
    # Authentication API
    # ========================================================================

    @app.post("/api/auth/login")
    async def api_login(request: Request):
        """Handle login request."""
        login, password = await read_credentials(request)
        manager = get_manager()
        try:
            token = await manager.login(login, password)
        except RemoteError as e:
            raise HTTPException(status_code=401, detail=str(e))
        manager.set_token(token, login=login)
        return {"success": True, "message": "Login successful"}

    @app.post("/api/auth/register")
    async def api_register(request: Request):
        """Handle registration request."""
        login, password = await read_credentials(request)
        manager = get_manager()
        try:
            token = await manager.register(login, password)
        except RemoteError as e:
            raise HTTPException(status_code=400, detail=str(e))
        manager.set_token(token, login=login)
        return {"success": True, "message": "Registration successful"}

    # ========================================================================
    # Secrets API
    # ========================================================================

    @app.get("/api/secrets")
    async def get_secrets():
        """All secrets, according to the configured read policy."""
        manager = get_manager()
        try:
            secrets = await manager.get_all_secrets()
        except RemoteError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return secrets.to_dict()

    @app.get("/api/secrets/cached")
    async def get_cached_secrets():
        """Offline view of the local cache."""
        manager = get_manager()
        if manager.is_wrong_key():
            raise HTTPException(status_code=409, detail="Wrong CRYPTO_KEY: cannot decrypt local cache")
        cached = manager.get_cached_secrets()
        if cached is None:
            raise HTTPException(status_code=404, detail="Cache is empty: offline mode unavailable")
        return cached.to_dict()

    @app.post("/api/secrets/{kind}")
    async def add_secret(kind: str, request: Request):
        """Create a secret of the given kind on the server."""
        key_field, model, add_method, _ = kind_or_404(kind)
        manager = get_manager()
        require_session(manager)

        data = await read_json(request)
        try:
            record = model.from_dict(data)
        except TypeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not getattr(record, key_field):
            raise HTTPException(status_code=400, detail=f"Field '{key_field}' is required")

        try:
            await getattr(manager, add_method)(record)
        except RemoteError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return {"success": True, "message": "Done"}

    @app.delete("/api/secrets/{kind}/{key}")
    async def delete_secret(kind: str, key: str):
        """Delete a secret by its natural key."""
        _, _, _, delete_method = kind_or_404(kind)
        manager = get_manager()
        require_session(manager)

        try:
            await getattr(manager, delete_method)(key)
        except RemoteError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return {"success": True, "message": "Done"}

    # ========================================================================
    # Cache & status API
    # ========================================================================

    @app.get("/api/cache/status")
    async def cache_status():
        manager = get_manager()
        cached = manager.get_cached_secrets()
        return {
            "wrong_key": manager.is_wrong_key(),
            "cached": cached is not None,
            "count": cached.count() if cached is not None else 0,
        }

    @app.post("/api/cache/reset")
    async def reset_cache():
        manager = get_manager()
        try:
            manager.reset_cache()
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"success": True, "message": "Cache cleared"}

    @app.get("/api/status")
    async def status():
        manager = get_manager()
        return {
            "version": VERSION,
            "authenticated": manager.session.is_authenticated,
            "wrong_key": manager.is_wrong_key(),
            "read_policy": manager.read_policy.value,
        }

    return app
