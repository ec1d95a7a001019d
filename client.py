"""
HTTP client for the Keeper server.

Every request body is JSON encrypted with AES-256-GCM and sent as
application/octet-stream; every response body is decrypted with the same
key. The server's CryptoMiddleware uses the same passphrase-derived key.
"""

import json
import logging
from typing import Any, Optional
from dataclasses import asdict

import httpx

from crypto import encrypt, decrypt
from exceptions import CryptoError, RemoteError
from models import (
    BinarySecret,
    CardSecret,
    LoginPassword,
    SecretBundle,
    TextSecret,
)

logger = logging.getLogger(__name__)


class KeeperClient:
    """Async client for the Keeper REST API."""

    def __init__(
        self,
        api_base_url: str,
        crypto_key: bytes,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            api_base_url: Base URL, e.g. http://127.0.0.1:8080/v1/api/user
            crypto_key: 32-byte key used for body encryption
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.api_base_url = api_base_url.rstrip("/")
        self._crypto_key = crypto_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Body encryption
    # ------------------------------------------------------------------

    def _encrypt_body(self, payload: Any) -> bytes:
        """JSON-encode payload and encrypt the result."""
        return encrypt(self._crypto_key, json.dumps(payload).encode("utf-8"))

    def _decrypt_body(self, raw: bytes) -> bytes:
        """
        Decrypt a response body.

        Bodies that do not decrypt (e.g. plaintext errors from a proxy or
        the framework) are returned unchanged.
        """
        if not raw:
            return raw
        try:
            return decrypt(self._crypto_key, raw)
        except CryptoError:
            return raw

    def _get_headers(self, token: str = "") -> dict[str, str]:
        """Get headers for API requests."""
        headers = {"Content-Type": "application/octet-stream"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _server_error(status_code: int, body: bytes) -> RemoteError:
        """Build an error from an {"error": "..."} body, or from the status code."""
        try:
            data = json.loads(body)
            if isinstance(data, dict) and data.get("error"):
                return RemoteError(str(data["error"]), status_code=status_code)
        except (ValueError, UnicodeDecodeError):
            pass
        return RemoteError(f"server error {status_code}", status_code=status_code)

    async def _request(
        self,
        method: str,
        path: str,
        token: str = "",
        payload: Any = None,
    ) -> tuple[int, bytes]:
        """Send a request and return (status_code, decrypted body)."""
        client = await self._get_client()
        content = self._encrypt_body(payload) if payload is not None else None

        try:
            response = await client.request(
                method,
                f"{self.api_base_url}{path}",
                headers=self._get_headers(token),
                content=content,
            )
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise RemoteError(f"Network error: {e}") from e

        logger.debug(f"{method} {path} -> {response.status_code}")
        return response.status_code, self._decrypt_body(response.content)

    async def _write(self, method: str, path: str, token: str, payload: Any) -> None:
        """Send a create/delete request whose reply carries no data."""
        status_code, body = await self._request(method, path, token, payload)
        if status_code >= 400:
            raise self._server_error(status_code, body)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def register(self, login: str, password: str) -> None:
        """Create a new user account."""
        status_code, body = await self._request(
            "POST", "/register", payload={"login": login, "password": password},
        )
        if status_code != 200:
            raise self._server_error(status_code, body)

    async def login(self, login: str, password: str) -> str:
        """Authenticate and return the bearer token."""
        status_code, body = await self._request(
            "POST", "/login", payload={"login": login, "password": password},
        )
        if status_code != 200:
            raise self._server_error(status_code, body)

        try:
            return json.loads(body)["token"]
        except (ValueError, KeyError, TypeError) as e:
            raise RemoteError(f"Could not parse token: {e}", status_code=status_code) from e

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    async def get_all_secrets(self, token: str) -> SecretBundle:
        """Fetch every secret owned by the authenticated user."""
        status_code, body = await self._request("GET", "/secret/get-all-secrets", token)
        if status_code != 200:
            raise self._server_error(status_code, body)

        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise RemoteError(f"Could not parse secrets: {e}", status_code=status_code) from e
        if data is not None and not isinstance(data, dict):
            raise RemoteError("Could not parse secrets: expected a JSON object", status_code=status_code)
        try:
            return SecretBundle.from_dict(data)
        except (TypeError, ValueError) as e:
            raise RemoteError(f"Could not parse secrets: {e}", status_code=status_code) from e

    async def post_login_password(self, token: str, record: LoginPassword) -> None:
        await self._write("POST", "/secret/post-login-password", token, asdict(record))

    async def post_text_secret(self, token: str, record: TextSecret) -> None:
        await self._write("POST", "/secret/post-text-secret", token, asdict(record))

    async def post_binary_secret(self, token: str, record: BinarySecret) -> None:
        await self._write("POST", "/secret/post-binary-secret", token, asdict(record))

    async def post_card_secret(self, token: str, record: CardSecret) -> None:
        await self._write("POST", "/secret/post-card-secret", token, asdict(record))

    async def delete_login_password(self, token: str, login: str) -> None:
        await self._write("DELETE", "/secret/delete-login-password", token, {"login": login})

    async def delete_text_secret(self, token: str, title: str) -> None:
        await self._write("DELETE", "/secret/delete-text-secret", token, {"title": title})

    async def delete_binary_secret(self, token: str, filename: str) -> None:
        await self._write("DELETE", "/secret/delete-binary-secret", token, {"filename": filename})

    async def delete_card_secret(self, token: str, cardholder: str) -> None:
        await self._write("DELETE", "/secret/delete-card-secret", token, {"cardholder": cardholder})
