"""
Pytest configuration and fixtures for Keeper Client tests.
"""

import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Optional

import pytest
from typer.testing import CliRunner

from crypto import derive_key
from exceptions import RemoteError
from models import (
    BinarySecret,
    CardSecret,
    LoginPassword,
    SecretBundle,
    TextSecret,
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def key() -> bytes:
    """Provide a 32-byte key."""
    return derive_key("test-passphrase")


@pytest.fixture
def other_key() -> bytes:
    """Provide a second, different key."""
    return derive_key("another-passphrase")


@pytest.fixture
def sample_bundle() -> SecretBundle:
    """Provide a bundle with one record of each kind."""
    return SecretBundle(
        login_password=[
            LoginPassword(login="admin", password="hunter2", label="router"),
            LoginPassword(login="alice", password="s3cret", label="mail"),
        ],
        text_secret=[TextSecret(title="note", body="remember the milk")],
        binary_secret=[BinarySecret.from_bytes("key.bin", b"\x00\x01\x02\xff")],
        card_secret=[
            CardSecret(
                cardholder="John Doe",
                pan="4111111111111111",
                exp_month="12",
                exp_year="2030",
                brand="visa",
                last4="1111",
            )
        ],
    )


class FakeCache:
    """In-memory stand-in for SecretCache."""

    def __init__(self, data: Optional[SecretBundle] = None, wrong_key: bool = False):
        self.data = data
        self.wrong_key = wrong_key
        self.set_calls = 0
        self.reset_calls = 0

    def get(self) -> Optional[SecretBundle]:
        return self.data

    def set(self, bundle: Optional[SecretBundle]) -> None:
        self.set_calls += 1
        self.data = bundle

    def reset(self) -> None:
        self.reset_calls += 1
        self.data = None

    def is_wrong_key(self) -> bool:
        return self.wrong_key


class FakeClient:
    """Stand-in for KeeperClient that records calls.

    Set ``fail`` to make every call raise RemoteError.
    """

    def __init__(self, secrets: Optional[SecretBundle] = None, token: str = "jwt-token"):
        self.secrets = secrets if secrets is not None else SecretBundle()
        self.token = token
        self.fail: Optional[RemoteError] = None
        self.calls: list[tuple] = []

    async def _call(self, name: str, *args):
        self.calls.append((name, *args))
        if self.fail is not None:
            raise self.fail

    async def register(self, login, password):
        await self._call("register", login, password)

    async def login(self, login, password):
        await self._call("login", login, password)
        return self.token

    async def get_all_secrets(self, token):
        await self._call("get_all_secrets", token)
        return self.secrets

    async def post_login_password(self, token, record):
        await self._call("post_login_password", token, record)

    async def post_text_secret(self, token, record):
        await self._call("post_text_secret", token, record)

    async def post_binary_secret(self, token, record):
        await self._call("post_binary_secret", token, record)

    async def post_card_secret(self, token, record):
        await self._call("post_card_secret", token, record)

    async def delete_login_password(self, token, login):
        await self._call("delete_login_password", token, login)

    async def delete_text_secret(self, token, title):
        await self._call("delete_text_secret", token, title)

    async def delete_binary_secret(self, token, filename):
        await self._call("delete_binary_secret", token, filename)

    async def delete_card_secret(self, token, cardholder):
        await self._call("delete_card_secret", token, cardholder)

    async def close(self):
        self.calls.append(("close",))


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def fake_client(sample_bundle) -> FakeClient:
    return FakeClient(secrets=sample_bundle)
