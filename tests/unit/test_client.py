"""Tests for the Keeper HTTP client."""

import json

import httpx
import pytest

from client import KeeperClient
from crypto import decrypt, encrypt
from exceptions import RemoteError
from manager import ReadPolicy, SecretsManager
from models import CardSecret, LoginPassword, SecretBundle, TextSecret

from conftest import FakeCache

BASE_URL = "http://keeper.test/v1/api/user"


class Recorder:
    """MockTransport handler that records requests and replays a canned reply."""

    def __init__(self, key: bytes, status_code: int = 200, reply=None, encrypted: bool = True):
        self.key = key
        self.status_code = status_code
        self.reply = reply
        self.encrypted = encrypted
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.reply is None:
            content = b""
        else:
            content = json.dumps(self.reply).encode("utf-8")
            if self.encrypted:
                content = encrypt(self.key, content)
        return httpx.Response(self.status_code, content=content)

    def body(self, index: int = -1):
        return json.loads(decrypt(self.key, self.requests[index].content))


def make_client(key: bytes, handler) -> KeeperClient:
    return KeeperClient(BASE_URL, key, transport=httpx.MockTransport(handler))


class TestAuth:
    """Tests for register and login."""

    @pytest.mark.asyncio
    async def test_login_returns_token(self, key):
        handler = Recorder(key, reply={"token": "jwt-abc"})
        client = make_client(key, handler)

        token = await client.login("alice", "pw")

        assert token == "jwt-abc"
        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/login"
        assert request.headers["Content-Type"] == "application/octet-stream"
        assert "Authorization" not in request.headers
        assert handler.body() == {"login": "alice", "password": "pw"}
        await client.close()

    @pytest.mark.asyncio
    async def test_request_body_is_encrypted(self, key):
        handler = Recorder(key, reply={"token": "t"})
        client = make_client(key, handler)

        await client.login("alice", "plain-password")

        assert b"plain-password" not in handler.requests[0].content
        await client.close()

    @pytest.mark.asyncio
    async def test_login_rejected(self, key):
        handler = Recorder(key, status_code=401, reply={"error": "invalid credentials"})
        client = make_client(key, handler)

        with pytest.raises(RemoteError) as exc_info:
            await client.login("alice", "bad")

        assert exc_info.value.status_code == 401
        assert "invalid credentials" in str(exc_info.value)
        await client.close()

    @pytest.mark.asyncio
    async def test_login_missing_token(self, key):
        client = make_client(key, Recorder(key, reply={"nope": 1}))
        with pytest.raises(RemoteError):
            await client.login("alice", "pw")
        await client.close()

    @pytest.mark.asyncio
    async def test_register_success(self, key):
        handler = Recorder(key)
        client = make_client(key, handler)

        await client.register("bob", "pw")

        assert str(handler.requests[0].url) == f"{BASE_URL}/register"
        assert handler.body() == {"login": "bob", "password": "pw"}
        await client.close()

    @pytest.mark.asyncio
    async def test_register_requires_200(self, key):
        client = make_client(key, Recorder(key, status_code=201))
        with pytest.raises(RemoteError) as exc_info:
            await client.register("bob", "pw")
        assert exc_info.value.status_code == 201
        assert str(exc_info.value) == "server error 201"
        await client.close()


class TestSecrets:
    """Tests for secret fetch, create and delete."""

    @pytest.mark.asyncio
    async def test_get_all_secrets(self, key, sample_bundle):
        handler = Recorder(key, reply=sample_bundle.to_dict())
        client = make_client(key, handler)

        bundle = await client.get_all_secrets("jwt")

        assert bundle == sample_bundle
        request = handler.requests[0]
        assert request.method == "GET"
        assert str(request.url) == f"{BASE_URL}/secret/get-all-secrets"
        assert request.headers["Authorization"] == "Bearer jwt"
        await client.close()

    @pytest.mark.asyncio
    async def test_get_all_secrets_null_sequences(self, key):
        reply = {"login_password": None, "text_secret": [{"title": "t", "body": "b"}]}
        client = make_client(key, Recorder(key, reply=reply))

        bundle = await client.get_all_secrets("jwt")

        assert bundle.login_password == []
        assert bundle.text_secret == [TextSecret(title="t", body="b")]
        await client.close()

    @pytest.mark.asyncio
    async def test_get_all_secrets_rejects_non_object(self, key):
        client = make_client(key, Recorder(key, reply=[1, 2, 3]))
        with pytest.raises(RemoteError):
            await client.get_all_secrets("jwt")
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reply",
        [{"card_secret": [1]}, {"login_password": "oops"}, {"text_secret": [{"title": 7}]}],
    )
    async def test_get_all_secrets_rejects_wrong_shape(self, key, reply):
        client = make_client(key, Recorder(key, reply=reply))
        with pytest.raises(RemoteError) as exc_info:
            await client.get_all_secrets("jwt")
        assert exc_info.value.status_code == 200
        await client.close()

    @pytest.mark.asyncio
    async def test_server_first_falls_back_on_wrong_shape(self, key, sample_bundle):
        client = make_client(key, Recorder(key, reply={"card_secret": [1]}))
        cache = FakeCache(data=sample_bundle)
        manager = SecretsManager(client, cache, read_policy=ReadPolicy.SERVER_FIRST)
        manager.set_token("jwt")

        assert await manager.get_all_secrets() is sample_bundle
        assert cache.set_calls == 0
        await client.close()

    @pytest.mark.asyncio
    async def test_get_all_secrets_unauthorized(self, key):
        client = make_client(key, Recorder(key, status_code=401, reply={"error": "token expired"}))
        with pytest.raises(RemoteError) as exc_info:
            await client.get_all_secrets("old")
        assert exc_info.value.status_code == 401
        assert str(exc_info.value) == "token expired"
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, record, path",
        [
            ("post_login_password", LoginPassword(login="a", password="p", label="l"), "post-login-password"),
            ("post_text_secret", TextSecret(title="t", body="b"), "post-text-secret"),
            ("post_card_secret", CardSecret(cardholder="J", pan="4111", last4="4111"), "post-card-secret"),
        ],
    )
    async def test_post_records(self, key, method, record, path):
        handler = Recorder(key)
        client = make_client(key, handler)

        await getattr(client, method)("jwt", record)

        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/secret/{path}"
        assert request.headers["Authorization"] == "Bearer jwt"
        assert handler.body() == record.__dict__
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, path, field",
        [
            ("delete_login_password", "delete-login-password", "login"),
            ("delete_text_secret", "delete-text-secret", "title"),
            ("delete_binary_secret", "delete-binary-secret", "filename"),
            ("delete_card_secret", "delete-card-secret", "cardholder"),
        ],
    )
    async def test_delete_records(self, key, method, path, field):
        handler = Recorder(key)
        client = make_client(key, handler)

        await getattr(client, method)("jwt", "the-key")

        request = handler.requests[0]
        assert request.method == "DELETE"
        assert str(request.url) == f"{BASE_URL}/secret/{path}"
        assert handler.body() == {field: "the-key"}
        await client.close()

    @pytest.mark.asyncio
    async def test_write_failure_raises(self, key):
        client = make_client(key, Recorder(key, status_code=500, reply={"error": "db down"}))
        with pytest.raises(RemoteError) as exc_info:
            await client.post_text_secret("jwt", TextSecret(title="t"))
        assert exc_info.value.status_code == 500
        await client.close()

    @pytest.mark.asyncio
    async def test_plaintext_error_body(self, key):
        handler = Recorder(key, status_code=400, reply={"error": "bad request"}, encrypted=False)
        client = make_client(key, handler)
        with pytest.raises(RemoteError) as exc_info:
            await client.delete_text_secret("jwt", "t")
        assert str(exc_info.value) == "bad request"
        await client.close()


class TestTransport:
    """Tests for network failures."""

    @pytest.mark.asyncio
    async def test_network_error(self, key):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(key, handler)
        with pytest.raises(RemoteError) as exc_info:
            await client.get_all_secrets("jwt")
        assert exc_info.value.status_code is None
        await client.close()

    @pytest.mark.asyncio
    async def test_close_is_repeatable(self, key):
        client = make_client(key, Recorder(key, reply=SecretBundle().to_dict()))
        await client.get_all_secrets("jwt")
        await client.close()
        await client.close()
