"""Shared fixtures for the storefront auth tests."""

import base64
import hashlib
import hmac

import httpx
import pytest

from storefront_auth.core.database import build_engine, build_session_factory, create_tables
from storefront_auth.core.settings import ShopifySettings
from storefront_auth.core.store import CredentialStore

TEST_API_KEY = "test-api-key"
TEST_API_SECRET = "test-shopify-secret-key"
TEST_SHOP = "acme.myshopify.com"
TEST_HOST = "https://auth.example.com"


def sign_query(params: dict, secret: str = TEST_API_SECRET) -> dict:
    """Return ``params`` with the ``hmac`` Shopify would attach."""
    message = "&".join(f"{key}={value}" for key, value in sorted(params.items()))
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256)
    return {**params, "hmac": digest.hexdigest()}


def sign_body(body: bytes, secret: str = TEST_API_SECRET) -> str:
    """Return the ``X-Shopify-Hmac-Sha256`` header Shopify would send with ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


class ShopifyStub:
    """Stands in for Shopify behind an ``httpx.MockTransport``."""

    def __init__(self, access_token: str = "tok_123", scope: str = "read_products"):
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_body: dict = {"access_token": access_token, "scope": scope}
        self.token_error: Exception | None = None
        self.webhook_status = 201
        self.webhook_body: dict = {"webhook": {"id": 1, "topic": "app/uninstalled"}}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/admin/oauth/access_token":
            if self.token_error is not None:
                raise self.token_error
            return httpx.Response(self.token_status, json=self.token_body)
        if request.url.path.endswith("/webhooks.json"):
            return httpx.Response(self.webhook_status, json=self.webhook_body)
        return httpx.Response(404, json={"errors": "Not Found"})

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def exchange_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/admin/oauth/access_token"]

    @property
    def webhook_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/webhooks.json")]


@pytest.fixture
def settings(tmp_path) -> ShopifySettings:
    """Settings pointing at a throwaway SQLite database."""
    return ShopifySettings(
        api_key=TEST_API_KEY,
        api_secret=TEST_API_SECRET,
        scopes="read_products",
        host=TEST_HOST,
        database_url=f"sqlite:///{tmp_path / 'shops.db'}",
        register_uninstall_webhook=False,
        post_install_url="",
        debug_routes=True,
    )


@pytest.fixture
def store(settings) -> CredentialStore:
    engine = build_engine(settings.database_url)
    create_tables(engine)
    yield CredentialStore(build_session_factory(engine))
    engine.dispose()


@pytest.fixture
def shopify_stub() -> ShopifyStub:
    return ShopifyStub()
