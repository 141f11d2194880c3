"""Shared fixtures: settings, a stubbed Shopify GraphQL API and a test app."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from gift_hooks.app import create_app
from gift_hooks.config import Settings
from gift_hooks.shopify.client import ShopifyGraphQLClient
from gift_hooks.webhooks.idempotency import IdempotencyGuard

from shopify_fakes import WEBHOOK_SECRET, ShopifyStub, sign


@pytest.fixture
def settings() -> Settings:
    return Settings(
        webhook_secret=WEBHOOK_SECRET,
        storefront_access_token="storefront-token",
        admin_access_token="admin-token",
        store_domain="test-shop.myshopify.com",
        hidden_variant_id="H1",
        og_variant_id="OG1",
        trigger_ids=frozenset({"T1"}),
    )


@pytest.fixture
def storefront_stub() -> ShopifyStub:
    return ShopifyStub()


@pytest.fixture
def admin_stub() -> ShopifyStub:
    return ShopifyStub()


@pytest.fixture
def admin_client(settings, admin_stub) -> ShopifyGraphQLClient:
    return ShopifyGraphQLClient.admin(settings, transport=admin_stub.transport)


@pytest.fixture
def storefront_client(settings, storefront_stub) -> ShopifyGraphQLClient:
    return ShopifyGraphQLClient.storefront(settings, transport=storefront_stub.transport)


@pytest.fixture
def make_client(storefront_stub, admin_stub) -> Callable[..., TestClient]:
    """Factory for a TestClient over an app built from the given settings."""

    def _make(settings: Settings, guard: IdempotencyGuard | None = None) -> TestClient:
        app = create_app(
            settings,
            storefront_transport=storefront_stub.transport,
            admin_transport=admin_stub.transport,
            guard=guard or IdempotencyGuard(),
        )
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(make_client, settings) -> TestClient:
    return make_client(settings)


@pytest.fixture
def post_signed(client) -> Callable[..., httpx.Response]:
    """POST a JSON payload with a valid signature."""

    def _post(path: str, payload: Any, test_client: TestClient | None = None) -> httpx.Response:
        body = json.dumps(payload).encode()
        return (test_client or client).post(
            path,
            content=body,
            headers={"Content-Type": "application/json", "X-Shopify-Hmac-SHA256": sign(body)},
        )

    return _post
