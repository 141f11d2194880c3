"""Shopify GraphQL client for the Storefront and Admin APIs.

Both APIs speak the same GraphQL-over-POST protocol and differ only in
endpoint and access-token header. Requests are never retried: every call
this service makes is a non-idempotent mutation.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from gift_hooks.config import Settings
from gift_hooks.shopify.errors import (
    ConfigurationError,
    ShopifyGraphQLError,
    ShopifyTransportError,
    ShopifyUserError,
)

logger = logging.getLogger(__name__)

STOREFRONT_TOKEN_HEADER = "X-Shopify-Storefront-Access-Token"
ADMIN_TOKEN_HEADER = "X-Shopify-Access-Token"


class ShopifyGraphQLClient:
    """Thin async wrapper around one Shopify GraphQL endpoint."""

    def __init__(
        self,
        endpoint: str,
        token_header: str,
        access_token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.token_header = token_header
        self._access_token = access_token
        self._http = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def storefront(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "ShopifyGraphQLClient":
        return cls(
            settings.storefront_endpoint,
            STOREFRONT_TOKEN_HEADER,
            settings.storefront_access_token,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    @classmethod
    def admin(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "ShopifyGraphQLClient":
        return cls(
            settings.admin_endpoint,
            ADMIN_TOKEN_HEADER,
            settings.admin_access_token,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self._access_token) and "https:///" not in self.endpoint

    async def execute(
        self, query: str, variables: dict[str, Any] | None = None, step: str = "graphql"
    ) -> dict[str, Any]:
        """Execute a GraphQL document and return the decoded JSON body.

        Raises:
            ConfigurationError: token or store domain not configured
            ShopifyTransportError: connection failure, timeout or non-2xx status
            ShopifyGraphQLError: top-level ``errors`` in the response
        """
        if not self.configured:
            raise ConfigurationError(
                "Shopify API credentials or store domain not configured", step
            )

        try:
            response = await self._http.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers={self.token_header: self._access_token},
            )
        except httpx.HTTPError as e:
            raise ShopifyTransportError(
                f"{step} request failed: {type(e).__name__}", step, str(e)
            ) from e

        if not response.is_success:
            logger.error("HTTP %d from Shopify during %s: %s", response.status_code, step, response.text)
            raise ShopifyTransportError(
                f"HTTP error {response.status_code} during {step}", step, response.text
            )

        try:
            result = response.json()
        except ValueError as e:
            raise ShopifyTransportError(f"{step} returned non-JSON body", step, response.text) from e

        logger.debug("%s response: %s", step, result)

        if result.get("errors"):
            logger.error("GraphQL errors during %s: %s", step, result["errors"])
            raise ShopifyGraphQLError(f"{step} returned GraphQL errors", step, result["errors"])
        return result

    async def mutate(
        self, mutation: str, field: str, variables: dict[str, Any], step: str | None = None
    ) -> dict[str, Any]:
        """Run a mutation and return its payload object (``data[field]``).

        Raises ShopifyUserError when the payload carries ``userErrors``.
        """
        step = step or field
        result = await self.execute(mutation, variables, step=step)
        payload = (result.get("data") or {}).get(field) or {}
        user_errors = payload.get("userErrors") or []
        if user_errors:
            logger.error("User errors during %s: %s", step, user_errors)
            raise ShopifyUserError(step, user_errors)
        return payload

    async def aclose(self) -> None:
        await self._http.aclose()
