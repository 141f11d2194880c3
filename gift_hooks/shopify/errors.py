"""Shopify API error types.

Every failure talking to Shopify is a ShopifyError so callers can treat
transport and application-level failures alike (both abort a flow).
"""

from __future__ import annotations

from typing import Any


class ShopifyError(Exception):
    """Base exception for Shopify API failures."""

    def __init__(self, message: str, step: str = "", details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.step = step
        self.details = details


class ShopifyTransportError(ShopifyError):
    """Non-2xx response, connection failure or timeout."""


class ShopifyGraphQLError(ShopifyError):
    """Top-level ``errors`` list returned inside a 200 response."""


class ShopifyUserError(ShopifyError):
    """Non-empty ``userErrors`` list returned by a mutation."""

    def __init__(self, step: str, user_errors: list[dict[str, Any]]) -> None:
        super().__init__(f"{step} returned user errors", step, user_errors)


class ShopifyResponseError(ShopifyError):
    """A mutation succeeded but omitted an id the next step needs."""


class ConfigurationError(ShopifyError):
    """Missing token, domain or target id required for an API call."""
