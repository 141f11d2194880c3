"""Shopify Storefront and Admin GraphQL access."""

from gift_hooks.shopify.cart import add_line_to_cart
from gift_hooks.shopify.client import ShopifyGraphQLClient
from gift_hooks.shopify.errors import (
    ConfigurationError,
    ShopifyError,
    ShopifyGraphQLError,
    ShopifyResponseError,
    ShopifyTransportError,
    ShopifyUserError,
)
from gift_hooks.shopify.order_edit import EditState, OrderEditTransaction

__all__ = [
    "ConfigurationError",
    "EditState",
    "OrderEditTransaction",
    "ShopifyError",
    "ShopifyGraphQLClient",
    "ShopifyGraphQLError",
    "ShopifyResponseError",
    "ShopifyTransportError",
    "ShopifyUserError",
    "add_line_to_cart",
]
