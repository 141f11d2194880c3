"""Storefront API cart mutation: add one line to an existing cart."""

from __future__ import annotations

import logging
from typing import Any

from gift_hooks.shopify.client import ShopifyGraphQLClient
from gift_hooks.shopify.errors import ConfigurationError, ShopifyUserError
from gift_hooks.shopify.ids import to_gid

logger = logging.getLogger(__name__)

CART_LINES_ADD = """
mutation cartLinesAdd($cartId: ID!, $lines: [CartLineInput!]!) {
  cartLinesAdd(cartId: $cartId, lines: $lines) {
    cart {
      id
      lines(first: 10) {
        edges {
          node {
            id
            merchandise {
              ... on ProductVariant {
                id
              }
            }
            quantity
          }
        }
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""


async def add_line_to_cart(
    client: ShopifyGraphQLClient,
    cart_id: str,
    variant_id: str,
    quantity: int = 1,
) -> dict[str, Any]:
    """Add ``quantity`` units of ``variant_id`` as a new cart line.

    Returns the raw API response. Transport failures, GraphQL errors and
    ``userErrors`` all raise a ShopifyError; nothing is retried.
    """
    if not variant_id:
        raise ConfigurationError("HIDDEN_VARIANT_ID not configured", "cartLinesAdd")

    variables = {
        "cartId": to_gid("Cart", cart_id),
        "lines": [
            {
                "merchandiseId": to_gid("ProductVariant", variant_id),
                "quantity": quantity,
            }
        ],
    }
    logger.info("Adding variant %s to cart %s", variant_id, cart_id)
    result = await client.execute(CART_LINES_ADD, variables, step="cartLinesAdd")

    payload = (result.get("data") or {}).get("cartLinesAdd") or {}
    user_errors = payload.get("userErrors") or []
    if user_errors:
        logger.error("Error adding product to cart %s: %s", cart_id, user_errors)
        raise ShopifyUserError("cartLinesAdd", user_errors)
    return result
