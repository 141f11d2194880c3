"""Admin API order-edit transaction.

Adding an item to a placed order is a remote, stateful session:

    PENDING --begin--> OPEN --add_variant--> ITEM_ADDED --apply_discount--> DISCOUNTED
                                                  \\                             |
                                                   `-----------commit-----------+--> COMMITTED

Any failure once the session is open moves to ABORTED through ``abort()``,
which removes the added line (quantity 0) so nothing is left staged.
Shopify has no mutation to discard a calculated order; an uncommitted
session simply expires remotely. Only ``commit`` makes changes durable.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from gift_hooks.config import DEFAULT_STAFF_NOTE, DiscountPolicy
from gift_hooks.shopify.client import ShopifyGraphQLClient
from gift_hooks.shopify.errors import ConfigurationError, ShopifyError, ShopifyResponseError
from gift_hooks.shopify.ids import to_gid

logger = logging.getLogger(__name__)

DISCOUNT_DESCRIPTION = "Free promotional item"

ORDER_EDIT_BEGIN = """
mutation orderEditBegin($id: ID!) {
  orderEditBegin(id: $id) {
    calculatedOrder {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""

ORDER_EDIT_ADD_VARIANT = """
mutation orderEditAddVariant($id: ID!, $variantId: ID!, $quantity: Int!, $allowDuplicates: Boolean) {
  orderEditAddVariant(id: $id, variantId: $variantId, quantity: $quantity, allowDuplicates: $allowDuplicates) {
    calculatedLineItem {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""

ORDER_EDIT_ADD_LINE_ITEM_DISCOUNT = """
mutation orderEditAddLineItemDiscount($id: ID!, $lineItemId: ID!, $discount: OrderEditAppliedDiscountInput!) {
  orderEditAddLineItemDiscount(id: $id, lineItemId: $lineItemId, discount: $discount) {
    calculatedLineItem {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""

ORDER_EDIT_SET_QUANTITY = """
mutation orderEditSetQuantity($id: ID!, $lineItemId: ID!, $quantity: Int!) {
  orderEditSetQuantity(id: $id, lineItemId: $lineItemId, quantity: $quantity) {
    calculatedLineItem {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""

ORDER_EDIT_COMMIT = """
mutation orderEditCommit($id: ID!, $notifyCustomer: Boolean!, $staffNote: String) {
  orderEditCommit(id: $id, notifyCustomer: $notifyCustomer, staffNote: $staffNote) {
    order {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""


class EditState(str, Enum):
    """Lifecycle of one order-edit session."""

    PENDING = "pending"
    OPEN = "open"
    ITEM_ADDED = "item_added"
    DISCOUNTED = "discounted"
    COMMITTED = "committed"
    ABORTED = "aborted"


class OrderEditTransaction:
    """Add one unit of a variant to an order, optionally free, then commit.

    Steps run strictly in order and stop at the first failure. Use ``run()``
    for the whole sequence; the individual steps are public so each
    transition can be driven and inspected on its own.
    """

    def __init__(
        self,
        client: ShopifyGraphQLClient,
        order_id: str,
        variant_id: str,
        discount_policy: DiscountPolicy = DiscountPolicy.REQUIRED,
        staff_note: str = DEFAULT_STAFF_NOTE,
    ) -> None:
        self.client = client
        self.order_gid = to_gid("Order", order_id)
        self.variant_gid = to_gid("ProductVariant", variant_id) if variant_id else ""
        self.discount_policy = discount_policy
        self.staff_note = staff_note
        self.state = EditState.PENDING
        self.calculated_order_id: str | None = None
        self.line_item_id: str | None = None

    def _require(self, *states: EditState) -> None:
        if self.state not in states:
            raise RuntimeError(
                f"Invalid order-edit transition from {self.state.value} "
                f"(expected one of {', '.join(s.value for s in states)})"
            )

    async def begin(self) -> str:
        """Open an edit session and return the calculated-order id."""
        self._require(EditState.PENDING)
        if not self.variant_gid:
            raise ConfigurationError("OG_VARIANT_ID not configured", "orderEditBegin")

        logger.info("Starting order edit session for %s", self.order_gid)
        payload = await self.client.mutate(
            ORDER_EDIT_BEGIN, "orderEditBegin", {"id": self.order_gid}
        )
        calculated_id = (payload.get("calculatedOrder") or {}).get("id")
        if not calculated_id:
            raise ShopifyResponseError(
                "No calculatedOrder id returned from orderEditBegin", "orderEditBegin", payload
            )
        self.calculated_order_id = calculated_id
        self.state = EditState.OPEN
        logger.info("Order edit session created: %s", calculated_id)
        return calculated_id

    async def add_variant(self) -> str:
        """Stage one unit of the target variant; returns the calculated line-item id."""
        self._require(EditState.OPEN)
        logger.info("Adding variant %s to %s", self.variant_gid, self.calculated_order_id)
        payload = await self.client.mutate(
            ORDER_EDIT_ADD_VARIANT,
            "orderEditAddVariant",
            {
                "id": self.calculated_order_id,
                "variantId": self.variant_gid,
                "quantity": 1,
                "allowDuplicates": False,
            },
        )
        line_item_id = (payload.get("calculatedLineItem") or {}).get("id")
        if not line_item_id:
            raise ShopifyResponseError(
                "No calculatedLineItem id returned from orderEditAddVariant",
                "orderEditAddVariant",
                payload,
            )
        self.line_item_id = line_item_id
        self.state = EditState.ITEM_ADDED
        return line_item_id

    async def apply_discount(self) -> None:
        """Make the staged line free with a 100% line-item discount."""
        self._require(EditState.ITEM_ADDED)
        logger.info("Adding 100%% discount to line %s", self.line_item_id)
        await self.client.mutate(
            ORDER_EDIT_ADD_LINE_ITEM_DISCOUNT,
            "orderEditAddLineItemDiscount",
            {
                "id": self.calculated_order_id,
                "lineItemId": self.line_item_id,
                "discount": {
                    "description": DISCOUNT_DESCRIPTION,
                    "percentValue": 100,
                },
            },
        )
        self.state = EditState.DISCOUNTED

    async def commit(self) -> dict[str, Any]:
        """Apply the staged changes without notifying the customer."""
        self._require(EditState.ITEM_ADDED, EditState.DISCOUNTED)
        logger.info("Committing order edit %s", self.calculated_order_id)
        payload = await self.client.mutate(
            ORDER_EDIT_COMMIT,
            "orderEditCommit",
            {
                "id": self.calculated_order_id,
                "notifyCustomer": False,
                "staffNote": self.staff_note,
            },
        )
        self.state = EditState.COMMITTED
        return payload

    async def abort(self) -> None:
        """Best-effort cleanup of an uncommitted session. Never raises."""
        if self.state in (EditState.COMMITTED, EditState.ABORTED):
            return
        if self.state in (EditState.ITEM_ADDED, EditState.DISCOUNTED) and self.line_item_id:
            try:
                await self.client.mutate(
                    ORDER_EDIT_SET_QUANTITY,
                    "orderEditSetQuantity",
                    {
                        "id": self.calculated_order_id,
                        "lineItemId": self.line_item_id,
                        "quantity": 0,
                    },
                )
                logger.info("Removed staged line %s from %s", self.line_item_id, self.calculated_order_id)
            except ShopifyError:
                logger.warning(
                    "Cleanup of order edit %s failed; session left to expire",
                    self.calculated_order_id,
                    exc_info=True,
                )
        if self.calculated_order_id:
            logger.warning("Order edit %s abandoned without commit", self.calculated_order_id)
        self.state = EditState.ABORTED

    async def run(self) -> dict[str, Any]:
        """Run begin → add_variant → discount → commit, aborting on failure."""
        try:
            await self.begin()
            await self.add_variant()
            if self.discount_policy is not DiscountPolicy.SKIP:
                try:
                    await self.apply_discount()
                except ShopifyError:
                    if self.discount_policy is DiscountPolicy.REQUIRED:
                        raise
                    logger.warning(
                        "Discount failed for line %s; committing at full price",
                        self.line_item_id,
                        exc_info=True,
                    )
            result = await self.commit()
        except Exception:
            await self.abort()
            raise
        logger.info("Successfully added free item to %s", self.order_gid)
        return result
