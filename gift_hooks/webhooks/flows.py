"""Gift flows: decide whether a cart/order qualifies and add the gift.

Each flow is HTTP-agnostic: it takes a parsed payload and returns a
FlowResult (status code + JSON body) for the handler to send back.

    cart  -> has trigger variant, gift absent -> claim -> cartLinesAdd
    order -> has trigger product, gift absent -> claim -> order edit transaction

The Redis claim is blocking, so it runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from gift_hooks.config import Settings
from gift_hooks.shopify.cart import add_line_to_cart
from gift_hooks.shopify.client import ShopifyGraphQLClient
from gift_hooks.shopify.errors import ShopifyError
from gift_hooks.shopify.ids import legacy_id
from gift_hooks.shopify.order_edit import OrderEditTransaction
from gift_hooks.webhooks.idempotency import IdempotencyGuard
from gift_hooks.webhooks.models import CartPayload, OrderPayload
from gift_hooks.webhooks.triggers import has_target, has_trigger

logger = logging.getLogger(__name__)


@dataclass
class FlowResult:
    """Outcome of one webhook delivery."""

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)
    outcome: str = "received"  # audit status: received, added, duplicate, failed, ...

    @classmethod
    def received(cls) -> "FlowResult":
        return cls(200, {"success": True, "message": "Webhook received"}, "not_triggered")

    @classmethod
    def duplicate(cls) -> "FlowResult":
        return cls(200, {"success": True, "message": "Duplicate delivery ignored"}, "duplicate")


def _error_details(error: ShopifyError) -> Any:
    return error.details if error.details is not None else error.message


class CartUpdateFlow:
    """carts/update: add the hidden variant to carts holding a trigger variant."""

    name = "cart"

    def __init__(
        self, settings: Settings, client: ShopifyGraphQLClient, guard: IdempotencyGuard
    ) -> None:
        self.settings = settings
        self.client = client
        self.guard = guard

    def qualifies(self, cart: CartPayload) -> bool:
        return has_trigger(cart.items, self.settings.trigger_ids, "variant_id") and not has_target(
            cart.items, self.settings.hidden_variant_id
        )

    async def process(self, cart: CartPayload) -> FlowResult:
        if not self.qualifies(cart):
            logger.debug("Cart %s does not qualify", cart.cart_id)
            return FlowResult.received()

        logger.info("Trigger condition met, adding hidden product to cart")
        cart_id = cart.cart_id
        if not cart_id:
            logger.error("Could not determine cart ID from webhook payload")
            return FlowResult(400, {"error": "Missing cart ID"}, "missing_id")

        target = legacy_id(self.settings.hidden_variant_id)
        if not await asyncio.to_thread(self.guard.claim, self.name, cart_id, target):
            return FlowResult.duplicate()

        try:
            await add_line_to_cart(self.client, cart_id, self.settings.hidden_variant_id)
        except ShopifyError as e:
            await asyncio.to_thread(self.guard.release, self.name, cart_id, target)
            logger.error("Failed to add hidden product to cart %s: %s", cart_id, e.message)
            return FlowResult(
                500,
                {"error": "Failed to add product", "details": _error_details(e)},
                "failed",
            )
        except Exception:
            await asyncio.to_thread(self.guard.release, self.name, cart_id, target)
            raise

        return FlowResult(200, {"success": True, "message": "Hidden product added to cart"}, "added")


class OrderUpdateFlow:
    """orders/create: add the bonus variant, free, to orders holding a trigger product."""

    name = "order"

    def __init__(
        self, settings: Settings, client: ShopifyGraphQLClient, guard: IdempotencyGuard
    ) -> None:
        self.settings = settings
        self.client = client
        self.guard = guard

    def qualifies(self, order: OrderPayload) -> bool:
        return has_trigger(order.line_items, self.settings.trigger_ids, "product_id") and not has_target(
            order.line_items, self.settings.og_variant_id
        )

    async def process(self, order: OrderPayload) -> FlowResult:
        logger.info(
            "Received order webhook for order #%s (%d line items)",
            order.order_number,
            len(order.line_items),
        )
        for index, item in enumerate(order.line_items, start=1):
            logger.debug(
                "Item %d: product_id=%s, variant_id=%s, quantity=%d",
                index,
                item.product_id,
                item.variant_id,
                item.quantity,
            )

        if not self.qualifies(order):
            logger.info(
                "Trigger conditions not met for order #%s (trigger=%s, has_gift=%s)",
                order.order_number,
                has_trigger(order.line_items, self.settings.trigger_ids, "product_id"),
                has_target(order.line_items, self.settings.og_variant_id),
            )
            return FlowResult.received()

        order_gid = order.order_gid
        if not order_gid:
            logger.error("Could not determine order ID from webhook payload")
            return FlowResult(400, {"error": "Missing order ID"}, "missing_id")

        entity_id = legacy_id(order_gid)
        target = legacy_id(self.settings.og_variant_id)
        if not await asyncio.to_thread(self.guard.claim, self.name, entity_id, target):
            return FlowResult.duplicate()

        transaction = OrderEditTransaction(
            self.client,
            order_gid,
            self.settings.og_variant_id,
            discount_policy=self.settings.discount_policy,
            staff_note=self.settings.staff_note,
        )
        try:
            await transaction.run()
        except ShopifyError as e:
            await asyncio.to_thread(self.guard.release, self.name, entity_id, target)
            logger.error(
                "Failed to add free item to order %s at %s: %s", order_gid, e.step, e.message
            )
            return FlowResult(
                500,
                {"error": "Failed to add free item to order", "details": _error_details(e)},
                "failed",
            )
        except Exception:
            await asyncio.to_thread(self.guard.release, self.name, entity_id, target)
            raise

        return FlowResult(200, {"success": True, "message": "Free item added to order"}, "added")
