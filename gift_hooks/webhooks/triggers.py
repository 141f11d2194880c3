"""Line-item predicates: does a cart/order qualify, and is the gift already there."""

from __future__ import annotations

from typing import Iterable, Literal

from gift_hooks.shopify.ids import legacy_id
from gift_hooks.webhooks.models import LineItem

IdField = Literal["variant_id", "product_id"]


def has_trigger(
    items: Iterable[LineItem] | None,
    trigger_ids: Iterable[str],
    field: IdField = "variant_id",
) -> bool:
    """True iff any line item's ``field`` identifier is in ``trigger_ids``."""
    triggers = {legacy_id(t) for t in trigger_ids if t}
    if not items or not triggers:
        return False
    return any(
        getattr(item, field) is not None and getattr(item, field) in triggers
        for item in items
    )


def has_target(items: Iterable[LineItem] | None, target_id: str) -> bool:
    """True iff the target already appears as a variant or product id.

    Both ids are checked because the payload shape differs across topics.
    """
    target = legacy_id(target_id)
    if not items or not target:
        return False
    return any(target in (item.variant_id, item.product_id) for item in items)
