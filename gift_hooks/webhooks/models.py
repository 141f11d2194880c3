"""Typed webhook payloads.

Shopify sends identifiers as JSON numbers in some topics and strings in
others. Every identifier is normalized to ``str`` here so the predicates
downstream only ever compare strings. Unknown fields are ignored.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gift_hooks.shopify.ids import to_gid


def normalize_id(value: Any) -> Any:
    """Coerce a JSON id (number or string) to a non-empty string or None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value  # left for pydantic to reject
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        return value.strip() or None
    return value


class LineItem(BaseModel):
    """One cart line or order line item."""

    model_config = ConfigDict(extra="ignore")

    variant_id: Optional[str] = None
    product_id: Optional[str] = None
    quantity: int = 1

    @field_validator("variant_id", "product_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return normalize_id(value)


class CartPayload(BaseModel):
    """carts/update webhook body."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    token: Optional[str] = None
    items: list[LineItem] = Field(default_factory=list)

    @field_validator("id", "token", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return normalize_id(value)

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def cart_id(self) -> str | None:
        return self.id or self.token


class OrderPayload(BaseModel):
    """orders/create and orders/updated webhook body."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    admin_graphql_api_id: Optional[str] = None
    order_number: Optional[str] = None
    line_items: list[LineItem] = Field(default_factory=list)

    @field_validator("id", "admin_graphql_api_id", "order_number", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return normalize_id(value)

    @field_validator("line_items", mode="before")
    @classmethod
    def _null_items(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def order_gid(self) -> str | None:
        """Admin API global id for this order, or None if it cannot be derived."""
        if self.admin_graphql_api_id and self.admin_graphql_api_id.startswith("gid://"):
            return self.admin_graphql_api_id
        if self.id:
            return to_gid("Order", self.id)
        return self.admin_graphql_api_id
