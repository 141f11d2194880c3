"""Tests for the order-edit transaction state machine."""

from __future__ import annotations

import httpx
import pytest

from gift_hooks.config import DiscountPolicy
from gift_hooks.shopify.errors import (
    ConfigurationError,
    ShopifyResponseError,
    ShopifyTransportError,
    ShopifyUserError,
)
from gift_hooks.shopify.order_edit import EditState, OrderEditTransaction

from shopify_fakes import user_error

FULL_SEQUENCE = [
    "orderEditBegin",
    "orderEditAddVariant",
    "orderEditAddLineItemDiscount",
    "orderEditCommit",
]


def _transaction(client, **kwargs) -> OrderEditTransaction:
    return OrderEditTransaction(client, "1001", "OG1", **kwargs)


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_runs_steps_in_order(self, admin_client, admin_stub):
        tx = _transaction(admin_client)
        result = await tx.run()

        assert admin_stub.operations == FULL_SEQUENCE
        assert tx.state is EditState.COMMITTED
        assert result["order"]["id"] == "gid://shopify/Order/1001"

    @pytest.mark.asyncio
    async def test_variables(self, admin_client, admin_stub):
        await _transaction(admin_client, staff_note="Gift added").run()

        assert admin_stub.variables("orderEditBegin") == {"id": "gid://shopify/Order/1001"}
        add = admin_stub.variables("orderEditAddVariant")
        assert add["id"] == "gid://shopify/CalculatedOrder/900"
        assert add["variantId"] == "gid://shopify/ProductVariant/OG1"
        assert add["quantity"] == 1
        assert add["allowDuplicates"] is False
        discount = admin_stub.variables("orderEditAddLineItemDiscount")
        assert discount["lineItemId"] == "gid://shopify/CalculatedLineItem/901"
        assert discount["discount"]["percentValue"] == 100
        commit = admin_stub.variables("orderEditCommit")
        assert commit == {
            "id": "gid://shopify/CalculatedOrder/900",
            "notifyCustomer": False,
            "staffNote": "Gift added",
        }

    @pytest.mark.asyncio
    async def test_gid_inputs_are_kept(self, admin_client, admin_stub):
        tx = OrderEditTransaction(
            admin_client, "gid://shopify/Order/5", "gid://shopify/ProductVariant/7"
        )
        await tx.run()
        assert admin_stub.variables("orderEditBegin")["id"] == "gid://shopify/Order/5"
        assert admin_stub.variables("orderEditAddVariant")["variantId"] == "gid://shopify/ProductVariant/7"

    @pytest.mark.asyncio
    async def test_skip_policy_omits_discount(self, admin_client, admin_stub):
        await _transaction(admin_client, discount_policy=DiscountPolicy.SKIP).run()
        assert admin_stub.operations == ["orderEditBegin", "orderEditAddVariant", "orderEditCommit"]


class TestFailures:
    """Any failure stops the remaining steps; nothing is committed."""

    @pytest.mark.asyncio
    async def test_begin_user_error_stops_everything(self, admin_client, admin_stub):
        admin_stub.responses["orderEditBegin"] = user_error("orderEditBegin")
        tx = _transaction(admin_client)
        with pytest.raises(ShopifyUserError):
            await tx.run()
        assert admin_stub.operations == ["orderEditBegin"]
        assert tx.state is EditState.ABORTED

    @pytest.mark.asyncio
    async def test_begin_without_calculated_order(self, admin_client, admin_stub):
        admin_stub.responses["orderEditBegin"] = {
            "data": {"orderEditBegin": {"calculatedOrder": None, "userErrors": []}}
        }
        with pytest.raises(ShopifyResponseError):
            await _transaction(admin_client).run()
        assert admin_stub.operations == ["orderEditBegin"]

    @pytest.mark.asyncio
    async def test_add_variant_failure_leaves_nothing_to_clean(self, admin_client, admin_stub):
        admin_stub.responses["orderEditAddVariant"] = httpx.Response(500, text="boom")
        tx = _transaction(admin_client)
        with pytest.raises(ShopifyTransportError):
            await tx.run()
        assert admin_stub.operations == ["orderEditBegin", "orderEditAddVariant"]
        assert tx.state is EditState.ABORTED

    @pytest.mark.asyncio
    async def test_discount_failure_removes_staged_line(self, admin_client, admin_stub):
        admin_stub.responses["orderEditAddLineItemDiscount"] = user_error("orderEditAddLineItemDiscount")
        tx = _transaction(admin_client)
        with pytest.raises(ShopifyUserError):
            await tx.run()

        assert admin_stub.operations == [
            "orderEditBegin",
            "orderEditAddVariant",
            "orderEditAddLineItemDiscount",
            "orderEditSetQuantity",
        ]
        cleanup = admin_stub.variables("orderEditSetQuantity")
        assert cleanup["lineItemId"] == "gid://shopify/CalculatedLineItem/901"
        assert cleanup["quantity"] == 0
        assert tx.state is EditState.ABORTED

    @pytest.mark.asyncio
    async def test_best_effort_discount_failure_still_commits(self, admin_client, admin_stub):
        admin_stub.responses["orderEditAddLineItemDiscount"] = user_error("orderEditAddLineItemDiscount")
        tx = _transaction(admin_client, discount_policy=DiscountPolicy.BEST_EFFORT)
        await tx.run()
        assert admin_stub.operations == FULL_SEQUENCE
        assert tx.state is EditState.COMMITTED

    @pytest.mark.asyncio
    async def test_commit_failure_triggers_cleanup(self, admin_client, admin_stub):
        admin_stub.responses["orderEditCommit"] = user_error("orderEditCommit")
        tx = _transaction(admin_client)
        with pytest.raises(ShopifyUserError):
            await tx.run()
        assert admin_stub.operations[-1] == "orderEditSetQuantity"

    @pytest.mark.asyncio
    async def test_cleanup_failure_is_not_raised(self, admin_client, admin_stub):
        admin_stub.responses["orderEditCommit"] = user_error("orderEditCommit", "commit failed")
        admin_stub.responses["orderEditSetQuantity"] = httpx.Response(503)
        tx = _transaction(admin_client)
        with pytest.raises(ShopifyUserError) as exc_info:
            await tx.run()
        assert exc_info.value.step == "orderEditCommit"
        assert tx.state is EditState.ABORTED

    @pytest.mark.asyncio
    async def test_missing_variant_fails_before_any_call(self, admin_client, admin_stub):
        tx = OrderEditTransaction(admin_client, "1001", "")
        with pytest.raises(ConfigurationError):
            await tx.run()
        assert admin_stub.calls == []


class TestTransitions:
    @pytest.mark.asyncio
    async def test_commit_before_begin_is_invalid(self, admin_client):
        with pytest.raises(RuntimeError):
            await _transaction(admin_client).commit()

    @pytest.mark.asyncio
    async def test_begin_twice_is_invalid(self, admin_client):
        tx = _transaction(admin_client)
        await tx.begin()
        with pytest.raises(RuntimeError):
            await tx.begin()

    @pytest.mark.asyncio
    async def test_abort_after_commit_is_noop(self, admin_client, admin_stub):
        tx = _transaction(admin_client)
        await tx.run()
        await tx.abort()
        assert tx.state is EditState.COMMITTED
        assert "orderEditSetQuantity" not in admin_stub.operations
