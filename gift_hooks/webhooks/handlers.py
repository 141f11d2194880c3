"""Webhook HTTP handlers: FastAPI routes for inbound Shopify webhooks.

Each handler:
1. Reads raw body (needed for HMAC verification)
2. Verifies the X-Shopify-Hmac-SHA256 signature
3. Parses the JSON into a typed payload
4. Runs the cart or order flow
5. Returns {success, message} or {error, details}

Status codes:
- 200 acknowledged (not triggered, duplicate, or gift added)
- 400 unparsable JSON, invalid payload shape or missing cart/order id
- 401 signature failure (nothing parsed, no Shopify calls)
- 500 Shopify failure or unexpected error
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from gift_hooks.webhooks.models import CartPayload, OrderPayload
from gift_hooks.webhooks.verification import SIGNATURE_HEADER, verify_shopify

logger = logging.getLogger(__name__)

_PAYLOAD_MODELS = {
    "cart": CartPayload,
    "order": OrderPayload,
}

EXAMPLE_CART = {
    "id": "cart_1234567890",
    "items": [
        {
            "variant_id": "Enter one of your TRIGGER_VARIANT_IDS here",
            "quantity": 1,
        }
    ],
}


def _log_webhook(app: FastAPI, flow: str, entity_id: str, status: str) -> None:
    """Audit log for webhook activity, counted per app in app.state.webhook_counts."""
    counts = app.state.webhook_counts
    counts[flow] = counts.get(flow, 0) + 1
    logger.info(
        "WEBHOOK_AUDIT flow=%s id=%s status=%s count=%d",
        flow,
        entity_id or "unknown",
        status,
        counts[flow],
    )


def _format_validation_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in error.errors()
    ]


async def process_webhook(
    app: FastAPI, flow_name: str, body: bytes, signature: str | None
) -> tuple[int, dict[str, Any]]:
    """Verify, parse and run one webhook delivery. Returns (status, JSON body)."""
    settings = app.state.settings

    if not verify_shopify(body, signature, settings.webhook_secret, settings.bypass_verification):
        logger.error("Invalid webhook signature")
        _log_webhook(app, flow_name, "", "signature_failed")
        return 401, {"error": "Invalid webhook signature"}

    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        _log_webhook(app, flow_name, "", "invalid_json")
        return 400, {"error": "Invalid JSON payload"}

    if not isinstance(data, dict):
        _log_webhook(app, flow_name, "", "invalid_payload")
        return 400, {"error": "Invalid payload", "details": ["body: expected a JSON object"]}

    try:
        payload = _PAYLOAD_MODELS[flow_name].model_validate(data)
    except ValidationError as e:
        _log_webhook(app, flow_name, "", "invalid_payload")
        return 400, {"error": "Invalid payload", "details": _format_validation_errors(e)}

    entity_id = payload.cart_id if flow_name == "cart" else (payload.id or payload.admin_graphql_api_id)
    flow = app.state.flows[flow_name]
    try:
        result = await flow.process(payload)
    except Exception as e:
        logger.exception("Error processing %s webhook", flow_name)
        _log_webhook(app, flow_name, entity_id, "error")
        return 500, {"error": "Error processing webhook", "details": str(e)}

    _log_webhook(app, flow_name, entity_id, result.outcome)
    return result.status_code, result.body


async def _handle_webhook(request: Request, flow_name: str) -> JSONResponse:
    start = time.time()
    body = await request.body()
    status_code, content = await process_webhook(
        request.app, flow_name, body, request.headers.get(SIGNATURE_HEADER)
    )
    elapsed_ms = (time.time() - start) * 1000
    logger.debug("Webhook processed in %.1fms: %s -> %d", elapsed_ms, flow_name, status_code)
    return JSONResponse(content, status_code=status_code)


def register_webhook_routes(app: FastAPI) -> None:
    """Register webhook endpoint routes on the FastAPI app."""
    app.state.webhook_counts = {}

    @app.post("/api/webhook/cart-update")
    async def cart_update_webhook(request: Request):
        """Receive carts/update webhooks (signature-verified)."""
        return await _handle_webhook(request, "cart")

    @app.post("/api/webhook/order-update")
    async def order_update_webhook(request: Request):
        """Receive orders/create webhooks (signature-verified)."""
        return await _handle_webhook(request, "order")

    @app.get("/api/test-webhook")
    async def test_webhook_help():
        return {
            "message": "Use POST method with sample cart data to test the webhook handler",
            "example": EXAMPLE_CART,
        }

    @app.post("/api/test-webhook")
    async def test_webhook(request: Request):
        """Forward an unsigned cart body to the cart flow.

        Only useful with BYPASS_WEBHOOK_VERIFICATION=true; otherwise the
        forwarded request fails signature verification with 401.
        """
        body = await request.body()
        status_code, result = await process_webhook(request.app, "cart", body, None)
        return {
            "message": "Test webhook forwarded to handler",
            "status": status_code,
            "result": result,
        }

    @app.get("/api/webhook/status")
    async def webhook_status():
        """Webhook receive counts per flow."""
        return {"counts": dict(app.state.webhook_counts)}

    logger.info("Webhook routes registered: /api/webhook/{cart-update,order-update}")
