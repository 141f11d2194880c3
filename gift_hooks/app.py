"""FastAPI entrypoint for the gift-with-purchase webhooks.

Exposes:
- POST /api/webhook/cart-update   → carts/update receiver
- POST /api/webhook/order-update  → orders/create receiver
- GET/POST /api/test-webhook      → local testing helper
- GET  /api/webhook/status        → per-flow receive counts
- GET  /health                    → liveness

Run locally with ``python -m gift_hooks.app`` or
``uvicorn gift_hooks.app:create_app --factory``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from gift_hooks import __version__
from gift_hooks.config import Settings, load_settings
from gift_hooks.shopify.client import ShopifyGraphQLClient
from gift_hooks.webhooks.flows import CartUpdateFlow, OrderUpdateFlow
from gift_hooks.webhooks.handlers import register_webhook_routes
from gift_hooks.webhooks.idempotency import IdempotencyGuard

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the root logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def create_app(
    settings: Settings | None = None,
    *,
    storefront_transport: httpx.AsyncBaseTransport | None = None,
    admin_transport: httpx.AsyncBaseTransport | None = None,
    guard: IdempotencyGuard | None = None,
) -> FastAPI:
    """Build the app with explicit settings (loaded from the environment if omitted).

    Transports and guard are injectable so tests can stub Shopify and Redis.
    """
    if settings is None:
        settings = load_settings()
        configure_logging(settings.log_level)

    if settings.bypass_verification:
        logger.warning("BYPASS_WEBHOOK_VERIFICATION is enabled - webhooks are NOT authenticated")

    storefront = ShopifyGraphQLClient.storefront(settings, transport=storefront_transport)
    admin = ShopifyGraphQLClient.admin(settings, transport=admin_transport)
    guard = guard or IdempotencyGuard(
        settings.redis_url,
        settings.dedup_ttl_seconds,
        socket_timeout=settings.redis_timeout_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await storefront.aclose()
        await admin.aclose()

    app = FastAPI(title="Gift With Purchase Webhooks", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.flows = {
        "cart": CartUpdateFlow(settings, storefront, guard),
        "order": OrderUpdateFlow(settings, admin, guard),
    }

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "service": "gift_hooks"}

    register_webhook_routes(app)
    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
