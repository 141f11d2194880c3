"""Shopify webhook signature verification.

Security contract:
- Constant-time comparison via hmac.compare_digest()
- Verification failure -> 401 immediately, no payload processing
- Missing secret or header -> verification fails (fail-closed)
- bypass=True accepts everything; local testing only
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-shopify-hmac-sha256"


def compute_signature(secret: str, body: bytes) -> str:
    """Base64-encoded HMAC-SHA256 of ``body`` keyed with ``secret``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_shopify(
    body: bytes,
    signature_header: str | None,
    secret: str,
    bypass: bool = False,
) -> bool:
    """Verify the X-Shopify-Hmac-SHA256 header against the raw body.

    Args:
        body: Raw request body bytes (before any JSON parsing)
        signature_header: Header value, base64-encoded HMAC-SHA256
        secret: Shared webhook secret
        bypass: Accept unconditionally (never enable on a public endpoint)

    Returns:
        True if the signature is valid or bypass is enabled
    """
    if bypass:
        logger.warning("Webhook verification bypassed - NEVER use this in production!")
        return True
    if not secret:
        logger.warning("SHOPIFY_WEBHOOK_SECRET not set - rejecting webhook")
        return False
    if not signature_header:
        return False

    return hmac.compare_digest(
        compute_signature(secret, body).encode("utf-8"),
        signature_header.encode("utf-8"),
    )
