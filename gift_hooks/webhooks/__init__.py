"""Inbound Shopify webhooks: cart updates and order creation/updates.

Each webhook is signature-verified, parsed into typed payloads, checked for
trigger products and deduplicated before any Shopify mutation runs.
"""
