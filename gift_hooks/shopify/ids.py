"""Shopify global id (GID) helpers."""

from __future__ import annotations

_GID_PREFIX = "gid://shopify/"


def to_gid(resource: str, value: str | int) -> str:
    """Return ``gid://shopify/<resource>/<value>`` unless value already is a GID."""
    text = str(value).strip()
    if text.startswith("gid://"):
        return text
    return f"{_GID_PREFIX}{resource}/{text}"


def legacy_id(value: str | int | None) -> str:
    """Reduce a GID to its trailing resource id; plain ids pass through.

    Query strings on GIDs (``gid://shopify/Cart/abc?key=...``) are dropped.
    """
    if value is None:
        return ""
    text = str(value).strip()
    if not text.startswith("gid://"):
        return text
    return text.rsplit("/", 1)[-1].split("?", 1)[0]
