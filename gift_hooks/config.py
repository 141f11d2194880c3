"""Runtime configuration for the webhook service.

Settings are read once at process start (``Settings.from_env()``) and passed
explicitly into the app and each flow. Tests construct ``Settings`` directly.

Security contract:
- BYPASS_WEBHOOK_VERIFICATION disables authentication entirely. Only the
  literal string "true" enables it, and it must never be set on an
  internet-reachable deployment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-04"
DEFAULT_STAFF_NOTE = "Added free promotional item"


class DiscountPolicy(str, Enum):
    """How the order flow treats the 100%-off discount step."""

    REQUIRED = "required"  # failure aborts the order edit
    BEST_EFFORT = "best_effort"  # failure is logged, edit is still committed
    SKIP = "skip"  # no discount call at all


def parse_id_list(raw: str | None) -> frozenset[str]:
    """Split a comma-separated id list, dropping blanks."""
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable service configuration."""

    webhook_secret: str = ""
    storefront_access_token: str = ""
    admin_access_token: str = ""
    store_domain: str = ""
    api_version: str = DEFAULT_API_VERSION
    hidden_variant_id: str = ""
    og_variant_id: str = ""
    trigger_ids: frozenset[str] = field(default_factory=frozenset)
    bypass_verification: bool = False
    discount_policy: DiscountPolicy = DiscountPolicy.REQUIRED
    staff_note: str = DEFAULT_STAFF_NOTE
    timeout_seconds: float = 30.0
    redis_url: str = ""
    dedup_ttl_seconds: int = 86400
    redis_timeout_seconds: float = 1.0
    log_level: str = "INFO"

    @property
    def storefront_endpoint(self) -> str:
        return f"https://{self.store_domain}/api/{self.api_version}/graphql.json"

    @property
    def admin_endpoint(self) -> str:
        return f"https://{self.store_domain}/admin/api/{self.api_version}/graphql.json"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Unparseable numeric or enum values fall back to their defaults with a
        warning rather than preventing startup.
        """
        env = os.environ if environ is None else environ

        policy_raw = env.get("ORDER_DISCOUNT_POLICY", DiscountPolicy.REQUIRED.value)
        try:
            policy = DiscountPolicy(policy_raw.strip().lower())
        except ValueError:
            logger.warning("Unknown ORDER_DISCOUNT_POLICY %r, using 'required'", policy_raw)
            policy = DiscountPolicy.REQUIRED

        return cls(
            webhook_secret=env.get("SHOPIFY_WEBHOOK_SECRET", ""),
            storefront_access_token=env.get("SHOPIFY_STOREFRONT_ACCESS_TOKEN", ""),
            admin_access_token=env.get("SHOPIFY_ADMIN_API_KEY", ""),
            store_domain=env.get("SHOPIFY_STORE_DOMAIN", ""),
            api_version=env.get("SHOPIFY_API_VERSION", "") or DEFAULT_API_VERSION,
            hidden_variant_id=env.get("HIDDEN_VARIANT_ID", "").strip(),
            og_variant_id=env.get("OG_VARIANT_ID", "").strip(),
            trigger_ids=parse_id_list(env.get("TRIGGER_VARIANT_IDS")),
            bypass_verification=env.get("BYPASS_WEBHOOK_VERIFICATION") == "true",
            discount_policy=policy,
            staff_note=env.get("ORDER_EDIT_STAFF_NOTE", "") or DEFAULT_STAFF_NOTE,
            timeout_seconds=_float(env, "SHOPIFY_TIMEOUT_SECONDS", 30.0),
            redis_url=env.get("REDIS_URL", ""),
            dedup_ttl_seconds=int(_float(env, "WEBHOOK_DEDUP_TTL_SECONDS", 86400)),
            redis_timeout_seconds=_float(env, "REDIS_TIMEOUT_SECONDS", 1.0),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using %s", key, raw, default)
        return default


def load_settings(base_dir: Path | None = None) -> Settings:
    """Load ``.env`` / ``.env.local`` (without overriding real env) and build settings."""
    root = base_dir or Path.cwd()
    load_dotenv(root / ".env.local")
    load_dotenv(root / ".env")
    return Settings.from_env()
