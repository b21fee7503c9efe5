"""
Storefront configuration.

Settings are read from the environment once and cached. Anything malformed
fails loudly at load time instead of surfacing mid-request.
"""
import os
import re
from dataclasses import dataclass
from decimal import Decimal
from functools import cache
from typing import Mapping, Optional

from storefront.errors import ConfigurationError
from storefront.services.money import parse_amount

STORE_BACKENDS = ("memory", "redis")
ORPHAN_POLICIES = ("fail", "drop")

_HEADER_NAME = re.compile(r"^[A-Za-z0-9-]+$")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the cart, pricing and checkout core."""
    tax_rate: Decimal = Decimal("0.09")
    shipping_flat_rate: Decimal = Decimal("0")
    free_shipping_threshold: Optional[Decimal] = None
    store_backend: str = "memory"
    orphan_policy: str = "fail"
    session_header: str = "X-Session-Id"
    currency: str = "usd"
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_api_url: str = "https://api.stripe.com/v1"
    redis_url: str = ""
    redis_token: str = ""


def _decimal_setting(env: Mapping[str, str], name: str, default: Optional[str]) -> Optional[Decimal]:
    raw = env.get(name, default)
    if raw is None or raw == "":
        return None
    value = parse_amount(raw)
    if value is None or value < 0:
        raise ConfigurationError(f"{name} must be a non-negative number, got {raw!r}")
    return value


def _choice_setting(env: Mapping[str, str], name: str, default: str, choices: tuple) -> str:
    value = env.get(name, default).strip().lower()
    if value not in choices:
        raise ConfigurationError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from an environment mapping.

    Args:
        env: Mapping to read from (defaults to os.environ)

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If any value is malformed
    """
    env = os.environ if env is None else env

    session_header = env.get("SESSION_HEADER", "X-Session-Id").strip()
    if not _HEADER_NAME.match(session_header):
        raise ConfigurationError(f"SESSION_HEADER is not a valid header name: {session_header!r}")

    return Settings(
        tax_rate=_decimal_setting(env, "CART_TAX_RATE", "0.09"),
        shipping_flat_rate=_decimal_setting(env, "CART_SHIPPING_FLAT_RATE", "0"),
        free_shipping_threshold=_decimal_setting(env, "CART_FREE_SHIPPING_THRESHOLD", None),
        store_backend=_choice_setting(env, "CART_STORE_BACKEND", "memory", STORE_BACKENDS),
        orphan_policy=_choice_setting(env, "CART_ORPHAN_POLICY", "fail", ORPHAN_POLICIES),
        session_header=session_header,
        currency=env.get("STORE_CURRENCY", "usd").strip().lower() or "usd",
        stripe_secret_key=env.get("STRIPE_SECRET_KEY", ""),
        stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET", ""),
        stripe_api_url=env.get("STRIPE_API_URL", "https://api.stripe.com/v1").rstrip("/"),
        redis_url=env.get("UPSTASH_REDIS_REST_URL", ""),
        redis_token=env.get("UPSTASH_REDIS_REST_TOKEN", ""),
    )


@cache
def get_settings() -> Settings:
    """Get process-wide settings (loaded from os.environ on first use)."""
    return load_settings()
