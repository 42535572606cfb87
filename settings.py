"""
Centralized configuration helpers for shop scoping and Shopify Admin access.
"""
from __future__ import annotations

import os
from typing import Optional, Any

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SHOP_ID: str = os.getenv("DEFAULT_SHOP_ID") or "demo-shop"

# Admin GraphQL API version used for catalog lookups and bundle creation.
SHOPIFY_API_VERSION: str = os.getenv("SHOPIFY_API_VERSION") or "2024-10"
SHOPIFY_ADMIN_ACCESS_TOKEN: str = os.getenv("SHOPIFY_ADMIN_ACCESS_TOKEN", "")
SHOPIFY_HTTP_TIMEOUT_SECONDS: float = float(os.getenv("SHOPIFY_HTTP_TIMEOUT_SECONDS", "15"))

# Default discount window (days) for a freshly started wizard session.
WIZARD_DEFAULT_DISCOUNT_DAYS: int = int(os.getenv("WIZARD_DEFAULT_DISCOUNT_DAYS", "30"))


def sanitize_shop_id(value: Optional[Any]) -> Optional[str]:
    """Normalize raw IDs (strip whitespace, lower-case domains)."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    text = str(value).strip()
    if not text:
        return None
    return text.lower()


def resolve_shop_id(*candidates: Optional[Any]) -> str:
    """
    Pick the first usable shop identifier from candidates, otherwise fall back to DEFAULT_SHOP_ID.
    """
    for candidate in candidates:
        normalized = sanitize_shop_id(candidate)
        if normalized:
            return normalized
    return DEFAULT_SHOP_ID


def shopify_admin_url(shop_domain: str, api_version: Optional[str] = None) -> str:
    """
    Build the Admin GraphQL endpoint for a shop.

    Accepts either a bare handle ("my-shop") or a full domain ("my-shop.myshopify.com").
    """
    shop = resolve_shop_id(shop_domain)
    shop = shop.replace("https://", "").replace("http://", "").rstrip("/")
    if "." not in shop:
        shop = f"{shop}.myshopify.com"
    return f"https://{shop}/admin/api/{api_version or SHOPIFY_API_VERSION}/graphql.json"
