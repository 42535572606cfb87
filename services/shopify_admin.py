"""
Shopify Admin GraphQL client.

Covers the three platform calls the bundle builder needs:
- catalog lookup for the product step (``fetch_products``)
- bundle registration (``create_bundle`` -> productBundleCreate)
- component details for an existing bundle product (``fetch_product_components``)
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from schemas.bundle_schemas import BundleDefinition, BundleOperation, CatalogProductDict
from services.bundle_assembler import to_mutation_variables
from settings import (
    SHOPIFY_ADMIN_ACCESS_TOKEN,
    SHOPIFY_HTTP_TIMEOUT_SECONDS,
    shopify_admin_url,
)

logger = logging.getLogger(__name__)


class ShopifyAdminError(Exception):
    """Transport, HTTP or GraphQL-level failure talking to the Admin API."""
    pass


class BundleCreationError(ShopifyAdminError):
    """productBundleCreate returned user errors; message is the first one."""

    def __init__(self, message: str, user_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.user_errors = user_errors or []


class CatalogLookupError(ShopifyAdminError):
    """Catalog lookup for the product step failed."""
    pass


CREATE_BUNDLE_MUTATION = """
mutation productBundleCreate($input: ProductBundleCreateInput!) {
  productBundleCreate(input: $input) {
    productBundleOperation {
      id
      status
    }
    userErrors {
      field
      message
    }
  }
}
"""

PRODUCTS_QUERY = """
query bundleBuilderProducts($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on Product {
      id
      title
      vendor
      images(first: 5) {
        nodes {
          url
          altText
        }
      }
      options {
        id
        name
        values
      }
    }
  }
}
"""

PRODUCT_COMPONENTS_QUERY = """
query bundleComponents($id: ID!) {
  product(id: $id) {
    id
    productComponents(first: 50) {
      nodes {
        product {
          id
          title
          totalVariants
          featuredImage {
            url
          }
        }
      }
    }
  }
}
"""


class ShopifyAdminClient:
    """
    Thin async client over the Admin GraphQL endpoint.

    Pass ``transport`` (e.g. ``httpx.MockTransport``) to run without network.
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: float = SHOPIFY_HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.shop_domain = shop_domain
        self.endpoint = shopify_admin_url(shop_domain, api_version)
        self._access_token = access_token if access_token is not None else SHOPIFY_ADMIN_ACCESS_TOKEN
        self._timeout = timeout
        self._transport = transport

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a GraphQL document and return its ``data`` object."""
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self._access_token,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    json={"query": query, "variables": variables or {}},
                    headers=headers,
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as exc:
            raise ShopifyAdminError(
                f"Shopify Admin API returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ShopifyAdminError(f"Shopify Admin API request failed: {exc}") from exc
        except ValueError as exc:
            raise ShopifyAdminError("Shopify Admin API returned a non-JSON response") from exc

        if not isinstance(body, dict):
            raise ShopifyAdminError("Shopify Admin API returned an unexpected response")
        if body.get("errors"):
            first = body["errors"][0]
            message = first.get("message") if isinstance(first, dict) else str(first)
            raise ShopifyAdminError(f"GraphQL error: {message}")
        return body.get("data") or {}

    async def create_bundle(self, definition: BundleDefinition) -> BundleOperation:
        """Register a bundle with productBundleCreate."""
        logger.info(
            f"Creating bundle '{definition.title}' on {self.shop_domain} "
            f"with {len(definition.components)} components"
        )
        data = await self.graphql(CREATE_BUNDLE_MUTATION, to_mutation_variables(definition))
        payload = data.get("productBundleCreate") or {}

        user_errors = payload.get("userErrors") or []
        if user_errors:
            logger.warning(f"productBundleCreate user errors for '{definition.title}': {user_errors}")
            raise BundleCreationError(user_errors[0].get("message", "Bundle creation failed"), user_errors)

        operation = payload.get("productBundleOperation")
        if not operation:
            raise ShopifyAdminError("productBundleCreate returned no operation")
        return BundleOperation.from_dict(operation)

    async def fetch_products(self, product_ids: Sequence[str]) -> List[CatalogProductDict]:
        """
        Look up catalog products for the product step.

        Returns products in the order requested, skipping ids that did not
        resolve to a product.
        """
        if not product_ids:
            return []
        try:
            data = await self.graphql(PRODUCTS_QUERY, {"ids": list(product_ids)})
        except ShopifyAdminError as exc:
            raise CatalogLookupError(str(exc)) from exc

        products: List[CatalogProductDict] = []
        for node in data.get("nodes") or []:
            if not node or not node.get("id"):
                continue
            products.append({
                "id": node["id"],
                "title": node.get("title", ""),
                "vendor": node.get("vendor") or "",
                "images": [
                    {"original_src": img.get("url", ""), "alt_text": img.get("altText")}
                    for img in (node.get("images") or {}).get("nodes", [])
                ],
                "options": [
                    {"id": opt["id"], "name": opt.get("name", ""), "values": list(opt.get("values") or [])}
                    for opt in node.get("options") or []
                ],
            })
        return products

    async def fetch_product_components(self, product_id: str) -> List[Dict[str, Any]]:
        """Component products of an existing bundle product."""
        data = await self.graphql(PRODUCT_COMPONENTS_QUERY, {"id": product_id})
        product = data.get("product")
        if not product:
            return []

        components = []
        for node in (product.get("productComponents") or {}).get("nodes", []):
            component = node.get("product") or {}
            component_id = component.get("id", "")
            components.append({
                "id": component_id,
                "title": component.get("title", ""),
                "featured_image_url": (component.get("featuredImage") or {}).get("url", ""),
                "total_variants": component.get("totalVariants", 0),
                "admin_path": f"/products/{component_id.split('/')[-1]}" if component_id else None,
            })
        return components
