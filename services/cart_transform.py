"""
Cart Transform (expand)
Replaces bundle cart lines with their component lines at checkout.

Called by the platform's checkout pipeline with a full cart snapshot:

    {"cart": {"lines": [{"id": "...", "merchandise": {...}}]}}

A line is a bundle when its merchandise is a ProductVariant carrying a
``component_reference`` attribute: a JSON-encoded array of merchandise ids.
The platform delivers the attribute as a metafield object ({"value": "..."});
a bare string is accepted as well.

This transform is purely structural. Quantity is fixed at 1 per reference and
price/attributes are left null so the platform re-derives them from the
referenced merchandise. It keeps no state and is safe to call concurrently or
repeatedly for the same cart.
"""

import json
import logging
from typing import Any, Dict, List, Mapping

from schemas.bundle_schemas import (
    CartTransformResultDict,
    ExpandedCartItemDict,
    ExpandOperationDict,
)

logger = logging.getLogger(__name__)

VARIANT_TYPENAME = "ProductVariant"
COMPONENT_REFERENCE_KEY = "component_reference"


class ComponentReferenceError(ValueError):
    """Raised when a component_reference payload cannot be decoded."""
    pass


def _as_variant(merchandise: Any) -> Mapping[str, Any]:
    """Return the merchandise if it is variant-typed, otherwise an empty mapping."""
    if not isinstance(merchandise, Mapping):
        return {}
    if merchandise.get("__typename") == VARIANT_TYPENAME:
        return merchandise
    # Some function runners nest the variant under its type name
    nested = merchandise.get(VARIANT_TYPENAME)
    if isinstance(nested, Mapping):
        return nested
    return {}


def get_component_references(variant: Mapping[str, Any]) -> List[str]:
    """
    Decode the merchandise ids referenced by a bundle variant.

    Returns an empty list when the variant has no component_reference.

    Raises:
        ComponentReferenceError: If the payload is not a JSON array of strings
    """
    reference = variant.get(COMPONENT_REFERENCE_KEY)
    if reference is None:
        return []

    raw = reference.get("value") if isinstance(reference, Mapping) else reference
    if raw is None:
        return []
    if not isinstance(raw, str):
        raise ComponentReferenceError(
            f"component_reference must be a JSON string, got {type(raw).__name__}"
        )

    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ComponentReferenceError(f"component_reference is not valid JSON: {exc}") from exc

    if not isinstance(decoded, list):
        raise ComponentReferenceError("component_reference must decode to a list of ids")
    if not all(isinstance(item, str) for item in decoded):
        raise ComponentReferenceError("component_reference entries must be merchandise id strings")
    return decoded


def get_expand_cart_operations(cart: Mapping[str, Any]) -> List[ExpandOperationDict]:
    """Build one expand operation per bundle line, in cart order."""
    result: List[ExpandOperationDict] = []

    for line in cart.get("lines") or []:
        variant = _as_variant(line.get("merchandise"))
        if not variant:
            continue

        component_references = get_component_references(variant)
        if not component_references:
            # An expand with zero items is rejected by the platform
            continue

        expanded_items: List[ExpandedCartItemDict] = [
            {
                "merchandise_id": reference,
                "quantity": 1,
                "price": None,
                "attributes": None,
            }
            for reference in component_references
        ]
        result.append({
            "type": "expand",
            "cart_line_id": line["id"],
            "expanded_cart_items": expanded_items,
        })

    return result


def run(function_input: Mapping[str, Any]) -> CartTransformResultDict:
    """Cart transform entry point."""
    operations = get_expand_cart_operations(function_input.get("cart") or {})
    logger.debug(f"Cart transform produced {len(operations)} expand operations")
    return {"operations": operations}
